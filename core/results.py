from dataclasses import dataclass, field
from typing import Any, List, Optional

from core.constants import EFFECT_NOTIFY


@dataclass
class Effect:
    """A side effect requested by an engine, executed by the service after commit."""
    kind: str
    payload: dict = field(default_factory=dict)


def notify(user_id, subject, message) -> Effect:
    return Effect(EFFECT_NOTIFY, {'user_id': user_id, 'subject': subject, 'message': message})


@dataclass
class Transition:
    """New aggregate state plus the effects the change requires."""
    state: Any
    effects: List[Effect] = field(default_factory=list)


@dataclass
class ServiceResult:
    """Result of a service operation: either data or one domain error kind."""
    success: bool
    data: Any = None
    error: Optional[Exception] = None
    message: str = ''

    @classmethod
    def ok(cls, data=None, message=''):
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error):
        return cls(success=False, error=error, message=error.message)
