"""
Document-style persistence for the Job and Contract aggregates.

Each aggregate row carries a ``version``. A write is a conditional UPDATE on
``(pk, version)``; losing the race means another request committed first, so
the command is re-run against the fresh state. Commands are pure functions
of the aggregate state, which makes the re-run safe.
"""
import dataclasses
import logging
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import F
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ConcurrentUpdateError, NotFoundError

logger = logging.getLogger(__name__)


class EmbeddedRecord:
    """
    Mixin for dataclasses stored inside an aggregate's JSON column.

    Decimals are kept as strings and dates as ISO strings so the JSON
    round-trip is lossless.
    """
    decimal_fields = ()
    datetime_fields = ()
    date_fields = ()

    def to_dict(self):
        data = dataclasses.asdict(self)
        for name, value in data.items():
            if isinstance(value, Decimal):
                data[name] = str(value)
            elif isinstance(value, (datetime, date)):
                data[name] = value.isoformat()
        return data

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for name, value in data.items():
            if name not in known:
                continue
            if value is not None and name in cls.decimal_fields:
                value = Decimal(str(value))
            elif isinstance(value, str) and name in cls.datetime_fields:
                value = parse_datetime(value)
            elif isinstance(value, str) and name in cls.date_fields:
                value = parse_date(value)
            kwargs[name] = value
        return cls(**kwargs)


class VersionedDocument(models.Model):
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def to_state(self):
        raise NotImplementedError

    @classmethod
    def fields_from_state(cls, state):
        raise NotImplementedError


def load_aggregate(model, pk, label=None):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"{label or model.__name__} not found")


def commit_aggregate(instance, state):
    """Write ``state`` over ``instance`` unless someone else bumped the version first."""
    values = instance.fields_from_state(state)
    updated = type(instance).objects.filter(pk=instance.pk, version=instance.version).update(
        version=F('version') + 1,
        updated_at=timezone.now(),
        **values
    )
    return updated == 1


def mutate_aggregate(model, pk, command, label=None, attempts=None):
    """
    Read-modify-write one aggregate atomically.

    ``command`` receives the current state and returns a ``Transition``; domain
    errors it raises propagate unchanged. Returns ``(instance, transition)``
    with ``instance`` reloaded after the commit.
    """
    attempts = attempts or settings.AGGREGATE_WRITE_ATTEMPTS
    for attempt in range(1, attempts + 1):
        instance = load_aggregate(model, pk, label)
        transition = command(instance.to_state())
        if commit_aggregate(instance, transition.state):
            instance.refresh_from_db()
            return instance, transition
        logger.warning(f"Version conflict on {model.__name__} {pk} (attempt {attempt}/{attempts})")
    raise ConcurrentUpdateError(f"{label or model.__name__} {pk} kept changing; giving up after {attempts} attempts")
