import logging

from django.db import DatabaseError

from .models import ManagementLog, ReconciliationRecord

logger = logging.getLogger(__name__)


def flag_partial_failure(error, job_id=None, contract_id=None, user_id=None, payload=None):
    """
    Log a partial failure at ERROR and queue it for an operator.

    The caller still reports ``error`` to its client; losing the queue entry
    must not hide that, so a failed insert here is only logged.
    """
    logger.error(
        f"{error.code}: {error.message} (job={job_id}, contract={contract_id}, user={user_id}, payload={payload})"
    )
    try:
        return ReconciliationRecord.objects.create(
            kind=error.code,
            job_id=job_id,
            contract_id=contract_id,
            user_id=user_id,
            payload=payload or {},
            error_message=str(error.details.get('cause', error.message)),
        )
    except DatabaseError as e:
        logger.error(f"Could not store reconciliation record for {error.code}: {str(e)}")
        return None


def log_admin_action(admin, action, details):
    return ManagementLog.objects.create(admin=admin, action=action, details=details)
