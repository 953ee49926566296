"""
Audit logging: create, update, status changes and deletes.
"""
import json
import logging
from typing import Any, Optional

from dental_clinic.extensions import db
from dental_clinic.models import AuditLog

logger = logging.getLogger(__name__)


def log_audit(
    entity_type: str,
    action: str,
    user_id: Optional[int] = None,
    entity_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> AuditLog:
    """
    Append an audit log entry to the current transaction.

    The entry is committed (or rolled back) together with the change it
    describes, so a failed operation never leaves an audit trail behind.
    """
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        action=action,
        user_id=user_id,
        details=json.dumps(details, default=str) if details else None,
    )
    db.session.add(entry)
    logger.debug("Audit %s %s %s by %s", entity_type, entity_id, action, user_id)
    return entry
