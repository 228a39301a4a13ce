"""
Audit trail helper used by every mutating route.
"""
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from procurehub.core.logging import _scrub_value, audit_logger
from procurehub.db.models import AuditLog


def record_audit(
    db: Session,
    request: Optional[Request],
    user_id: Optional[int],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    details: Optional[dict] = None,
) -> AuditLog:
    """Add an AuditLog row to the current transaction and mirror it to the audit logger.

    The row is committed together with the change it describes.
    """
    scrubbed = _scrub_value(details) if details else None
    ip_address = request.client.host if request is not None and request.client else None
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=scrubbed,
        ip_address=ip_address,
    )
    db.add(audit_log)
    audit_logger.log(
        action=action,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        details=scrubbed,
        ip_address=ip_address,
    )
    return audit_log
