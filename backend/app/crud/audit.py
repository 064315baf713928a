# Audit logs record sensitive team and credential events for an
# organization. Entries are written inside the caller's transaction so an
# event is persisted exactly when the change it describes is.

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.request_meta import extract_client_ip
from app.models.audit_logs import AuditLog
from app.models.enums import AuditActionEnum
from app.tenancy.scoping import scoped_query

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE = 500


def record_audit(
    db: Session,
    organization_id: int,
    user_id: int | None,
    action: AuditActionEnum | str,
    details: dict[str, Any] | None = None,
    *,
    request=None,
    ip_address: str | None = None,
) -> AuditLog:
    """Stage an audit entry; the enclosing transaction commits it."""
    if organization_id is None:
        raise ValueError("organization_id is required to create an audit log entry")
    action_value = action.value if isinstance(action, AuditActionEnum) else str(action)
    log = AuditLog(
        organization_id=organization_id,
        user_id=user_id,
        action=action_value,
        details=details or {},
        ip_address=ip_address or extract_client_ip(request),
    )
    db.add(log)
    db.flush()
    logger.debug(
        "audit.logged",
        extra={
            "organization_id": organization_id,
            "user_id": user_id,
            "action": action_value,
            "request_id": getattr(getattr(request, "state", None), "request_id", None),
        },
    )
    return log


def list_audit_logs(
    db: Session,
    organization_id: int,
    *,
    action: str | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    limit = max(1, min(limit, MAX_AUDIT_PAGE))
    query = scoped_query(db, AuditLog, organization_id)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
