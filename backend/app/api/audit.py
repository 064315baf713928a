from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.crud.audit import MAX_AUDIT_PAGE, list_audit_logs
from app.models.enums import RoleEnum
from app.schemas.audit import AuditLogRead
from app.tenancy.context import AuthenticatedActor
from app.tenancy.dependencies import require_roles


router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("", response_model=list[AuditLogRead])
def read_audit_logs(
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=MAX_AUDIT_PAGE),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
):
    logs = list_audit_logs(db, actor.organization_id, action=action, limit=limit)
    return [AuditLogRead.model_validate(log) for log in logs]
