"""
Role gates for routes.
"""

import logging
from typing import Iterable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_actor
from app.core.db import get_db, transaction
from app.core.errors import ErrorKind, OperationFailed
from app.crud.audit import record_audit
from app.models.enums import AuditActionEnum, RoleEnum
from app.tenancy.authorization import authorize
from app.tenancy.context import AuthenticatedActor

logger = logging.getLogger(__name__)


def require_roles(roles: Iterable[RoleEnum | str]):
    """
    Dependency enforcing that the caller holds one of ``roles``.

    Denials are logged and written to the organization's audit log before
    the 403 is returned.
    """
    role_set = frozenset(RoleEnum(role) for role in roles)

    def dependency(
        request: Request,
        db: Session = Depends(get_db),
        actor: AuthenticatedActor = Depends(get_current_actor),
    ) -> AuthenticatedActor:
        result = authorize(actor, role_set)
        if result.ok:
            return actor
        if result.kind == ErrorKind.FORBIDDEN:
            logger.warning(
                "authz.denied",
                extra={
                    "organization_id": actor.organization_id,
                    "user_id": actor.id,
                    "route": request.url.path,
                    "required_roles": sorted(role.value for role in role_set),
                },
            )
            with transaction(db):
                record_audit(
                    db,
                    actor.organization_id,
                    actor.id,
                    AuditActionEnum.ACCESS_DENIED,
                    {"path": request.url.path, "method": request.method},
                    request=request,
                )
        raise OperationFailed(result)

    return dependency
