"""
Request-scoped authorization gate.
"""

from typing import Iterable, Optional

from app.core.errors import Err, ErrorKind, Ok, Result
from app.models.enums import RoleEnum
from app.tenancy.context import AuthenticatedActor
from app.tenancy.permissions import normalize_role

OWNER_OR_ADMIN = frozenset({RoleEnum.OWNER, RoleEnum.ADMIN})
ANY_MEMBER: frozenset[RoleEnum] = frozenset()


def authorize(
    actor: Optional[AuthenticatedActor],
    required_roles: Iterable[RoleEnum | str],
) -> Result[AuthenticatedActor]:
    """
    Check that ``actor`` holds one of ``required_roles``.

    An empty role set admits any authenticated member of the organization.
    Missing identity is UNAUTHORIZED; a valid actor outside the set is
    FORBIDDEN. Roles are matched exactly, the hierarchy is encoded in the
    sets callers pass.
    """
    if actor is None or actor.id is None or actor.organization_id is None:
        return Err(ErrorKind.UNAUTHORIZED)
    actor_role = normalize_role(actor.role)
    if actor_role is None:
        return Err(ErrorKind.UNAUTHORIZED)
    roles = {normalize_role(role) for role in required_roles}
    if roles and actor_role not in roles:
        return Err(ErrorKind.FORBIDDEN)
    return Ok(actor)
