"""
Pure role predicates for team operations.

Actors and targets only need ``id`` and ``role`` attributes, so these work on
AuthenticatedActor values and User rows alike. No I/O happens here; callers
pass freshly loaded rows.
"""

from app.models.enums import ASSIGNABLE_ROLES, RoleEnum

ROLE_RANK = {
    RoleEnum.MEMBER: 1,
    RoleEnum.ADMIN: 2,
    RoleEnum.OWNER: 3,
}


def normalize_role(role) -> RoleEnum | None:
    if isinstance(role, RoleEnum):
        return role
    try:
        return RoleEnum(role)
    except ValueError:
        return None


def can_remove(actor, target) -> bool:
    actor_role = normalize_role(actor.role)
    target_role = normalize_role(target.role)
    if actor.id == target.id:
        return False
    if actor_role not in {RoleEnum.OWNER, RoleEnum.ADMIN} or target_role is None:
        return False
    # Strictly outranking the target: nobody removes the owner, admins
    # never remove each other.
    return ROLE_RANK[actor_role] > ROLE_RANK[target_role]


def can_change_role(actor, target, new_role) -> bool:
    return (
        normalize_role(actor.role) == RoleEnum.OWNER
        and target.id != actor.id
        and normalize_role(new_role) in ASSIGNABLE_ROLES
    )


def can_view_roster(actor) -> bool:
    return actor is not None and normalize_role(actor.role) is not None
