"""
Team mutations: roster reads, member removal and role changes.

Every check-then-act runs inside one transaction with the target row
locked, and the permission predicates are evaluated against that freshly
loaded row. Targets are looked up through the actor's organization only,
so a user in another organization looks exactly like a missing one.
"""

from dataclasses import dataclass

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.errors import Err, ErrorKind, Ok, Result
from app.crud.audit import record_audit
from app.crud.invitations import list_pending_invitations
from app.models.enums import ASSIGNABLE_ROLES, AuditActionEnum, RoleEnum
from app.models.invitations import Invitation
from app.models.users import User
from app.tenancy.authorization import ANY_MEMBER, authorize
from app.tenancy.context import AuthenticatedActor
from app.tenancy.permissions import can_change_role, can_remove, can_view_roster, normalize_role
from app.tenancy.scoping import get_tenant_owned, scoped_query


@dataclass(frozen=True)
class Roster:
    members: list[User]
    invitations: list[Invitation]


def _role_order():
    return case(
        (User.role == RoleEnum.OWNER, 0),
        (User.role == RoleEnum.ADMIN, 1),
        else_=2,
    )


def list_members(db: Session, organization_id: int) -> list[User]:
    return (
        scoped_query(db, User, organization_id)
        .order_by(_role_order(), User.created_at.asc(), User.id.asc())
        .all()
    )


def list_roster(db: Session, actor: AuthenticatedActor, *, request=None) -> Result[Roster]:
    gate = authorize(actor, ANY_MEMBER)
    if not gate.ok:
        return gate
    if not can_view_roster(actor):
        return Err(ErrorKind.FORBIDDEN)
    with transaction(db):
        members = list_members(db, actor.organization_id)
        invitations = list_pending_invitations(db, actor.organization_id)
        record_audit(db, actor.organization_id, actor.id, AuditActionEnum.VIEW_TEAM, request=request)
    return Ok(Roster(members=members, invitations=invitations))


def remove_member(
    db: Session,
    actor: AuthenticatedActor,
    target_id: int,
    *,
    request=None,
) -> Result[int]:
    gate = authorize(actor, ANY_MEMBER)
    if not gate.ok:
        return gate
    with transaction(db):
        target = get_tenant_owned(db, User, actor.organization_id, target_id, for_update=True)
        if target is None:
            return Err(ErrorKind.NOT_FOUND, "Member not found")
        if target.id == actor.id:
            return Err(ErrorKind.SELF_REMOVAL)
        if not can_remove(actor, target):
            return Err(ErrorKind.FORBIDDEN)
        removed_role = normalize_role(target.role)
        db.delete(target)
        db.flush()
        record_audit(
            db,
            actor.organization_id,
            actor.id,
            AuditActionEnum.REMOVE_MEMBER,
            {"target_user_id": target_id, "role": removed_role.value},
            request=request,
        )
    return Ok(target_id)


def change_role(
    db: Session,
    actor: AuthenticatedActor,
    target_id: int,
    new_role: RoleEnum | str,
    *,
    request=None,
) -> Result[User]:
    gate = authorize(actor, ANY_MEMBER)
    if not gate.ok:
        return gate
    resolved_role = normalize_role(new_role)
    if resolved_role not in ASSIGNABLE_ROLES:
        return Err(ErrorKind.INVALID_ROLE, "Role must be admin or member")
    with transaction(db):
        target = get_tenant_owned(db, User, actor.organization_id, target_id, for_update=True)
        if target is None:
            return Err(ErrorKind.NOT_FOUND, "Member not found")
        if target.id == actor.id:
            return Err(ErrorKind.SELF_CHANGE)
        if normalize_role(target.role) == RoleEnum.OWNER or not can_change_role(actor, target, resolved_role):
            return Err(ErrorKind.FORBIDDEN)
        old_role = normalize_role(target.role)
        target.role = resolved_role
        record_audit(
            db,
            actor.organization_id,
            actor.id,
            AuditActionEnum.CHANGE_ROLE,
            {"target_user_id": target.id, "old_role": old_role.value, "new_role": resolved_role.value},
            request=request,
        )
    db.refresh(target)
    return Ok(target)
