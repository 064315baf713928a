from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_actor
from app.api.errors import unwrap
from app.core.db import get_db
from app.crud.invitations import revoke_invitation
from app.crud.team import change_role, list_roster, remove_member
from app.models.enums import RoleEnum
from app.schemas.team import (
    InviteRevokedResponse,
    MemberRemovedResponse,
    PendingInvite,
    RoleChangedResponse,
    RoleUpdate,
    TeamMember,
    TeamRoster,
)
from app.tenancy.context import AuthenticatedActor
from app.tenancy.dependencies import require_roles


router = APIRouter(prefix="/api/team", tags=["team"])


@router.get("", response_model=TeamRoster)
def get_team(
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    roster = unwrap(list_roster(db, actor, request=request), "list_roster")
    return TeamRoster(
        members=[
            TeamMember(
                id=member.id,
                name=member.name,
                email=member.email,
                role=member.role,
                active=member.active,
                joined_at=member.created_at,
            )
            for member in roster.members
        ],
        invites=[PendingInvite.model_validate(invitation) for invitation in roster.invitations],
    )


# Removal and role changes only require an authenticated actor at the
# route level: the target lookup happens first so that a user from another
# organization reads as 404 for everyone, and the role rules are applied
# by the service against the locked target row.
@router.delete("/members/{user_id}", response_model=MemberRemovedResponse)
def delete_member(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    removed_id = unwrap(remove_member(db, actor, user_id, request=request), "remove_member")
    return MemberRemovedResponse(user_id=removed_id)


@router.patch("/members/{user_id}/role", response_model=RoleChangedResponse)
def update_member_role(
    user_id: int,
    payload: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    user = unwrap(change_role(db, actor, user_id, payload.role, request=request), "change_role")
    return RoleChangedResponse(user_id=user.id, role=user.role)


@router.delete("/invites/{invite_id}", response_model=InviteRevokedResponse)
def delete_invite(
    invite_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
):
    email = unwrap(revoke_invitation(db, actor, invite_id, request=request), "revoke_invite")
    return InviteRevokedResponse(email=email)
