from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.api.auth import set_session_cookie
from app.api.errors import unwrap
from app.core.db import get_db
from app.core.email import send_invite_email
from app.core.security import create_session_token
from app.crud.invitations import accept_invitation, create_invitation, validate_invitation
from app.models.enums import RoleEnum
from app.schemas.invitations import (
    AcceptedUser,
    InviteAcceptRequest,
    InviteAcceptResponse,
    InviteCreate,
    InviteCreatedResponse,
    InviteValidation,
)
from app.tenancy.context import AuthenticatedActor
from app.tenancy.dependencies import require_roles


router = APIRouter(prefix="/api/invites", tags=["invites"])


@router.post("/create", response_model=InviteCreatedResponse)
def create_invite_endpoint(
    payload: InviteCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(require_roles([RoleEnum.OWNER, RoleEnum.ADMIN])),
):
    issued = unwrap(create_invitation(db, actor, payload.email, payload.role, request=request), "create_invite")
    invitation = issued.invitation
    send_invite_email(
        invitation.email,
        issued.link,
        organization_name=invitation.organization.name if invitation.organization else None,
    )
    return InviteCreatedResponse(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        expires_at=invitation.expires_at,
        link=issued.link,
    )


@router.get("/validate/{token}", response_model=InviteValidation)
def validate_invite_endpoint(token: str, db: Session = Depends(get_db)):
    check = validate_invitation(db, token)
    return InviteValidation(
        valid=check.valid,
        email=check.email,
        organization_name=check.organization_name,
        role=check.role,
    )


@router.post("/accept", response_model=InviteAcceptResponse)
def accept_invite_endpoint(
    payload: InviteAcceptRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user = unwrap(
        accept_invitation(
            db,
            payload.token,
            payload.name,
            payload.password,
            payload.email,
            request=request,
        ),
        "accept_invite",
    )
    token = create_session_token(user.id)
    set_session_cookie(response, token)
    return InviteAcceptResponse(user=AcceptedUser.model_validate(user), access_token=token)
