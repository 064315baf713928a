from dataclasses import dataclass
from datetime import timedelta
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import transaction
from app.core.errors import Err, ErrorKind, Ok, Result
from app.core.security import get_password_hash
from app.core.time import utcnow
from app.core.tokens import format_invite_token, generate_token, hash_token, parse_invite_token, verify_token
from app.crud.audit import record_audit
from app.crud.users import build_user, get_user_by_email, normalize_email
from app.models.enums import ASSIGNABLE_ROLES, AuditActionEnum, RoleEnum
from app.models.invitations import Invitation
from app.models.users import User
from app.tenancy.authorization import OWNER_OR_ADMIN, authorize
from app.tenancy.context import AuthenticatedActor
from app.tenancy.permissions import normalize_role
from app.tenancy.scoping import get_tenant_owned, scoped_query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedInvitation:
    invitation: Invitation
    token: str
    link: str


@dataclass(frozen=True)
class InvitationCheck:
    valid: bool
    email: str | None = None
    organization_name: str | None = None
    role: RoleEnum | None = None


class _InvitationAlreadyClaimed(Exception):
    pass


def _claimed_since(db: Session, invitation_id: int | None) -> bool:
    if invitation_id is None:
        return False
    db.expire_all()
    used = db.query(Invitation.used).filter(Invitation.id == invitation_id).scalar()
    return bool(used)


def build_invite_link(token: str) -> str:
    return f"{settings.APP_BASE_URL}/invite/{token}"


def _load_invitation(db: Session, token: str, *, for_update: bool = False) -> Invitation | None:
    invitation_id, secret = parse_invite_token(token)
    if invitation_id is None or secret is None:
        return None
    query = db.query(Invitation).filter(Invitation.id == invitation_id)
    if for_update:
        query = query.with_for_update()
    invitation = query.first()
    if not invitation or not verify_token(secret, invitation.token_hash):
        return None
    return invitation


def _unusable_reason(invitation: Invitation | None, now) -> ErrorKind | None:
    if invitation is None:
        return ErrorKind.INVALID_TOKEN
    if invitation.used:
        return ErrorKind.USED
    if now > invitation.expires_at:
        return ErrorKind.EXPIRED
    return None


def create_invitation(
    db: Session,
    actor: AuthenticatedActor,
    email: str,
    role: RoleEnum | str = RoleEnum.MEMBER,
    *,
    request=None,
    ttl_hours: int | None = None,
) -> Result[IssuedInvitation]:
    gate = authorize(actor, OWNER_OR_ADMIN)
    if not gate.ok:
        return gate
    normalized_role = normalize_role(role)
    if normalized_role not in ASSIGNABLE_ROLES:
        return Err(ErrorKind.INVALID_ROLE, "Invitations can only grant admin or member")
    normalized_email = normalize_email(email or "")
    if "@" not in normalized_email:
        return Err(ErrorKind.VALIDATION, "A valid email is required")
    ttl_hours = ttl_hours if ttl_hours is not None else settings.INVITE_TOKEN_TTL_HOURS
    if ttl_hours <= 0:
        return Err(ErrorKind.VALIDATION, "Invite TTL must be positive")

    secret = generate_token()
    with transaction(db):
        invitation = Invitation(
            organization_id=actor.organization_id,
            email=normalized_email,
            role=normalized_role,
            token_hash=hash_token(secret),
            expires_at=utcnow() + timedelta(hours=ttl_hours),
            used=False,
            created_by_user_id=actor.id,
        )
        db.add(invitation)
        db.flush()
        record_audit(
            db,
            actor.organization_id,
            actor.id,
            AuditActionEnum.CREATE_INVITE,
            {"invitation_id": invitation.id, "email": normalized_email, "role": normalized_role.value},
            request=request,
        )
    db.refresh(invitation)
    token = format_invite_token(invitation.id, secret)
    return Ok(IssuedInvitation(invitation=invitation, token=token, link=build_invite_link(token)))


def validate_invitation(db: Session, token: str) -> InvitationCheck:
    """Read-only: never mutates the invitation, whatever its state."""
    invitation = _load_invitation(db, token)
    if _unusable_reason(invitation, utcnow()) is not None:
        return InvitationCheck(valid=False)
    return InvitationCheck(
        valid=True,
        email=invitation.email,
        organization_name=invitation.organization.name if invitation.organization else None,
        role=invitation.role,
    )


def accept_invitation(
    db: Session,
    token: str,
    name: str,
    password: str,
    email: str | None = None,
    *,
    request=None,
) -> Result[User]:
    """
    Create the invited user and burn the invitation in one transaction.

    The invitation row is locked and then claimed with a conditional update,
    so of any number of concurrent acceptances exactly one creates a user;
    the others get USED.
    """
    if not password or not password.strip():
        return Err(ErrorKind.VALIDATION, "Password is required")
    try:
        with transaction(db):
            now = utcnow()
            invitation = _load_invitation(db, token, for_update=True)
            reason = _unusable_reason(invitation, now)
            if reason is not None:
                return Err(reason)
            if email is not None and normalize_email(email) != invitation.email:
                return Err(ErrorKind.EMAIL_MISMATCH)
            if get_user_by_email(db, invitation.email) is not None:
                db.refresh(invitation)
                return Err(ErrorKind.USED if invitation.used else ErrorKind.USER_EXISTS)

            user = build_user(
                email=invitation.email,
                password_hash=get_password_hash(password),
                organization_id=invitation.organization_id,
                role=invitation.role,
                name=name,
                is_verified=True,
            )
            db.add(user)
            db.flush()

            claimed = (
                db.query(Invitation)
                .filter(Invitation.id == invitation.id, Invitation.used.is_(False))
                .update({Invitation.used: True, Invitation.used_at: now}, synchronize_session=False)
            )
            if claimed != 1:
                raise _InvitationAlreadyClaimed()

            record_audit(
                db,
                invitation.organization_id,
                user.id,
                AuditActionEnum.ACCEPT_INVITE,
                {"invitation_id": invitation.id, "email": invitation.email, "role": user.role.value},
                request=request,
            )
    except _InvitationAlreadyClaimed:
        return Err(ErrorKind.USED)
    except IntegrityError:
        # Lost a race on the unique email constraint. If the winner was a
        # concurrent acceptance of this same invitation, report it as used.
        invitation_id = parse_invite_token(token)[0]
        logger.info("invite.accept_conflict", extra={"invitation_id": invitation_id})
        if _claimed_since(db, invitation_id):
            return Err(ErrorKind.USED)
        return Err(ErrorKind.USER_EXISTS)
    db.refresh(user)
    return Ok(user)


def revoke_invitation(
    db: Session,
    actor: AuthenticatedActor,
    invitation_id: int,
    *,
    request=None,
) -> Result[str]:
    gate = authorize(actor, OWNER_OR_ADMIN)
    if not gate.ok:
        return gate
    with transaction(db):
        invitation = get_tenant_owned(db, Invitation, actor.organization_id, invitation_id, for_update=True)
        if invitation is None:
            return Err(ErrorKind.NOT_FOUND, "Invitation not found")
        email = invitation.email
        db.delete(invitation)
        record_audit(
            db,
            actor.organization_id,
            actor.id,
            AuditActionEnum.REVOKE_INVITE,
            {"invitation_id": invitation_id, "email": email},
            request=request,
        )
    return Ok(email)


def list_pending_invitations(db: Session, organization_id: int) -> list[Invitation]:
    return (
        scoped_query(db, Invitation, organization_id)
        .filter(Invitation.used.is_(False), Invitation.expires_at > utcnow())
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
        .all()
    )
