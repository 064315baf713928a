from uuid import uuid4

from app.core.security import get_password_hash
from app.crud.organizations import create_organization
from app.crud.users import create_user
from app.models.enums import RoleEnum

DEFAULT_PASSWORD = "pw-123456"

# bcrypt is slow on purpose; hash the shared test password once.
_DEFAULT_PASSWORD_HASH = get_password_hash(DEFAULT_PASSWORD)


def make_organization(db, *, name: str | None = None):
    return create_organization(db, name=name or f"Org {uuid4().hex[:6]}")


def make_user(
    db,
    *,
    organization,
    role: RoleEnum | str = RoleEnum.MEMBER,
    email: str | None = None,
    name: str | None = None,
    active: bool = True,
):
    user = create_user(
        db,
        email=email or f"user_{uuid4().hex[:8]}@example.com",
        password_hash=_DEFAULT_PASSWORD_HASH,
        organization_id=organization.id,
        role=role,
        name=name,
        is_verified=True,
    )
    if not active:
        user.active = False
        db.commit()
        db.refresh(user)
    return user


def make_team(db, *, name: str | None = None):
    """An organization with one owner, one admin and one member."""
    organization = make_organization(db, name=name)
    owner = make_user(db, organization=organization, role=RoleEnum.OWNER, name="Owner")
    admin = make_user(db, organization=organization, role=RoleEnum.ADMIN, name="Admin")
    member = make_user(db, organization=organization, role=RoleEnum.MEMBER, name="Member")
    return organization, owner, admin, member
