from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.db import transaction
from app.core.errors import Err, ErrorKind, Ok, Result
from app.core.security import get_password_hash
from app.crud.users import build_user, count_owners, get_user_by_email
from app.models.enums import RoleEnum
from app.models.organizations import Organization
from app.models.users import User


def create_organization(db: Session, name: str) -> Organization:
    organization = Organization(name=name.strip())
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def get_organization_by_name(db: Session, name: str) -> Organization | None:
    return db.query(Organization).filter(Organization.name == name.strip()).first()


def provision_user(
    db: Session,
    *,
    organization_name: str,
    email: str,
    password: str,
    role: RoleEnum | str = RoleEnum.MEMBER,
    name: str | None = None,
) -> Result[User]:
    """
    Create a user in the named organization, creating the organization first
    when it does not exist yet. A new organization's first user must be its
    owner, and an existing organization never gets a second owner.
    """
    resolved_role = RoleEnum(role)
    if get_user_by_email(db, email) is not None:
        return Err(ErrorKind.USER_EXISTS)
    try:
        with transaction(db):
            organization = get_organization_by_name(db, organization_name)
            if organization is None:
                if resolved_role != RoleEnum.OWNER:
                    return Err(ErrorKind.VALIDATION, "A new organization must start with its owner")
                organization = Organization(name=organization_name.strip())
                db.add(organization)
                db.flush()
            elif resolved_role == RoleEnum.OWNER and count_owners(db, organization.id) > 0:
                return Err(ErrorKind.VALIDATION, "Organization already has an owner")
            user = build_user(
                email=email,
                password_hash=get_password_hash(password),
                organization_id=organization.id,
                role=resolved_role,
                name=name,
                is_verified=True,
            )
            db.add(user)
            db.flush()
    except IntegrityError:
        return Err(ErrorKind.USER_EXISTS)
    db.refresh(user)
    return Ok(user)
