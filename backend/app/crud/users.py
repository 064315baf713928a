from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.enums import RoleEnum
from app.models.users import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def build_user(
    *,
    email: str,
    password_hash: str,
    organization_id: int,
    role: RoleEnum | str = RoleEnum.MEMBER,
    name: str | None = None,
    is_verified: bool = False,
) -> User:
    return User(
        email=normalize_email(email),
        password_hash=password_hash,
        organization_id=organization_id,
        role=RoleEnum(role),
        name=name.strip() if name else None,
        active=True,
        is_verified=is_verified,
    )


def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    organization_id: int,
    role: RoleEnum | str = RoleEnum.MEMBER,
    name: str | None = None,
    is_verified: bool = False,
) -> User:
    user = build_user(
        email=email,
        password_hash=password_hash,
        organization_id=organization_id,
        role=role,
        name=name,
        is_verified=is_verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def count_owners(db: Session, organization_id: int) -> int:
    return (
        db.query(func.count(User.id))
        .filter(User.organization_id == organization_id, User.role == RoleEnum.OWNER)
        .scalar()
        or 0
    )
