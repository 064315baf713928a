from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.enums import RoleEnum
from app.models.mixins import TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_org_role", "organization_id", "role"),)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    organization_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    role = Column(
        Enum(
            RoleEnum,
            name="user_role_enum",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=RoleEnum.MEMBER,
    )
    active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    organization = relationship("Organization", back_populates="users", lazy="selectin")
