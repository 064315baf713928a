from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.enums import RoleEnum
from app.models.mixins import CreatedAtMixin


class Invitation(CreatedAtMixin, Base):
    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_org_email", "organization_id", "email"),
        Index("ix_invitations_org_expires_at", "organization_id", "expires_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String, nullable=False)
    role = Column(
        Enum(
            RoleEnum,
            name="invitation_role_enum",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=RoleEnum.MEMBER,
    )
    token_hash = Column(String, nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime, nullable=True)
    created_by_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    organization = relationship("Organization", lazy="selectin")
