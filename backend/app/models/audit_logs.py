from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from app.core.db import Base
from app.models.mixins import CreatedAtMixin

JSON_TYPE = JSONB().with_variant(JSON, "sqlite")


# Append-only. Rows outlive the users they mention (user_id is nulled
# when a member is removed).
class AuditLog(CreatedAtMixin, Base):
    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_org_time", "organization_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = Column(String, nullable=False, index=True)
    # "metadata" is reserved on declarative classes.
    details = Column("metadata", JSON_TYPE, nullable=True)
    ip_address = Column(String, nullable=True)
