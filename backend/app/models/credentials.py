from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint

from app.core.db import Base
from app.models.mixins import TimestampMixin


class EncryptedCredential(TimestampMixin, Base):
    __tablename__ = "encrypted_credentials"
    __table_args__ = (
        UniqueConstraint("organization_id", "provider", name="uq_encrypted_credentials_org_provider"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider = Column(String, nullable=False)
    ciphertext = Column(Text, nullable=False)
    iv = Column(String, nullable=False)
    auth_tag = Column(String, nullable=False)
