from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.mixins import CreatedAtMixin


class Organization(CreatedAtMixin, Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)

    users = relationship(
        "User",
        back_populates="organization",
        lazy="selectin",
        passive_deletes=True,
    )
