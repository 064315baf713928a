from sqlalchemy import Column, DateTime

from app.core.time import utcnow


class CreatedAtMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)


class TimestampMixin(CreatedAtMixin):
    # Rows are only modified through ORM flushes, so onupdate is enough
    # to keep updated_at current.
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
