# Database wiring: engine, session factory, declarative Base and the
# request-scoped session dependency. Every check-then-act sequence runs
# inside transaction() so commit/rollback happens on all exit paths.

from contextlib import contextmanager
import logging
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


# SQLite ignores foreign keys unless asked; organization references
# must hold at the storage layer for every engine, including test ones.
@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a unit of work atomically.

    Commits when the block exits normally, rolls back on any exception
    (including cancellation) and re-raises it.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        logger.debug("db.transaction_rolled_back")
        raise
