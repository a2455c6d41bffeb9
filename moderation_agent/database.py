"""
Engine and session plumbing shared by the API, the moderation worker,
Celery tasks and the seed script.

The API and the worker write to the same database from separate processes
(queue claims, status updates, reviews), so SQLite engines wait on locks
instead of failing immediately.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, func, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .config import settings
from .db_models import Base, DBContent
from .models import ContentStatus

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _display_url(url: str) -> str:
    return url.split('@')[-1] if '@' in url else url


def create_db_engine(url: str, busy_timeout: Optional[float] = None) -> Engine:
    """Pooled engine for PostgreSQL; for SQLite, foreign keys on and a lock wait."""
    if url.startswith("postgresql://"):
        return create_engine(
            url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    timeout = busy_timeout if busy_timeout is not None else settings.sqlite_busy_timeout_seconds
    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": timeout},
    )

    @event.listens_for(sqlite_engine, "connect")
    def enable_foreign_keys(dbapi_conn, connection_record):
        # ON DELETE CASCADE from contents to predictions, contexts, reviews
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

logger.info(f"Moderation database: {_display_url(DATABASE_URL)}")


def init_db():
    """Create any missing tables. Alembic owns schema changes in production."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Moderation tables created/verified")
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize moderation tables: {e}")
        raise


def get_db() -> Iterator[Session]:
    """FastAPI dependency; routers and services commit explicitly."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Session for one unit of work outside a request: a worker tick, a Celery
    task or a seeding run. Commits on success, rolls back on exception.

        with get_db_context() as db:
            item = QueueService(db).dequeue_next_queued()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_database_health() -> dict:
    """Connectivity plus queue depth, for the /health endpoint."""
    database_type = "postgresql" if DATABASE_URL.startswith("postgresql://") else "sqlite"
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
            health = {"database_connected": True, "database_type": database_type}
            try:
                health["queued_items"] = (
                    db.query(func.count(DBContent.id))
                    .filter(DBContent.status == ContentStatus.QUEUED.value)
                    .scalar()
                )
            except SQLAlchemyError as e:
                # Connected but not migrated yet
                logger.warning(f"Queue depth unavailable: {e}")
                db.rollback()
                health["queued_items"] = None
            return health
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "database_connected": False,
            "database_type": database_type,
            "database_error": str(e),
        }
