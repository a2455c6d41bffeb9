"""
Shared test fixtures for all test modules.

Provides:
- Test environment setup (TESTING=true, throwaway database and model paths)
- engine / db_session: fresh SQLite database per test
- session_factory: get_db_context-style sessions bound to the test database
- fixed_clock: deterministic "now" (a Wednesday at noon, UTC)
- make_author / make_content: row builders
"""

import os
import tempfile
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

import pytest

# =============================================================================
# Test Environment Configuration
# =============================================================================

_TEST_DIR = tempfile.mkdtemp(prefix="moderation-tests-")

os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_TEST_DIR, 'app.db')}"
os.environ['MODERATION_MODELS_DIR'] = os.path.join(_TEST_DIR, 'models')

from sqlalchemy.orm import sessionmaker, Session  # noqa: E402

from moderation_agent.classifier import ClassifierSlot  # noqa: E402
from moderation_agent.config import settings  # noqa: E402
from moderation_agent.database import create_db_engine  # noqa: E402
from moderation_agent.db_models import Base, DBAuthor, DBContent  # noqa: E402
from moderation_agent.models import ContentStatus  # noqa: E402

FIXED_NOW = datetime(2024, 1, 10, 12, 0, 0)  # Wednesday, 12:00 UTC


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate sessions use separate connections."""
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_maker) -> Session:
    session = session_maker()
    yield session
    session.close()


@pytest.fixture
def session_factory(session_maker):
    """Context-manager factory with the same semantics as get_db_context."""

    @contextmanager
    def factory():
        session = session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def test_config(tmp_path):
    return settings.model_copy(update={"models_dir": str(tmp_path / "models")})


@pytest.fixture
def slot():
    return ClassifierSlot()


# =============================================================================
# Row Builders
# =============================================================================

@pytest.fixture
def make_author(db_session):
    def build(
        username: str = "new_user",
        reputation_score: int = 50,
        account_age_days: int = 0,
        previous_violations: int = 0,
    ) -> DBAuthor:
        author = DBAuthor(
            username=username,
            reputation_score=reputation_score,
            account_age_days=account_age_days,
            previous_violations=previous_violations,
        )
        db_session.add(author)
        db_session.commit()
        return author

    return build


@pytest.fixture
def make_content(db_session, make_author):
    def build(
        text: str = "",
        author: Optional[DBAuthor] = None,
        status: ContentStatus = ContentStatus.QUEUED,
        created_at: Optional[datetime] = None,
        claimed_at: Optional[datetime] = None,
    ) -> DBContent:
        if author is None:
            author = db_session.query(DBAuthor).filter_by(username="new_user").first() or make_author()
        content = DBContent(
            text=text,
            author_id=author.id,
            status=status.value,
            created_at=created_at or FIXED_NOW,
            claimed_at=claimed_at,
        )
        db_session.add(content)
        db_session.commit()
        return content

    return build
