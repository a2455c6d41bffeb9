"""
Context Calculator.

Builds the per-content context snapshot (computed once, then cached in the
contexts table) and derives the final-score multiplier from it.

Thread sentiment and engagement level are not computed yet; they hold fixed
neutral values (0.0 and 0.5).
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .constants import (
    DEFAULT_ENGAGEMENT_LEVEL,
    DEFAULT_LANGUAGE,
    DEFAULT_THREAD_SENTIMENT,
    HIGH_ENGAGEMENT_LEVEL,
    HIGH_ENGAGEMENT_MULTIPLIER,
    NIGHT_END_HOUR,
    NIGHT_MULTIPLIER,
    NIGHT_START_HOUR,
    TRUSTED_MULTIPLIER,
    TRUSTED_REPUTATION,
    UNTRUSTED_MULTIPLIER,
    UNTRUSTED_REPUTATION,
    VETERAN_ACCOUNT_AGE_DAYS,
    VETERAN_REPUTATION_BONUS,
    VIOLATION_PENALTY,
)
from .db_models import DBAuthor, DBContent, DBContext
from .exceptions import AuthorNotFoundError
from .models import ContextSnapshot, utcnow

logger = logging.getLogger(__name__)


def normalized_reputation(author: DBAuthor) -> float:
    """Author reputation in [0, 1] from score, account age and violations."""
    reputation = (author.reputation_score or 0) / 100.0
    if (author.account_age_days or 0) > VETERAN_ACCOUNT_AGE_DAYS:
        reputation += VETERAN_REPUTATION_BONUS
    reputation -= (author.previous_violations or 0) * VIOLATION_PENALTY
    return max(0.0, min(1.0, reputation))


def is_night_hour(hour: int) -> bool:
    return hour >= NIGHT_START_HOUR or hour <= NIGHT_END_HOUR


def context_multiplier(context: ContextSnapshot) -> float:
    """Multiplier applied to the final score. Factors compound; no cap."""
    multiplier = 1.0

    if context.author_reputation > TRUSTED_REPUTATION:
        multiplier *= TRUSTED_MULTIPLIER
    elif context.author_reputation < UNTRUSTED_REPUTATION:
        multiplier *= UNTRUSTED_MULTIPLIER

    if is_night_hour(context.time_of_day):
        multiplier *= NIGHT_MULTIPLIER

    if context.engagement_level > HIGH_ENGAGEMENT_LEVEL:
        multiplier *= HIGH_ENGAGEMENT_MULTIPLIER

    return multiplier


def _snapshot_from_row(row: DBContext) -> ContextSnapshot:
    return ContextSnapshot(
        author_reputation=row.author_reputation,
        thread_sentiment=row.thread_sentiment,
        engagement_level=row.engagement_level,
        time_of_day=row.time_of_day,
        day_of_week=row.day_of_week,
        language=row.language,
        content_length=row.content_length,
    )


class ContextService:
    """Computes and caches content context snapshots."""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utcnow

    def build_context(self, content: DBContent, author: DBAuthor) -> ContextSnapshot:
        now = self.clock()
        return ContextSnapshot(
            author_reputation=normalized_reputation(author),
            thread_sentiment=DEFAULT_THREAD_SENTIMENT,
            engagement_level=DEFAULT_ENGAGEMENT_LEVEL,
            time_of_day=now.hour,
            day_of_week=now.isoweekday() % 7,  # 0 = Sunday
            language=DEFAULT_LANGUAGE,
            content_length=len(content.text or ""),
        )

    def get_or_create_context(self, content: DBContent) -> ContextSnapshot:
        """
        Return the cached context for ``content``, computing it on first use.

        The new row is flushed, not committed; it is persisted with the
        scoring pass that requested it.
        """
        cached = self.db.query(DBContext).filter(DBContext.content_id == content.id).first()
        if cached is not None:
            return _snapshot_from_row(cached)

        author = content.author
        if author is None:
            author = self.db.query(DBAuthor).filter(DBAuthor.id == content.author_id).first()
        if author is None:
            raise AuthorNotFoundError(content.author_id)

        snapshot = self.build_context(content, author)
        self.db.add(DBContext(content_id=content.id, **snapshot.as_dict()))
        self.db.flush()
        logger.debug(f"Computed context for content {content.id}: {snapshot}")
        return snapshot
