"""
Queue Service.

The contents table doubles as the moderation queue. Claiming an item is a
conditional UPDATE (status must still be queued), so concurrent workers can
never both move the same item into processing.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from .db_models import DBContent
from .exceptions import ContentNotFoundError
from .models import ContentStatus, utcnow

logger = logging.getLogger(__name__)

# Claim attempts before reporting an empty queue under heavy contention
MAX_CLAIM_ATTEMPTS = 5


class QueueService:
    """Queue store operations over the contents table."""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utcnow

    def _oldest_queued_id(self) -> Optional[str]:
        row = (
            self.db.query(DBContent.id)
            .filter(DBContent.status == ContentStatus.QUEUED.value)
            .order_by(DBContent.created_at.asc(), DBContent.id.asc())
            .first()
        )
        return row.id if row else None

    def _claim(self, content_id: str) -> bool:
        claimed = (
            self.db.query(DBContent)
            .filter(DBContent.id == content_id, DBContent.status == ContentStatus.QUEUED.value)
            .update(
                {DBContent.status: ContentStatus.PROCESSING.value, DBContent.claimed_at: self.clock()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return claimed == 1

    def dequeue_next_queued(self) -> Optional[DBContent]:
        """
        Claim the oldest queued item and return it with its author loaded.

        The claim is committed before returning. Returns None when the queue
        is empty.
        """
        for _ in range(MAX_CLAIM_ATTEMPTS):
            content_id = self._oldest_queued_id()
            if content_id is None:
                return None
            if self._claim(content_id):
                logger.debug(f"Claimed content {content_id}")
                return (
                    self.db.query(DBContent)
                    .options(joinedload(DBContent.author))
                    .populate_existing()
                    .filter(DBContent.id == content_id)
                    .one()
                )
            logger.debug(f"Content {content_id} was claimed by another worker, retrying")
        return None

    def enqueue(self, content: DBContent) -> DBContent:
        content.status = ContentStatus.QUEUED.value
        content.claimed_at = None
        content.processed_at = None
        if content not in self.db:
            self.db.add(content)
        self.db.commit()
        self.db.refresh(content)
        return content

    def get_content(self, content_id: str) -> DBContent:
        content = self.db.query(DBContent).filter(DBContent.id == content_id).first()
        if content is None:
            raise ContentNotFoundError(content_id)
        return content

    def update_status(self, content_id: str, status: ContentStatus) -> DBContent:
        content = self.get_content(content_id)
        content.status = status.value
        if status in (ContentStatus.APPROVED, ContentStatus.PENDING_REVIEW, ContentStatus.BLOCKED):
            content.processed_at = self.clock()
        self.db.commit()
        return content

    def send_to_review(self, content_id: str) -> DBContent:
        """Manually move any item to pending_review."""
        content = self.update_status(content_id, ContentStatus.PENDING_REVIEW)
        logger.info(f"Content {content_id} sent to review")
        return content

    def list_by_status(self, status: ContentStatus, limit: int = 100) -> List[DBContent]:
        return (
            self.db.query(DBContent)
            .options(joinedload(DBContent.author))
            .filter(DBContent.status == status.value)
            .order_by(DBContent.created_at.asc())
            .limit(limit)
            .all()
        )

    def reset_stuck(self, timeout_minutes: int) -> int:
        """Requeue processing items whose claim is older than ``timeout_minutes``."""
        cutoff = self.clock() - timedelta(minutes=timeout_minutes)
        reset = (
            self.db.query(DBContent)
            .filter(
                DBContent.status == ContentStatus.PROCESSING.value,
                or_(
                    DBContent.claimed_at < cutoff,
                    and_(DBContent.claimed_at.is_(None), DBContent.created_at < cutoff),
                ),
            )
            .update(
                {
                    DBContent.status: ContentStatus.QUEUED.value,
                    DBContent.claimed_at: None,
                    DBContent.processed_at: None,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        if reset:
            logger.warning(f"Requeued {reset} content items stuck in processing for over {timeout_minutes} min")
        return reset
