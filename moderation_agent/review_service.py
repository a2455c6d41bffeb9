"""
Review Service.

Records moderator feedback. A review is created empty and then labelled.
The first gold label on a review counts once toward retraining; labelling
the same review again updates it without counting it a second time.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .db_models import DBContent, DBPrediction, DBReview
from .exceptions import ContentNotFoundError, ReviewNotFoundError
from .models import Decision, utcnow
from .threshold_service import ThresholdService

logger = logging.getLogger(__name__)


class ReviewService:
    """Creates and labels reviews, keeping the gold-label counter in step."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Callable[[], datetime]] = None,
        on_gold_label: Optional[Callable[[], None]] = None,
    ):
        self.db = db
        self.clock = clock or utcnow
        self.on_gold_label = on_gold_label

    def create_review(self, content_id: str) -> DBReview:
        if self.db.query(DBContent.id).filter(DBContent.id == content_id).first() is None:
            raise ContentNotFoundError(content_id)
        review = DBReview(content_id=content_id, created_at=self.clock())
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def get_review(self, review_id: str) -> DBReview:
        review = self.db.query(DBReview).filter(DBReview.id == review_id).first()
        if review is None:
            raise ReviewNotFoundError(review_id)
        return review

    def latest_review_for(self, content_id: str) -> Optional[DBReview]:
        return (
            self.db.query(DBReview)
            .filter(DBReview.content_id == content_id)
            .order_by(DBReview.created_at.desc())
            .first()
        )

    def _latest_decision(self, content_id: str) -> Optional[str]:
        prediction = (
            self.db.query(DBPrediction)
            .filter(DBPrediction.content_id == content_id)
            .order_by(DBPrediction.created_at.desc())
            .first()
        )
        return prediction.decision if prediction else None

    def update_review(
        self,
        review_id: str,
        gold_label: Decision,
        feedback: Optional[str] = None,
        moderator_id: Optional[str] = None,
    ) -> DBReview:
        """
        Set the gold label on a review and move its content accordingly.

        allow -> approved, block -> blocked, review -> stays pending_review.
        """
        review = self.get_review(review_id)
        first_label = review.gold_label is None
        now = self.clock()

        predicted = self._latest_decision(review.content_id)
        review.gold_label = gold_label.value
        review.correct_decision = (predicted == gold_label.value) if predicted is not None else None
        review.feedback = feedback
        review.moderator_id = moderator_id
        review.reviewed_at = now

        content = review.content
        if content is not None:
            content.status = gold_label.content_status.value
            content.processed_at = now

        if first_label:
            ThresholdService(self.db).increment_gold_counter()

        self.db.commit()
        self.db.refresh(review)
        logger.info(
            f"Review {review.id} on content {review.content_id}: gold={gold_label.value}, "
            f"predicted={predicted}, counted={first_label}"
        )

        if first_label and self.on_gold_label is not None:
            self.on_gold_label()
        return review

    def submit_review(
        self,
        content_id: str,
        gold_label: Decision,
        feedback: Optional[str] = None,
        moderator_id: Optional[str] = None,
    ) -> DBReview:
        """Label the content's latest review, creating one if it has none."""
        review = self.latest_review_for(content_id)
        if review is None:
            review = self.create_review(content_id)
        return self.update_review(review.id, gold_label, feedback, moderator_id)
