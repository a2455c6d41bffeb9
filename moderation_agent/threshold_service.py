"""
Threshold Service (settings store and threshold adaptation).

Handles:
- The singleton system_settings row (lazily created with defaults)
- Manual threshold / retraining updates
- Gold-label counter bookkeeping
- Adapting thresholds from recent false positive / false negative rates
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.orm import Session

from .config import Settings, settings as default_settings
from .constants import (
    DEFAULT_ALLOW_THRESHOLD,
    DEFAULT_BLOCK_THRESHOLD,
    DEFAULT_RETRAIN_THRESHOLD,
    DEFAULT_REVIEW_THRESHOLD,
    THRESHOLD_CEILING,
    THRESHOLD_FLOOR,
    THRESHOLD_MIN_GAP,
)
from .db_models import DBPrediction, DBReview, DBSystemSettings
from .exceptions import InvalidThresholdsError
from .models import Decision, ModerationSettings, ThresholdAdjustment, utcnow

logger = logging.getLogger(__name__)

# Rounding keeps repeated +/- steps from accumulating float noise
THRESHOLD_PRECISION = 4


def clamp_thresholds(allow: float, review: float, block: float) -> Tuple[float, float, float]:
    """Clamp into [0.05, 0.95] keeping allow < review < block by at least 0.01."""
    block = min(THRESHOLD_CEILING, max(THRESHOLD_FLOOR + 2 * THRESHOLD_MIN_GAP, block))
    review = min(block - THRESHOLD_MIN_GAP, max(THRESHOLD_FLOOR + THRESHOLD_MIN_GAP, review))
    allow = min(review - THRESHOLD_MIN_GAP, max(THRESHOLD_FLOOR, allow))
    return allow, review, block


def _snapshot(row: DBSystemSettings) -> ModerationSettings:
    return ModerationSettings(
        allow_threshold=row.allow_threshold,
        review_threshold=row.review_threshold,
        block_threshold=row.block_threshold,
        retrain_threshold=row.retrain_threshold,
        new_gold_since_last_train=row.new_gold_since_last_train,
        retraining_enabled=row.retraining_enabled,
        last_retrain_date=row.last_retrain_date,
    )


class ThresholdService:
    """Settings store plus the threshold adaptation computation."""

    def __init__(
        self,
        db: Session,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.config = config or default_settings
        self.clock = clock or utcnow

    # =============================================================================
    # Settings Store
    # =============================================================================

    def get_settings_row(self) -> DBSystemSettings:
        """The singleton settings row, created with defaults on first access."""
        row = self.db.query(DBSystemSettings).order_by(DBSystemSettings.id).first()
        if row is None:
            row = DBSystemSettings(
                allow_threshold=DEFAULT_ALLOW_THRESHOLD,
                review_threshold=DEFAULT_REVIEW_THRESHOLD,
                block_threshold=DEFAULT_BLOCK_THRESHOLD,
                retrain_threshold=DEFAULT_RETRAIN_THRESHOLD,
                new_gold_since_last_train=0,
                retraining_enabled=True,
            )
            self.db.add(row)
            self.db.flush()
            logger.info("Created default system settings")
        return row

    def get_settings(self) -> ModerationSettings:
        return _snapshot(self.get_settings_row())

    def update_thresholds(self, allow: float, review: float, block: float) -> ModerationSettings:
        if not (0.0 <= allow < review < block <= 1.0):
            raise InvalidThresholdsError(allow, review, block)
        row = self.get_settings_row()
        row.allow_threshold = allow
        row.review_threshold = review
        row.block_threshold = block
        self.db.commit()
        logger.info(f"Thresholds updated: allow={allow}, review={review}, block={block}")
        return _snapshot(row)

    def update_retrain_threshold(self, retrain_threshold: int) -> ModerationSettings:
        if retrain_threshold < 1:
            raise ValueError("retrain_threshold must be at least 1")
        row = self.get_settings_row()
        row.retrain_threshold = retrain_threshold
        self.db.commit()
        logger.info(f"Retrain threshold set to {retrain_threshold}")
        return _snapshot(row)

    def set_retraining_enabled(self, enabled: bool) -> ModerationSettings:
        row = self.get_settings_row()
        row.retraining_enabled = enabled
        self.db.commit()
        logger.info(f"Retraining {'enabled' if enabled else 'disabled'}")
        return _snapshot(row)

    def increment_gold_counter(self) -> None:
        """Count one new gold label (in-database increment). Caller commits."""
        row = self.get_settings_row()
        self.db.query(DBSystemSettings).filter(DBSystemSettings.id == row.id).update(
            {DBSystemSettings.new_gold_since_last_train: DBSystemSettings.new_gold_since_last_train + 1},
            synchronize_session=False,
        )

    def consume_gold_labels(self, count: int, trained_at: datetime) -> None:
        """
        Subtract ``count`` labels used by a training run and stamp the date.

        Labels that arrived after the training snapshot stay counted.
        Caller commits.
        """
        row = self.get_settings_row()
        remaining = DBSystemSettings.new_gold_since_last_train - count
        self.db.query(DBSystemSettings).filter(DBSystemSettings.id == row.id).update(
            {
                DBSystemSettings.new_gold_since_last_train: case((remaining < 0, 0), else_=remaining),
                DBSystemSettings.last_retrain_date: trained_at,
            },
            synchronize_session=False,
        )

    # =============================================================================
    # Threshold Adaptation
    # =============================================================================

    def _latest_decision(self, content_id: str) -> Optional[str]:
        prediction = (
            self.db.query(DBPrediction)
            .filter(DBPrediction.content_id == content_id)
            .order_by(DBPrediction.created_at.desc())
            .first()
        )
        return prediction.decision if prediction else None

    def compute_error_rates(self) -> Tuple[int, float, float]:
        """(sample count, false positive rate, false negative rate) over the review window."""
        since = self.clock() - timedelta(days=self.config.threshold_window_days)
        reviews = (
            self.db.query(DBReview)
            .filter(DBReview.reviewed_at.isnot(None), DBReview.reviewed_at >= since)
            .all()
        )
        total = len(reviews)
        if total == 0:
            return 0, 0.0, 0.0

        false_positives = 0
        false_negatives = 0
        for review in reviews:
            predicted = self._latest_decision(review.content_id)
            if predicted == Decision.BLOCK.value and review.gold_label == Decision.ALLOW.value:
                false_positives += 1
            elif predicted == Decision.ALLOW.value and review.gold_label == Decision.BLOCK.value:
                false_negatives += 1

        return total, false_positives / total, false_negatives / total

    def adapt_thresholds(self) -> Optional[ThresholdAdjustment]:
        """
        Nudge thresholds from the last window of reviews.

        Returns None when there are fewer samples than required. Both
        adjustments may apply in the same call; their effects add up.
        """
        total, fp_rate, fn_rate = self.compute_error_rates()
        if total < self.config.threshold_min_samples:
            logger.debug(
                f"Threshold adaptation skipped: {total} samples "
                f"(need {self.config.threshold_min_samples})"
            )
            return None

        row = self.get_settings_row()
        old = self._thresholds(row)
        allow, review, block = row.allow_threshold, row.review_threshold, row.block_threshold

        if fp_rate > self.config.threshold_error_rate:
            block += self.config.block_threshold_step
            review += self.config.review_threshold_step
        if fn_rate > self.config.threshold_error_rate:
            block -= self.config.block_threshold_step
            review -= self.config.review_threshold_step

        if self.config.clamp_thresholds:
            allow, review, block = clamp_thresholds(allow, review, block)

        row.allow_threshold = round(allow, THRESHOLD_PRECISION)
        row.review_threshold = round(review, THRESHOLD_PRECISION)
        row.block_threshold = round(block, THRESHOLD_PRECISION)
        self.db.commit()

        adjustment = ThresholdAdjustment(
            sample_count=total,
            false_positive_rate=fp_rate,
            false_negative_rate=fn_rate,
            old=old,
            new=self._thresholds(row),
        )
        if adjustment.changed:
            logger.info(
                f"Thresholds adapted (samples={total}, fp={fp_rate:.3f}, fn={fn_rate:.3f}): "
                f"{adjustment.old} -> {adjustment.new}"
            )
        return adjustment

    @staticmethod
    def _thresholds(row: DBSystemSettings) -> Dict[str, float]:
        return {
            "allow": row.allow_threshold,
            "review": row.review_threshold,
            "block": row.block_threshold,
        }
