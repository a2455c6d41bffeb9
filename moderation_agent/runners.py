"""
Periodic runners.

Each runner performs one iteration ("tick") of a loop in its own database
session. Runners raise on failure; the loop that drives them (worker.py or
the Celery tasks) decides how to log and back off.

- ModerationRunner: claim one queued item and score it
- ThresholdUpdateRunner: adapt thresholds from recent reviews
- RetrainRunner: retrain the classifier when enough new labels arrived
- StuckItemSweeper: requeue items stuck in processing
"""

import logging
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, Optional

from sqlalchemy.orm import Session

from .classifier import ClassifierSlot, classifier_slot as default_slot
from .config import Settings, settings as default_settings
from .database import get_db_context
from .exceptions import RetrainSkippedError
from .models import ModerationResult, ThresholdAdjustment, utcnow
from .queue_service import QueueService
from .redis_client import publish_result
from .scoring_service import ScoringService
from .threshold_service import ThresholdService
from .training_service import RetrainOutcome, TrainingService

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


class ModerationRunner:
    """One dequeue plus one full scoring pass per tick."""

    def __init__(
        self,
        session_factory: SessionFactory = get_db_context,
        slot: Optional[ClassifierSlot] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        notifier: Callable[[Dict[str, Any]], Any] = publish_result,
    ):
        self.session_factory = session_factory
        self.slot = slot or default_slot
        self.config = config or default_settings
        self.clock = clock or utcnow
        self.notifier = notifier

    def _sync_model(self, db: Session) -> None:
        try:
            TrainingService(db, slot=self.slot, config=self.config).sync_active_model()
        except Exception as e:
            # Keep scoring with the current model; the next tick retries the reload
            logger.warning(f"Could not sync active model: {e}")

    def tick(self) -> Optional[ModerationResult]:
        """
        Process the oldest queued item.

        Returns None when the queue is empty. Raises ScoringError when the
        scoring pass fails; the item then stays in processing until the
        stuck sweep requeues it.
        """
        with self.session_factory() as db:
            self._sync_model(db)
            moderation_settings = ThresholdService(db, config=self.config).get_settings()

            content = QueueService(db, clock=self.clock).dequeue_next_queued()
            if content is None:
                return None

            result = ScoringService(
                db, slot=self.slot, config=self.config, clock=self.clock
            ).score_content(content, moderation_settings)

        self.notifier(result.notification())
        return result


class ThresholdUpdateRunner:
    """Hourly threshold adaptation."""

    def __init__(
        self,
        session_factory: SessionFactory = get_db_context,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory
        self.config = config or default_settings
        self.clock = clock or utcnow

    def tick(self) -> Optional[ThresholdAdjustment]:
        with self.session_factory() as db:
            return ThresholdService(db, config=self.config, clock=self.clock).adapt_thresholds()


class RetrainRunner:
    """Retrains when enabled and the gold-label counter reached the threshold."""

    def __init__(
        self,
        session_factory: SessionFactory = get_db_context,
        slot: Optional[ClassifierSlot] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory
        self.slot = slot or default_slot
        self.config = config or default_settings
        self.clock = clock or utcnow

    def tick(self) -> Optional[RetrainOutcome]:
        """
        Returns the outcome, or None when retraining was not due or was
        skipped (too few or unusable labels, a concurrent retrain); the
        next tick retries.
        """
        with self.session_factory() as db:
            service = TrainingService(db, slot=self.slot, config=self.config, clock=self.clock)
            try:
                return service.retrain_if_needed()
            except RetrainSkippedError as e:
                logger.warning(str(e))
                return None


class StuckItemSweeper:
    """Requeues items left in processing beyond the stuck timeout."""

    def __init__(
        self,
        session_factory: SessionFactory = get_db_context,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory
        self.config = config or default_settings
        self.clock = clock or utcnow

    def tick(self) -> int:
        with self.session_factory() as db:
            return QueueService(db, clock=self.clock).reset_stuck(self.config.stuck_timeout_minutes)
