"""
Training Service.

Handles:
- Gathering gold-labelled reviews as training data
- Training, versioning and activating classifier models
- Keeping the process classifier slot in step with the active version

A retrain reads the gold counter, trains, inserts the version, deactivates
older versions and consumes the counted labels in one transaction. The
classifier slot is swapped only after that transaction commits.
"""

import logging
import math
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .classifier import (
    ClassifierSlot,
    LoadedClassifier,
    TextClassifier,
    classifier_slot as default_slot,
    load_classifier,
    model_path_for_version,
)
from .config import Settings, settings as default_settings
from .db_models import DBContent, DBModelVersion, DBReview
from .exceptions import (
    ActiveModelMismatchError,
    InsufficientTrainingDataError,
    NoActiveModelError,
    RetrainConflictError,
)
from .models import Decision, TrainingMetrics, utcnow
from .threshold_service import ThresholdService

logger = logging.getLogger(__name__)


def sanitize_metric(value: float) -> float:
    """Replace NaN/Infinity with 0.0; the store rejects non-finite floats."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _discard(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        os.remove(path)


@dataclass(frozen=True)
class RetrainOutcome:
    version: DBModelVersion
    metrics: TrainingMetrics
    activated: bool


class TrainingService:
    """Trains classifier versions from moderator feedback."""

    def __init__(
        self,
        db: Session,
        slot: Optional[ClassifierSlot] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        classifier_factory: Callable[[], TextClassifier] = TextClassifier,
    ):
        self.db = db
        self.slot = slot or default_slot
        self.config = config or default_settings
        self.clock = clock or utcnow
        self.classifier_factory = classifier_factory
        self.thresholds = ThresholdService(db, config=self.config, clock=self.clock)

    # =============================================================================
    # Training Data
    # =============================================================================

    def gather_training_data(self) -> Tuple[List[str], List[bool]]:
        """Texts of gold-labelled content, labelled True when the gold label is block."""
        rows = (
            self.db.query(DBContent.text, DBReview.gold_label)
            .join(DBReview, DBReview.content_id == DBContent.id)
            .filter(DBReview.gold_label.isnot(None))
            .order_by(DBReview.reviewed_at.asc())
            .all()
        )
        texts = [text or "" for text, _ in rows]
        labels = [gold_label == Decision.BLOCK.value for _, gold_label in rows]
        return texts, labels

    def should_retrain(self) -> bool:
        return self.thresholds.get_settings().should_retrain

    # =============================================================================
    # Retraining
    # =============================================================================

    def next_version(self) -> int:
        current = self.db.query(func.max(DBModelVersion.version)).scalar()
        return (current or 0) + 1

    def retrain(self, activate: bool = True) -> RetrainOutcome:
        """
        Train a new version from all gold labels.

        Raises InsufficientTrainingDataError when there are fewer than
        ``min_training_samples`` labels and RetrainConflictError when a
        concurrent retrain committed the same version first. Nothing is
        written in either case.

        The model is saved to a staging file and moved to its version path
        only after the version row commits, so a losing concurrent retrain
        never overwrites the winner's file.
        """
        counted_labels = self.thresholds.get_settings().new_gold_since_last_train
        texts, labels = self.gather_training_data()
        if len(texts) < self.config.min_training_samples:
            raise InsufficientTrainingDataError(self.config.min_training_samples, len(texts))

        version_number = None
        staging_path = None
        try:
            model = self.classifier_factory()
            metrics = model.train(texts, labels)

            version_number = self.next_version()
            path = model_path_for_version(self.config.models_dir, version_number)
            staging_path = f"{path}.{uuid.uuid4().hex}.tmp"
            model.save(staging_path)

            now = self.clock()
            version = DBModelVersion(
                version=version_number,
                accuracy=sanitize_metric(metrics.accuracy),
                precision=sanitize_metric(metrics.precision),
                recall=sanitize_metric(metrics.recall),
                f1_score=sanitize_metric(metrics.f1_score),
                is_active=activate,
                model_path=path,
                trained_at=now,
                training_sample_count=metrics.sample_count,
            )
            if activate:
                self.db.query(DBModelVersion).filter(DBModelVersion.is_active.is_(True)).update(
                    {DBModelVersion.is_active: False}, synchronize_session=False
                )
            self.db.add(version)
            self.thresholds.consume_gold_labels(counted_labels, now)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            _discard(staging_path)
            raise RetrainConflictError(version_number) from e
        except Exception:
            self.db.rollback()
            _discard(staging_path)
            raise

        os.replace(staging_path, path)
        self.db.refresh(version)
        if activate:
            self.slot.swap(LoadedClassifier(model=model, version=version_number))

        logger.info(
            f"Trained model v{version_number} on {metrics.sample_count} samples "
            f"(accuracy={version.accuracy:.3f}, f1={version.f1_score:.3f}, active={activate})"
        )
        return RetrainOutcome(version=version, metrics=metrics, activated=activate)

    def retrain_if_needed(self) -> Optional[RetrainOutcome]:
        """Retrain when enabled and enough new labels arrived. None otherwise."""
        if not self.should_retrain():
            return None
        return self.retrain(activate=True)

    # =============================================================================
    # Model Versions
    # =============================================================================

    def list_versions(self) -> List[DBModelVersion]:
        return self.db.query(DBModelVersion).order_by(DBModelVersion.version.desc()).all()

    def get_active_version(self) -> Optional[DBModelVersion]:
        return (
            self.db.query(DBModelVersion)
            .filter(DBModelVersion.is_active.is_(True))
            .order_by(DBModelVersion.version.desc())
            .first()
        )

    def reload_active(self) -> LoadedClassifier:
        """Load the active version from disk into the slot."""
        active = self.get_active_version()
        if active is None:
            raise NoActiveModelError()
        loaded = load_classifier(active.model_path, active.version)
        self.slot.swap(loaded)
        return loaded

    def save_active(self) -> str:
        """
        Write the live classifier to the active version's path.

        Refuses when the slot holds a different version than the active one,
        e.g. after another process trained a newer model.
        """
        active = self.get_active_version()
        if active is None:
            raise NoActiveModelError()
        state = self.slot.get()
        if not isinstance(state, LoadedClassifier):
            raise NoActiveModelError()
        if state.version != active.version:
            raise ActiveModelMismatchError(state.version, active.version)
        state.model.save(active.model_path)
        return active.model_path

    def sync_active_model(self) -> bool:
        """
        Make the slot match the active version. Returns True if it changed.

        Run at the start of each moderation tick so a model activated by
        another process is picked up. A missing model file is logged and the
        current state is kept.
        """
        active = self.get_active_version()
        current = self.slot.get()

        if active is None:
            if current.is_loaded and current.version is not None:
                logger.info(f"No active model version; unloading v{current.version}")
                self.slot.clear()
                return True
            return False

        if current.version == active.version:
            return False

        if not os.path.exists(active.model_path):
            logger.warning(
                f"Active model v{active.version} file missing at {active.model_path}; "
                f"keeping version {current.version}"
            )
            return False

        self.slot.swap(load_classifier(active.model_path, active.version))
        return True
