"""
Shared Dependencies for the Content Moderation Agent API.

Provides:
- The process classifier slot
- The image classifier capability
- Service factories bound to the request's database session
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from .classifier import ClassifierSlot, classifier_slot
from .config import settings
from .content_service import ContentService
from .database import get_db
from .image_classifier import ImageClassifier, NullImageClassifier
from .queue_service import QueueService
from .review_service import ReviewService
from .threshold_service import ThresholdService
from .training_service import TrainingService
from .wordlist_service import WordlistService
from .exceptions import RetrainSkippedError

logger = logging.getLogger(__name__)

# =============================================================================
# Service Instances
# =============================================================================

# No image model ships with the service; deployments override this dependency
image_classifier: ImageClassifier = NullImageClassifier()


def get_classifier_slot() -> ClassifierSlot:
    return classifier_slot


def get_image_classifier() -> ImageClassifier:
    return image_classifier


# =============================================================================
# Request-scoped Services
# =============================================================================

def get_content_service(
    db: Session = Depends(get_db),
    images: ImageClassifier = Depends(get_image_classifier),
) -> ContentService:
    return ContentService(db, image_classifier=images)


def get_queue_service(db: Session = Depends(get_db)) -> QueueService:
    return QueueService(db)


def get_threshold_service(db: Session = Depends(get_db)) -> ThresholdService:
    return ThresholdService(db)


def get_wordlist_service(db: Session = Depends(get_db)) -> WordlistService:
    return WordlistService(db)


def get_training_service(
    db: Session = Depends(get_db),
    slot: ClassifierSlot = Depends(get_classifier_slot),
) -> TrainingService:
    return TrainingService(db, slot=slot)


def get_review_service(
    db: Session = Depends(get_db),
    slot: ClassifierSlot = Depends(get_classifier_slot),
) -> ReviewService:
    on_gold_label = None
    if settings.retrain_on_gold_label:
        def on_gold_label():
            try:
                TrainingService(db, slot=slot).retrain_if_needed()
            except RetrainSkippedError as e:
                logger.warning(str(e))

    return ReviewService(db, on_gold_label=on_gold_label)
