"""
Content submission and lookups.

Submitting content finds or creates the author, stores the item as queued,
and classifies an attached image once so the scoring pass can reuse the
stored label.
"""

import base64
import binascii
import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from .constants import DEFAULT_AUTHOR_REPUTATION
from .db_models import DBAuthor, DBContent, DBContentImage, DBPrediction
from .exceptions import ContentNotFoundError
from .image_classifier import ImageClassifier, NullImageClassifier
from .models import (
    ContentCreate,
    ContentResponse,
    ContentStatus,
    ImageAttachment,
    PredictionResponse,
)

logger = logging.getLogger(__name__)


class ContentService:
    """Creates content items and reads them back with their latest prediction."""

    def __init__(self, db: Session, image_classifier: Optional[ImageClassifier] = None):
        self.db = db
        self.image_classifier = image_classifier or NullImageClassifier()

    def get_or_create_author(self, username: str) -> DBAuthor:
        author = self.db.query(DBAuthor).filter(DBAuthor.username == username).first()
        if author is None:
            author = DBAuthor(
                username=username,
                reputation_score=DEFAULT_AUTHOR_REPUTATION,
                account_age_days=0,
                previous_violations=0,
            )
            self.db.add(author)
            self.db.flush()
            logger.info(f"Created author '{username}'")
        return author

    def _attach_image(self, content: DBContent, attachment: ImageAttachment) -> None:
        try:
            image_bytes = base64.b64decode(attachment.content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Image content is not valid base64: {e}") from e

        signal = self.image_classifier.classify(image_bytes)
        content.image = DBContentImage(
            file_path=attachment.filename,
            mime_type=attachment.mime_type,
            file_size=len(image_bytes),
            classification_label=signal.label if signal else None,
            classification_confidence=signal.confidence if signal else None,
        )
        if signal:
            logger.info(f"Image for content classified as '{signal.label}' ({signal.confidence:.2f})")

    def submit(self, request: ContentCreate) -> DBContent:
        """Store a new queued content item."""
        author = self.get_or_create_author(request.author_username)
        content = DBContent(
            type=request.type.value,
            text=request.text,
            author=author,
            thread_id=request.thread_id,
            status=ContentStatus.QUEUED.value,
        )
        if request.image is not None:
            self._attach_image(content, request.image)

        self.db.add(content)
        self.db.commit()
        self.db.refresh(content)
        logger.info(f"Queued content {content.id} from '{author.username}'")
        return content

    def get(self, content_id: str) -> DBContent:
        content = (
            self.db.query(DBContent)
            .options(joinedload(DBContent.author), joinedload(DBContent.image))
            .filter(DBContent.id == content_id)
            .first()
        )
        if content is None:
            raise ContentNotFoundError(content_id)
        return content

    def latest_prediction(self, content_id: str) -> Optional[DBPrediction]:
        return (
            self.db.query(DBPrediction)
            .filter(DBPrediction.content_id == content_id)
            .order_by(DBPrediction.created_at.desc())
            .first()
        )

    def to_response(self, content: DBContent) -> ContentResponse:
        prediction = self.latest_prediction(content.id)
        return ContentResponse(
            id=content.id,
            type=content.type,
            text=content.text,
            author_id=content.author_id,
            author_username=content.author.username if content.author else None,
            thread_id=content.thread_id,
            status=content.status,
            created_at=content.created_at,
            processed_at=content.processed_at,
            image_label=content.image.classification_label if content.image else None,
            image_confidence=content.image.classification_confidence if content.image else None,
            latest_prediction=PredictionResponse.model_validate(prediction) if prediction else None,
        )
