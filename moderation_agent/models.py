"""Data models and schemas for the Content Moderation Agent."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    CATEGORY_HATE,
    CATEGORY_OFFENSIVE,
    CATEGORY_SPAM,
    CATEGORY_TOXIC,
    MAX_TEXT_LENGTH,
    MAX_USERNAME_LENGTH,
    MIN_USERNAME_LENGTH,
)


def utcnow() -> datetime:
    """Naive UTC timestamp (the store keeps timestamps without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Enums
# =============================================================================

class ContentType(str, Enum):
    """Kinds of user-submitted content."""
    COMMENT = "comment"
    POST = "post"
    MESSAGE = "message"


class ContentStatus(str, Enum):
    """Content lifecycle: queued -> processing -> approved | pending_review | blocked."""
    QUEUED = "queued"
    PROCESSING = "processing"
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    BLOCKED = "blocked"


class Decision(str, Enum):
    """Moderation outcome for one scoring pass."""
    ALLOW = "allow"
    REVIEW = "review"
    BLOCK = "block"

    @property
    def content_status(self) -> ContentStatus:
        return _DECISION_STATUS[self]


_DECISION_STATUS = {
    Decision.ALLOW: ContentStatus.APPROVED,
    Decision.REVIEW: ContentStatus.PENDING_REVIEW,
    Decision.BLOCK: ContentStatus.BLOCKED,
}


class ConfidenceLevel(str, Enum):
    """Distance of the final score from the review boundary."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Scoring Values
# =============================================================================

@dataclass(frozen=True)
class CategoryScores:
    """Per-category scores in [0.05, 0.95]. Produced fresh per scoring pass."""
    spam: float
    toxic: float
    hate: float
    offensive: float

    def as_dict(self) -> Dict[str, float]:
        return {
            CATEGORY_SPAM: self.spam,
            CATEGORY_TOXIC: self.toxic,
            CATEGORY_HATE: self.hate,
            CATEGORY_OFFENSIVE: self.offensive,
        }

    @classmethod
    def from_dict(cls, values: Dict[str, float]) -> "CategoryScores":
        return cls(
            spam=values[CATEGORY_SPAM],
            toxic=values[CATEGORY_TOXIC],
            hate=values[CATEGORY_HATE],
            offensive=values[CATEGORY_OFFENSIVE],
        )


@dataclass(frozen=True)
class ContextSnapshot:
    """Per-content context used to derive the score multiplier."""
    author_reputation: float
    thread_sentiment: float
    engagement_level: float
    time_of_day: int
    day_of_week: int
    language: str
    content_length: int

    def as_dict(self) -> Dict:
        return {
            "author_reputation": self.author_reputation,
            "thread_sentiment": self.thread_sentiment,
            "engagement_level": self.engagement_level,
            "time_of_day": self.time_of_day,
            "day_of_week": self.day_of_week,
            "language": self.language,
            "content_length": self.content_length,
        }


@dataclass(frozen=True)
class ModerationSettings:
    """
    Immutable snapshot of the persisted system settings.

    Read once per loop iteration and passed explicitly to the decision engine.
    """
    allow_threshold: float
    review_threshold: float
    block_threshold: float
    retrain_threshold: int
    new_gold_since_last_train: int
    retraining_enabled: bool
    last_retrain_date: Optional[datetime] = None

    @property
    def should_retrain(self) -> bool:
        return self.retraining_enabled and self.new_gold_since_last_train >= self.retrain_threshold


@dataclass(frozen=True)
class ImageSignal:
    """Label and confidence produced by an image classifier."""
    label: str
    confidence: float


@dataclass(frozen=True)
class ModerationResult:
    """Outcome of one decision engine pass, emitted as a result notification."""
    content_id: str
    decision: Decision
    final_score: float
    confidence: ConfidenceLevel
    new_status: ContentStatus
    scores: CategoryScores
    model_version: Optional[int] = None

    def notification(self) -> Dict:
        return {
            "content_id": self.content_id,
            "decision": self.decision.value,
            "final_score": self.final_score,
            "new_status": self.new_status.value,
        }


@dataclass(frozen=True)
class TrainingMetrics:
    """Evaluation metrics returned by classifier training."""
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    sample_count: int

    def as_dict(self) -> Dict:
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1_score": self.f1_score,
            "sample_count": self.sample_count,
        }


@dataclass(frozen=True)
class ThresholdAdjustment:
    """Result of one threshold adaptation tick."""
    sample_count: int
    false_positive_rate: float
    false_negative_rate: float
    old: Dict[str, float] = field(default_factory=dict)
    new: Dict[str, float] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.old != self.new


# =============================================================================
# Content API Models
# =============================================================================

class ImageAttachment(BaseModel):
    """Image attached to a submission (base64 encoded)."""
    filename: Optional[str] = None
    content: str
    mime_type: Optional[str] = None


class ContentCreate(BaseModel):
    """Schema for submitting content for moderation."""
    text: str = Field(default="", max_length=MAX_TEXT_LENGTH)
    author_username: str = Field(..., min_length=MIN_USERNAME_LENGTH, max_length=MAX_USERNAME_LENGTH)
    type: ContentType = ContentType.COMMENT
    thread_id: Optional[str] = None
    image: Optional[ImageAttachment] = None

    @field_validator("author_username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("author_username must not be blank")
        return v


class PredictionResponse(BaseModel):
    """A persisted scoring pass."""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    spam_score: float
    toxic_score: float
    hate_score: float
    offensive_score: float
    final_score: float
    decision: Decision
    confidence: ConfidenceLevel
    model_version: Optional[int] = None
    created_at: datetime


class ContentResponse(BaseModel):
    """Content item with its latest prediction."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: ContentType
    text: str
    author_id: str
    author_username: Optional[str] = None
    thread_id: Optional[str] = None
    status: ContentStatus
    created_at: datetime
    processed_at: Optional[datetime] = None
    image_label: Optional[str] = None
    image_confidence: Optional[float] = None
    latest_prediction: Optional[PredictionResponse] = None


class ResetStuckResponse(BaseModel):
    """Number of items requeued by the stuck sweep."""
    reset_count: int


# =============================================================================
# Review API Models
# =============================================================================

class ReviewCreate(BaseModel):
    """Schema for moderator feedback."""
    gold_label: Decision
    feedback: Optional[str] = Field(default=None, max_length=5000)
    moderator_id: Optional[str] = None


class ReviewResponse(BaseModel):
    """A review record."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    content_id: str
    gold_label: Optional[Decision] = None
    correct_decision: Optional[bool] = None
    feedback: Optional[str] = None
    moderator_id: Optional[str] = None
    created_at: datetime
    reviewed_at: Optional[datetime] = None


# =============================================================================
# Settings API Models
# =============================================================================

class ThresholdsUpdate(BaseModel):
    """Schema for replacing the decision thresholds."""
    allow_threshold: float = Field(..., ge=0.0, le=1.0)
    review_threshold: float = Field(..., ge=0.0, le=1.0)
    block_threshold: float = Field(..., ge=0.0, le=1.0)


class RetrainThresholdUpdate(BaseModel):
    """Schema for changing the retrain label count."""
    retrain_threshold: int = Field(..., ge=1)


class RetrainingToggle(BaseModel):
    """Schema for enabling or disabling retraining."""
    enabled: bool


class SettingsResponse(BaseModel):
    """Current system settings."""
    allow_threshold: float
    review_threshold: float
    block_threshold: float
    retrain_threshold: int
    new_gold_since_last_train: int
    retraining_enabled: bool
    last_retrain_date: Optional[datetime] = None


# =============================================================================
# Wordlist API Models
# =============================================================================

class BlockedWordCreate(BaseModel):
    """Schema for adding a word or phrase to the wordlist."""
    word: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=50)

    @field_validator("word", "category")
    @classmethod
    def normalize(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("must not be blank")
        return v


class BlockedWordUpdate(BaseModel):
    """Schema for editing a wordlist entry. Omitted fields are left unchanged."""
    word: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("word", "category")
    @classmethod
    def normalize(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not v:
            raise ValueError("must not be blank")
        return v


class BlockedWordResponse(BaseModel):
    """A wordlist entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    word: str
    category: str
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


# =============================================================================
# Model API Models
# =============================================================================

class ModelVersionResponse(BaseModel):
    """A trained classifier version."""
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    version: int
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    is_active: bool
    model_path: str
    trained_at: datetime
    training_sample_count: int


class ModelStatusResponse(BaseModel):
    """Live classifier state and known versions."""
    model_config = ConfigDict(protected_namespaces=())

    loaded: bool
    loaded_version: Optional[int] = None
    active_version: Optional[int] = None
    versions: List[ModelVersionResponse] = []


class TrainingResultResponse(BaseModel):
    """Outcome of a retraining run."""
    version: int
    activated: bool
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    training_sample_count: int
