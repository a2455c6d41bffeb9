"""
SQLAlchemy database models.

Maps the moderation domain to database tables.
Separate from the Pydantic/dataclass models (models.py) which handle API
validation and in-memory scoring values.

Enum-valued columns (status, decision, confidence) are stored as plain
strings holding the enum ``value``.
"""

import uuid

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship, declarative_base

from .models import ContentStatus, utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class DBAuthor(Base):
    """Content author. Read-only input for the context calculator."""
    __tablename__ = "authors"

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(100), unique=True, nullable=False, index=True)
    reputation_score = Column(Integer, nullable=False, default=50)  # 0-100
    account_age_days = Column(Integer, nullable=False, default=0)
    previous_violations = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    contents = relationship("DBContent", back_populates="author")

    def __repr__(self):
        return f"<DBAuthor(id={self.id}, username='{self.username}', reputation={self.reputation_score})>"


class DBContent(Base):
    """A user-submitted content item moving through the moderation queue."""
    __tablename__ = "contents"

    id = Column(String(36), primary_key=True, default=_uuid)
    type = Column(String(20), nullable=False, default="comment")  # comment, post, message
    text = Column(Text, nullable=False, default="")
    author_id = Column(String(36), ForeignKey("authors.id"), nullable=False, index=True)
    thread_id = Column(String(36), nullable=True)

    # queued -> processing -> approved | pending_review | blocked
    status = Column(String(20), nullable=False, default=ContentStatus.QUEUED.value, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    claimed_at = Column(DateTime, nullable=True)  # set when a worker claims the item
    processed_at = Column(DateTime, nullable=True)

    author = relationship("DBAuthor", back_populates="contents")
    image = relationship("DBContentImage", back_populates="content", uselist=False, cascade="all, delete-orphan")
    context = relationship("DBContext", back_populates="content", uselist=False, cascade="all, delete-orphan")
    predictions = relationship(
        "DBPrediction",
        back_populates="content",
        cascade="all, delete-orphan",
        order_by="DBPrediction.created_at",
    )
    reviews = relationship("DBReview", back_populates="content", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_content_status_created', 'status', 'created_at'),
    )

    def __repr__(self):
        return f"<DBContent(id={self.id}, status='{self.status}')>"


class DBContentImage(Base):
    """Image attached to a content item, with its stored classification."""
    __tablename__ = "content_images"

    id = Column(String(36), primary_key=True, default=_uuid)
    content_id = Column(String(36), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, unique=True)
    file_path = Column(String(1024), nullable=True)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    classification_label = Column(String(255), nullable=True)
    classification_confidence = Column(Float, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    content = relationship("DBContent", back_populates="image")


class DBContext(Base):
    """Per-content context snapshot. Computed once and cached."""
    __tablename__ = "contexts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_id = Column(String(36), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, unique=True)
    author_reputation = Column(Float, nullable=False)  # 0-1
    thread_sentiment = Column(Float, nullable=False, default=0.0)  # -1..1
    engagement_level = Column(Float, nullable=False, default=0.5)  # 0-1
    time_of_day = Column(Integer, nullable=False)  # 0-23 UTC
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday
    language = Column(String(10), nullable=False, default="en")
    content_length = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    content = relationship("DBContent", back_populates="context")


class DBPrediction(Base):
    """Immutable record of one scoring pass."""
    __tablename__ = "predictions"

    id = Column(String(36), primary_key=True, default=_uuid)
    content_id = Column(String(36), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    spam_score = Column(Float, nullable=False)
    toxic_score = Column(Float, nullable=False)
    hate_score = Column(Float, nullable=False)
    offensive_score = Column(Float, nullable=False)
    final_score = Column(Float, nullable=False)
    decision = Column(String(10), nullable=False)  # allow, review, block
    confidence = Column(String(10), nullable=False)  # low, medium, high
    context_factors = Column(Text, nullable=True)  # JSON snapshot
    model_version = Column(Integer, nullable=True)  # classifier version used, if any
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    content = relationship("DBContent", back_populates="predictions")


class DBReview(Base):
    """Human moderator feedback on a content item."""
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    content_id = Column(String(36), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    gold_label = Column(String(10), nullable=True)  # allow, review, block
    correct_decision = Column(Boolean, nullable=True)
    feedback = Column(Text, nullable=True)
    moderator_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True, index=True)

    content = relationship("DBContent", back_populates="reviews")


class DBSystemSettings(Base):
    """Singleton row with decision thresholds and retraining state."""
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    allow_threshold = Column(Float, nullable=False, default=0.3)
    review_threshold = Column(Float, nullable=False, default=0.5)
    block_threshold = Column(Float, nullable=False, default=0.7)
    retrain_threshold = Column(Integer, nullable=False, default=10)
    new_gold_since_last_train = Column(Integer, nullable=False, default=0)
    last_retrain_date = Column(DateTime, nullable=True)
    retraining_enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class DBModelVersion(Base):
    """A trained classifier version and its evaluation metrics."""
    __tablename__ = "model_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, unique=True, nullable=False, index=True)
    accuracy = Column(Float, nullable=False, default=0.0)
    precision = Column(Float, nullable=False, default=0.0)
    recall = Column(Float, nullable=False, default=0.0)
    f1_score = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=False, index=True)
    model_path = Column(String(1024), nullable=False)
    trained_at = Column(DateTime, default=utcnow, nullable=False)
    training_sample_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<DBModelVersion(version={self.version}, active={self.is_active}, f1={self.f1_score:.3f})>"


class DBBlockedWord(Base):
    """Wordlist entry. Category is free text (toxic, hate, spam, offensive, slur, ...)."""
    __tablename__ = "blocked_words"

    id = Column(String(36), primary_key=True, default=_uuid)
    word = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('idx_blocked_word_category_active', 'category', 'is_active'),
    )

    def __repr__(self):
        return f"<DBBlockedWord(word='{self.word}', category='{self.category}', active={self.is_active})>"
