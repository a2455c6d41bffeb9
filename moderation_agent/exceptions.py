"""
Custom Exceptions for the Content Moderation Agent.

Services raise these; the periodic loops and the HTTP routers are the only
places that decide whether an error is logged-and-retried or surfaced.
"""


class ModerationAgentError(Exception):
    """Base exception for all moderation agent errors."""
    pass


# =============================================================================
# Lookup Exceptions
# =============================================================================

class ContentNotFoundError(ModerationAgentError):
    """Raised when a content item does not exist."""

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(f"Content {content_id} not found")


class AuthorNotFoundError(ModerationAgentError):
    """Raised when the author of a content item cannot be loaded."""

    def __init__(self, author_id):
        self.author_id = author_id
        super().__init__(f"Author {author_id} not found")


class ReviewNotFoundError(ModerationAgentError):
    """Raised when a review does not exist."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Review {review_id} not found")


class BlockedWordNotFoundError(ModerationAgentError):
    """Raised when a wordlist entry does not exist."""

    def __init__(self, word_id: str):
        self.word_id = word_id
        super().__init__(f"Blocked word {word_id} not found")


# =============================================================================
# Scoring Exceptions
# =============================================================================

class ScoringError(ModerationAgentError):
    """Raised when a scoring pass fails. Wraps the original exception."""

    def __init__(self, content_id: str, reason: str):
        self.content_id = content_id
        self.reason = reason
        super().__init__(f"Error scoring content {content_id}: {reason}")


class InvalidThresholdsError(ModerationAgentError):
    """Raised when thresholds violate allow < review < block or leave [0, 1]."""

    def __init__(self, allow: float, review: float, block: float):
        self.allow = allow
        self.review = review
        self.block = block
        super().__init__(
            f"Invalid thresholds: allow={allow}, review={review}, block={block} "
            "(expected 0 <= allow < review < block <= 1)"
        )


# =============================================================================
# Training Exceptions
# =============================================================================

class TrainingError(ModerationAgentError):
    """Base exception for classifier training errors."""
    pass


class RetrainSkippedError(TrainingError):
    """A retrain attempt that wrote nothing and can be retried next cycle."""
    pass


class InsufficientTrainingDataError(RetrainSkippedError):
    """Raised when there are not enough gold labels to train."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Not enough gold labels for training. Need at least {required}, have {available}. "
            "Retraining will be skipped until more feedback is provided."
        )


class UnusableTrainingDataError(RetrainSkippedError):
    """Raised when the gold-labelled texts yield no features to train on."""

    def __init__(self, sample_count: int, reason: str):
        self.sample_count = sample_count
        super().__init__(f"Cannot train on {sample_count} gold-labelled texts: {reason}")


class RetrainConflictError(RetrainSkippedError):
    """Raised when another retrain committed the same version number first."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Model version {version} was created by a concurrent retrain")


class ModelFileNotFoundError(TrainingError):
    """Raised when a model version's file is missing on disk."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Model file not found at: {path}")


class NoActiveModelError(TrainingError):
    """Raised when a model operation needs an active version and none exists."""

    def __init__(self):
        super().__init__("No active model version found")


class ActiveModelMismatchError(TrainingError):
    """Raised when the live classifier is not the active version."""

    def __init__(self, loaded_version, active_version: int):
        self.loaded_version = loaded_version
        self.active_version = active_version
        super().__init__(
            f"Live classifier is version {loaded_version}, active version is {active_version}; "
            "reload the active model before saving"
        )
