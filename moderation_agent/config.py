"""
Centralized Configuration for the Content Moderation Agent.

Process configuration for the API, the moderation worker and Celery, read
from the environment (and .env) by pydantic-settings.

Usage:
    from moderation_agent.config import settings

    db_url = settings.database_url
    poll_delay = settings.poll_idle_delay_seconds

Note: allow/review/block thresholds and the retraining counter are NOT
process configuration. They live in the ``system_settings`` table and are
read through ``ThresholdService`` (see threshold_service.py).
"""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImageBoostRule(BaseModel):
    """Boost category scores when an attached image's label matches."""

    label_contains: str
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    categories: List[str] = Field(default_factory=lambda: ["toxic", "hate", "offensive"])
    boost: float = Field(default=0.3, ge=0.0, le=1.0)


class Settings(BaseSettings):
    """
    Deployment, loop timing, adaptation and training knobs.

    Every field has an environment alias; .env.example lists them with defaults.
    """

    # =============================================================================
    # Application Environment
    # =============================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
        validation_alias="MODERATION_ENVIRONMENT"
    )

    testing: bool = Field(
        default=False,
        description="Enable testing mode",
        validation_alias="TESTING"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validation_alias="MODERATION_LOG_LEVEL"
    )

    allowed_origins: str = Field(
        default="*",
        description="CORS allowed origins (comma-separated or '*')",
        validation_alias="MODERATION_ALLOWED_ORIGINS"
    )

    # =============================================================================
    # Database
    # =============================================================================

    database_url: str = Field(
        default="sqlite:///./moderation.db",
        description="Database connection URL (PostgreSQL or SQLite)",
        validation_alias="DATABASE_URL"
    )

    db_pool_size: int = Field(
        default=5,
        ge=1,
        description="PostgreSQL connection pool size per process",
        validation_alias="DB_POOL_SIZE"
    )

    db_max_overflow: int = Field(
        default=10,
        ge=0,
        description="Extra PostgreSQL connections allowed beyond the pool",
        validation_alias="DB_MAX_OVERFLOW"
    )

    sqlite_busy_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How long a SQLite writer waits on a lock held by another process",
        validation_alias="SQLITE_BUSY_TIMEOUT_SECONDS"
    )

    # =============================================================================
    # Redis & Celery
    # =============================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (result notifications, Celery broker)",
        validation_alias="REDIS_URL"
    )

    celery_broker_url: Optional[str] = Field(
        default=None,
        description="Celery broker URL (defaults to redis_url)",
        validation_alias="CELERY_BROKER_URL"
    )

    celery_result_backend: Optional[str] = Field(
        default=None,
        description="Celery result backend URL (defaults to redis_url)",
        validation_alias="CELERY_RESULT_BACKEND"
    )

    results_channel: str = Field(
        default="moderation:results",
        description="Redis pub/sub channel for moderation result notifications",
        validation_alias="MODERATION_RESULTS_CHANNEL"
    )

    # =============================================================================
    # Moderation Worker Loop
    # =============================================================================

    poll_busy_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Delay between ticks while the queue has work",
        validation_alias="MODERATION_POLL_BUSY_DELAY"
    )

    poll_idle_delay_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Initial delay after an empty-queue tick",
        validation_alias="MODERATION_POLL_IDLE_DELAY"
    )

    poll_max_idle_delay_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Upper bound for the idle back-off delay",
        validation_alias="MODERATION_POLL_MAX_IDLE_DELAY"
    )

    error_backoff_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Delay after a tick aborted with an error",
        validation_alias="MODERATION_ERROR_BACKOFF"
    )

    stuck_timeout_minutes: int = Field(
        default=5,
        ge=1,
        description="Items claimed longer than this count as stuck",
        validation_alias="MODERATION_STUCK_TIMEOUT_MINUTES"
    )

    stuck_sweep_enabled: bool = Field(
        default=False,
        description="Requeue stuck items every minute from Celery beat instead of on operator request",
        validation_alias="MODERATION_STUCK_SWEEP_ENABLED"
    )

    # =============================================================================
    # Threshold Adaptation
    # =============================================================================

    threshold_window_days: int = Field(
        default=7,
        ge=1,
        description="Review window used for false positive/negative rates",
        validation_alias="MODERATION_THRESHOLD_WINDOW_DAYS"
    )

    threshold_min_samples: int = Field(
        default=50,
        ge=1,
        description="Minimum reviewed samples before thresholds are adapted",
        validation_alias="MODERATION_THRESHOLD_MIN_SAMPLES"
    )

    threshold_error_rate: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Error rate above which thresholds are nudged",
        validation_alias="MODERATION_THRESHOLD_ERROR_RATE"
    )

    block_threshold_step: float = Field(
        default=0.05,
        description="Block threshold adjustment per adaptation",
        validation_alias="MODERATION_BLOCK_THRESHOLD_STEP"
    )

    review_threshold_step: float = Field(
        default=0.03,
        description="Review threshold adjustment per adaptation",
        validation_alias="MODERATION_REVIEW_THRESHOLD_STEP"
    )

    clamp_thresholds: bool = Field(
        default=True,
        description="Keep adapted thresholds inside [0.05, 0.95] with allow < review < block",
        validation_alias="MODERATION_CLAMP_THRESHOLDS"
    )

    # =============================================================================
    # Retraining
    # =============================================================================

    models_dir: str = Field(
        default="models",
        description="Directory holding trained classifier files",
        validation_alias="MODERATION_MODELS_DIR"
    )

    min_training_samples: int = Field(
        default=10,
        ge=1,
        description="Minimum gold labels required to train a classifier",
        validation_alias="MODERATION_MIN_TRAINING_SAMPLES"
    )

    retrain_on_gold_label: bool = Field(
        default=False,
        description="Run the retrain check synchronously when a gold label is set",
        validation_alias="MODERATION_RETRAIN_ON_GOLD_LABEL"
    )

    # =============================================================================
    # Image Signals
    # =============================================================================

    image_label_min_confidence: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Image labels above this confidence are appended to the text",
        validation_alias="MODERATION_IMAGE_LABEL_MIN_CONFIDENCE"
    )

    image_boost_rules: List[ImageBoostRule] = Field(
        default_factory=lambda: [ImageBoostRule(label_contains="dog")],
        description="Label to category boost rules (JSON list in the environment)",
        validation_alias="MODERATION_IMAGE_BOOST_RULES"
    )

    # =============================================================================
    # Computed Properties
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """CORS wildcards are only warned about in production."""
        return self.environment == "production"

    @property
    def effective_celery_broker_url(self) -> str:
        """Broker URL, falling back to redis_url."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str:
        return self.celery_result_backend or self.redis_url

    # =============================================================================
    # Pydantic Model Configuration
    # =============================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Field Validators
    # =============================================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is uppercase and valid."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_poll_delays(self):
        if self.poll_max_idle_delay_seconds < self.poll_idle_delay_seconds:
            raise ValueError("MODERATION_POLL_MAX_IDLE_DELAY must be >= MODERATION_POLL_IDLE_DELAY")
        return self


# =============================================================================
# Global Settings Instance
# =============================================================================

try:
    settings = Settings()
except Exception as e:
    raise RuntimeError(
        f"Invalid moderation agent configuration: {e}\n\n"
        "See .env.example for all available configuration options."
    ) from e


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings


def configure_logging() -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


__all__ = ["settings", "get_settings", "Settings", "ImageBoostRule", "configure_logging"]
