"""
Celery Application Configuration for the Content Moderation Agent.

This module configures the Celery task queue for the slow feedback loops:
- Threshold adaptation (hourly)
- Retraining check (every 5 minutes)
- Stuck-item sweep (every minute, only with MODERATION_STUCK_SWEEP_ENABLED)
- One-shot moderation ticks

Architecture:
    Celery beat -> Redis (Message Broker) -> Celery Workers -> Database

Usage:
    # Start a Celery worker with the embedded beat scheduler:
    celery -A moderation_agent.celery_app worker -B -Q moderation,feedback --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from moderation_agent.config import Settings, configure_logging, settings

configure_logging()

# =============================================================================
# Configuration
# =============================================================================

CELERY_BROKER_URL = settings.effective_celery_broker_url
CELERY_RESULT_BACKEND = settings.effective_celery_result_backend

# =============================================================================
# Celery App Instance
# =============================================================================

celery_app = Celery(
    "moderation_agent",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["moderation_agent.tasks"]
)

# =============================================================================
# Beat Schedule
# =============================================================================

MODERATION_SCHEDULE = {
    "update-thresholds": {
        "task": "moderation_agent.tasks.update_thresholds",
        "schedule": crontab(minute=0),
        "options": {"queue": "feedback"}
    },
    "retrain-check": {
        "task": "moderation_agent.tasks.retrain_check",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "feedback"}
    },
}

# Stuck items are requeued by an operator (POST /content/reset-stuck) unless
# MODERATION_STUCK_SWEEP_ENABLED turns on the periodic sweep
STUCK_SWEEP_ENTRY = {
    "reset-stuck-items": {
        "task": "moderation_agent.tasks.reset_stuck_items",
        "schedule": crontab(minute="*"),
        "options": {"queue": "feedback"}
    },
}


def build_beat_schedule(config: Settings = settings) -> dict:
    schedule = dict(MODERATION_SCHEDULE)
    if config.stuck_sweep_enabled:
        schedule.update(STUCK_SWEEP_ENTRY)
    return schedule


# =============================================================================
# Celery Configuration
# =============================================================================

celery_app.conf.update(
    # Security: Use JSON serializer (not pickle)
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    result_expires=3600,  # Results expire after 1 hour

    task_track_started=True,
    task_time_limit=1800,  # Hard limit: 30 minutes (training on large label sets)
    task_soft_time_limit=1680,

    # Worker settings
    worker_prefetch_multiplier=1,  # Only fetch one task at a time
    worker_max_tasks_per_child=1000,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Timezone
    timezone="UTC",
    enable_utc=True,

    beat_schedule=build_beat_schedule(),

    worker_send_task_events=True,
    task_send_sent_event=True,
)

# =============================================================================
# Task Routes
# =============================================================================

celery_app.conf.task_routes = {
    "moderation_agent.tasks.moderation_tick": {"queue": "moderation"},
    "moderation_agent.tasks.update_thresholds": {"queue": "feedback"},
    "moderation_agent.tasks.retrain_check": {"queue": "feedback"},
    "moderation_agent.tasks.reset_stuck_items": {"queue": "feedback"},
}

# =============================================================================
# Export
# =============================================================================

__all__ = ["celery_app", "MODERATION_SCHEDULE", "build_beat_schedule"]
