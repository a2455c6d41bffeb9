"""
Celery Background Tasks for the Content Moderation Agent.

Each task runs one runner tick and returns a JSON-serializable summary.
Failures are logged with traceback and re-raised so Celery records them;
the next scheduled run retries.
"""

import logging

from .celery_app import celery_app
from .runners import ModerationRunner, RetrainRunner, StuckItemSweeper, ThresholdUpdateRunner

# Initialize logger
logger = logging.getLogger(__name__)


@celery_app.task(name="moderation_agent.tasks.moderation_tick")
def moderation_tick():
    """Score the oldest queued item, if any."""
    try:
        result = ModerationRunner().tick()
    except Exception as e:
        logger.error(f"Moderation tick failed: {e}", exc_info=True)
        raise

    if result is None:
        return {"status": "idle"}
    return dict(result.notification(), status="processed", confidence=result.confidence.value)


@celery_app.task(name="moderation_agent.tasks.update_thresholds")
def update_thresholds():
    """Adapt decision thresholds from the last week of reviews."""
    logger.info("Threshold adaptation: checking recent reviews...")
    try:
        adjustment = ThresholdUpdateRunner().tick()
    except Exception as e:
        logger.error(f"Threshold adaptation failed: {e}", exc_info=True)
        raise

    if adjustment is None:
        return {"status": "skipped", "reason": "insufficient_samples"}
    return {
        "status": "adjusted" if adjustment.changed else "unchanged",
        "sample_count": adjustment.sample_count,
        "false_positive_rate": adjustment.false_positive_rate,
        "false_negative_rate": adjustment.false_negative_rate,
        "old": adjustment.old,
        "new": adjustment.new,
    }


@celery_app.task(name="moderation_agent.tasks.retrain_check")
def retrain_check():
    """Retrain the classifier if enough new gold labels arrived."""
    try:
        outcome = RetrainRunner().tick()
    except Exception as e:
        logger.error(f"Retrain check failed: {e}", exc_info=True)
        raise

    if outcome is None:
        return {"status": "skipped"}
    return {
        "status": "trained",
        "version": outcome.version.version,
        "activated": outcome.activated,
        "metrics": outcome.metrics.as_dict(),
    }


@celery_app.task(name="moderation_agent.tasks.reset_stuck_items")
def reset_stuck_items():
    """Requeue items stuck in processing."""
    try:
        reset = StuckItemSweeper().tick()
    except Exception as e:
        logger.error(f"Stuck item sweep failed: {e}", exc_info=True)
        raise
    return {"status": "success", "reset_count": reset}
