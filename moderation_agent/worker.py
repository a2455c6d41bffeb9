"""
Moderation worker process.

Polls the queue with ModerationRunner in a single thread:
- Work found: short busy delay, then the next tick
- Queue empty: idle delay doubling up to the configured maximum
- Tick failed: logged with traceback, error back-off, then continue

SIGINT/SIGTERM set the stop event; the loop checks it before every tick
and wakes from any delay as soon as it is set. An item being scored when
the stop arrives may stay in processing until the stuck sweep requeues it.

Usage:
    python -m moderation_agent.worker
"""

import logging
import signal
import threading
from typing import Optional

from .config import Settings, configure_logging, settings as default_settings
from .runners import ModerationRunner

logger = logging.getLogger(__name__)


class ModerationWorker:
    """Drives ModerationRunner ticks until stopped."""

    def __init__(
        self,
        runner: Optional[ModerationRunner] = None,
        config: Optional[Settings] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self.config = config or default_settings
        self.runner = runner or ModerationRunner(config=self.config)
        self.stop_event = stop_event or threading.Event()
        self.idle_delay = self.config.poll_idle_delay_seconds

    def stop(self) -> None:
        self.stop_event.set()

    def next_idle_delay(self) -> float:
        """Current idle delay; doubles for the next empty tick, capped."""
        delay = self.idle_delay
        self.idle_delay = min(self.idle_delay * 2, self.config.poll_max_idle_delay_seconds)
        return delay

    def run_once(self) -> float:
        """Run one tick and return the delay before the next one."""
        try:
            result = self.runner.tick()
        except Exception:
            logger.exception("Moderation tick failed")
            return self.config.error_backoff_seconds

        if result is None:
            delay = self.next_idle_delay()
            logger.debug(f"Queue empty, sleeping {delay:.1f}s")
            return delay

        self.idle_delay = self.config.poll_idle_delay_seconds
        return self.config.poll_busy_delay_seconds

    def run(self) -> None:
        logger.info("Moderation worker started")
        while not self.stop_event.is_set():
            delay = self.run_once()
            if self.stop_event.wait(delay):
                break
        logger.info("Moderation worker stopped")


def main() -> None:
    configure_logging()

    from .database import get_db_context, init_db
    from .training_service import TrainingService
    from .wordlist_service import WordlistService
    from .exceptions import ModerationAgentError

    init_db()
    with get_db_context() as db:
        WordlistService(db).seed_defaults()
        try:
            TrainingService(db).reload_active()
        except ModerationAgentError as e:
            logger.info(f"Starting without a trained classifier: {e}")

    worker = ModerationWorker()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        worker.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    worker.run()


if __name__ == "__main__":
    main()
