"""
Database seeding.

- Default wordlist (idempotent, also run on startup)
- Optional demo data: three sample authors and a few queued items

Usage:
    python -m moderation_agent.seed --demo
"""

import argparse
import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from .db_models import DBAuthor, DBContent
from .models import ContentStatus, ContentType
from .threshold_service import ThresholdService
from .wordlist_service import WordlistService

logger = logging.getLogger(__name__)

# username, reputation, account age (days), previous violations
DEMO_AUTHORS: List[Tuple[str, int, int, int]] = [
    ("trusted_user", 90, 365, 0),
    ("new_user", 50, 5, 0),
    ("problematic_user", 20, 100, 3),
]

DEMO_CONTENT: List[Tuple[str, str]] = [
    ("trusted_user", "Thanks for sharing, this was a really helpful write-up."),
    ("new_user", "BUY NOW!!! CLICK HERE CLICK HERE CLICK HERE"),
    ("problematic_user", "You are an idiot and I hate this stupid thread."),
    ("new_user", "Does anyone know when the next meetup is?"),
]


def seed_demo_data(db: Session) -> int:
    """Create the demo authors (if missing) and queue the demo content. Returns items queued."""
    authors = {}
    for username, reputation, age, violations in DEMO_AUTHORS:
        author = db.query(DBAuthor).filter(DBAuthor.username == username).first()
        if author is None:
            author = DBAuthor(
                username=username,
                reputation_score=reputation,
                account_age_days=age,
                previous_violations=violations,
            )
            db.add(author)
        authors[username] = author
    db.flush()

    for username, text in DEMO_CONTENT:
        db.add(DBContent(
            type=ContentType.COMMENT.value,
            text=text,
            author_id=authors[username].id,
            status=ContentStatus.QUEUED.value,
        ))
    db.commit()
    logger.info(f"Seeded {len(DEMO_AUTHORS)} demo authors and {len(DEMO_CONTENT)} queued items")
    return len(DEMO_CONTENT)


def seed_defaults(db: Session) -> None:
    """Default wordlist and settings row."""
    WordlistService(db).seed_defaults()
    ThresholdService(db).get_settings()
    db.commit()


def main() -> None:
    from .config import configure_logging
    from .database import get_db_context, init_db

    parser = argparse.ArgumentParser(description="Seed the moderation database")
    parser.add_argument("--demo", action="store_true", help="Also create demo authors and content")
    args = parser.parse_args()

    configure_logging()
    init_db()
    with get_db_context() as db:
        seed_defaults(db)
        if args.demo:
            seed_demo_data(db)


if __name__ == "__main__":
    main()
