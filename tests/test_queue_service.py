"""
Tests for the queue store: claiming, ordering, status updates and the stuck sweep.
"""

from datetime import datetime, timedelta

import pytest

from moderation_agent.db_models import DBContent
from moderation_agent.exceptions import ContentNotFoundError
from moderation_agent.models import ContentStatus
from moderation_agent.queue_service import QueueService

FIXED_NOW = datetime(2024, 1, 10, 12, 0, 0)


# =============================================================================
# Dequeue
# =============================================================================

def test_dequeue_claims_oldest_item(db_session, fixed_clock, make_content):
    newer = make_content(text="second", created_at=FIXED_NOW - timedelta(minutes=1))
    older = make_content(text="first", created_at=FIXED_NOW - timedelta(minutes=5))

    claimed = QueueService(db_session, clock=fixed_clock).dequeue_next_queued()

    assert claimed.id == older.id
    assert claimed.status == ContentStatus.PROCESSING.value
    assert claimed.claimed_at == FIXED_NOW
    assert claimed.author.username == "new_user"
    assert db_session.query(DBContent).filter_by(id=newer.id).one().status == "queued"


def test_dequeue_empty_queue_returns_none(db_session, fixed_clock, make_content):
    make_content(status=ContentStatus.APPROVED)
    assert QueueService(db_session, clock=fixed_clock).dequeue_next_queued() is None


def test_item_is_claimed_by_one_session_only(session_maker, db_session, fixed_clock, make_content):
    make_content(text="only one")
    first, second = session_maker(), session_maker()
    try:
        claimed = QueueService(first, clock=fixed_clock).dequeue_next_queued()
        assert claimed is not None
        assert QueueService(second, clock=fixed_clock).dequeue_next_queued() is None
    finally:
        first.close()
        second.close()


def test_losing_claim_reports_false(session_maker, db_session, fixed_clock, make_content):
    content = make_content(text="contended")
    first, second = session_maker(), session_maker()
    try:
        assert QueueService(first, clock=fixed_clock)._claim(content.id) is True
        assert QueueService(second, clock=fixed_clock)._claim(content.id) is False
    finally:
        first.close()
        second.close()


def test_claim_is_committed_before_scoring(session_maker, db_session, fixed_clock, make_content):
    content = make_content(text="visible claim")
    QueueService(db_session, clock=fixed_clock).dequeue_next_queued()

    observer = session_maker()
    try:
        assert observer.query(DBContent).filter_by(id=content.id).one().status == "processing"
    finally:
        observer.close()


# =============================================================================
# Status Updates
# =============================================================================

def test_send_to_review_from_any_status(db_session, fixed_clock, make_content):
    content = make_content(status=ContentStatus.APPROVED)

    updated = QueueService(db_session, clock=fixed_clock).send_to_review(content.id)

    assert updated.status == ContentStatus.PENDING_REVIEW.value
    assert updated.processed_at == FIXED_NOW


def test_unknown_content_raises(db_session, fixed_clock):
    with pytest.raises(ContentNotFoundError):
        QueueService(db_session, clock=fixed_clock).send_to_review("missing")


def test_list_by_status_oldest_first(db_session, fixed_clock, make_content):
    make_content(text="b", status=ContentStatus.PENDING_REVIEW, created_at=FIXED_NOW)
    make_content(text="a", status=ContentStatus.PENDING_REVIEW, created_at=FIXED_NOW - timedelta(hours=1))
    make_content(text="c", status=ContentStatus.BLOCKED)

    pending = QueueService(db_session, clock=fixed_clock).list_by_status(ContentStatus.PENDING_REVIEW)

    assert [c.text for c in pending] == ["a", "b"]


def test_enqueue_resets_processing_markers(db_session, fixed_clock, make_content):
    content = make_content(status=ContentStatus.PROCESSING, claimed_at=FIXED_NOW)

    requeued = QueueService(db_session, clock=fixed_clock).enqueue(content)

    assert requeued.status == "queued"
    assert requeued.claimed_at is None


# =============================================================================
# Stuck Sweep
# =============================================================================

def test_reset_stuck_requeues_old_claims(db_session, fixed_clock, make_content):
    stuck = make_content(status=ContentStatus.PROCESSING, claimed_at=FIXED_NOW - timedelta(minutes=10))
    fresh = make_content(status=ContentStatus.PROCESSING, claimed_at=FIXED_NOW - timedelta(minutes=1))

    reset = QueueService(db_session, clock=fixed_clock).reset_stuck(timeout_minutes=5)
    db_session.expire_all()

    assert reset == 1
    assert db_session.query(DBContent).filter_by(id=stuck.id).one().status == "queued"
    assert db_session.query(DBContent).filter_by(id=stuck.id).one().claimed_at is None
    assert db_session.query(DBContent).filter_by(id=fresh.id).one().status == "processing"


def test_reset_stuck_falls_back_to_created_at(db_session, fixed_clock, make_content):
    make_content(status=ContentStatus.PROCESSING, created_at=FIXED_NOW - timedelta(minutes=30))

    assert QueueService(db_session, clock=fixed_clock).reset_stuck(timeout_minutes=5) == 1


def test_reset_stuck_ignores_other_statuses(db_session, fixed_clock, make_content):
    make_content(status=ContentStatus.PENDING_REVIEW, created_at=FIXED_NOW - timedelta(hours=2))
    make_content(status=ContentStatus.QUEUED, created_at=FIXED_NOW - timedelta(hours=2))

    assert QueueService(db_session, clock=fixed_clock).reset_stuck(timeout_minutes=5) == 0
