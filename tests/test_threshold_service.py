"""
Tests for the settings store and threshold adaptation.
"""

from datetime import datetime, timedelta

import pytest

from moderation_agent.db_models import DBAuthor, DBContent, DBPrediction, DBReview, DBSystemSettings
from moderation_agent.exceptions import InvalidThresholdsError
from moderation_agent.runners import ThresholdUpdateRunner
from moderation_agent.threshold_service import ThresholdService, clamp_thresholds

FIXED_NOW = datetime(2024, 1, 10, 12, 0, 0)


@pytest.fixture
def add_reviews(db_session):
    """Create ``count`` reviewed items with the given predicted and gold labels."""
    author = DBAuthor(username="reviewed_author")
    db_session.add(author)
    db_session.commit()

    def build(count: int, predicted: str, gold: str, reviewed_at: datetime = FIXED_NOW - timedelta(days=1)):
        for _ in range(count):
            content = DBContent(text="sample", author_id=author.id, status="approved")
            db_session.add(content)
            db_session.flush()
            db_session.add(DBPrediction(
                content_id=content.id,
                spam_score=0.05, toxic_score=0.05, hate_score=0.05, offensive_score=0.05,
                final_score=0.5, decision=predicted, confidence="low",
            ))
            db_session.add(DBReview(content_id=content.id, gold_label=gold, reviewed_at=reviewed_at))
        db_session.commit()

    return build


def _service(db_session, test_config, **overrides):
    config = test_config.model_copy(update=overrides) if overrides else test_config
    return ThresholdService(db_session, config=config, clock=lambda: FIXED_NOW)


# =============================================================================
# Settings Store
# =============================================================================

def test_defaults_are_created_lazily(db_session):
    assert db_session.query(DBSystemSettings).count() == 0

    current = ThresholdService(db_session).get_settings()

    assert (current.allow_threshold, current.review_threshold, current.block_threshold) == (0.3, 0.5, 0.7)
    assert current.retrain_threshold == 10
    assert current.new_gold_since_last_train == 0
    assert current.retraining_enabled is True
    assert db_session.query(DBSystemSettings).count() == 1


def test_update_thresholds(db_session):
    updated = ThresholdService(db_session).update_thresholds(0.2, 0.4, 0.8)
    assert (updated.allow_threshold, updated.review_threshold, updated.block_threshold) == (0.2, 0.4, 0.8)


@pytest.mark.parametrize("allow,review,block", [
    (0.5, 0.4, 0.8),
    (0.2, 0.8, 0.8),
    (-0.1, 0.4, 0.8),
    (0.2, 0.4, 1.2),
])
def test_invalid_thresholds_are_rejected(db_session, allow, review, block):
    with pytest.raises(InvalidThresholdsError):
        ThresholdService(db_session).update_thresholds(allow, review, block)


def test_retraining_toggles(db_session):
    service = ThresholdService(db_session)

    assert service.update_retrain_threshold(25).retrain_threshold == 25
    assert service.set_retraining_enabled(False).retraining_enabled is False
    with pytest.raises(ValueError):
        service.update_retrain_threshold(0)


def test_should_retrain_requires_enabled_and_enough_labels(db_session):
    service = ThresholdService(db_session)
    service.update_retrain_threshold(2)
    service.increment_gold_counter()
    service.increment_gold_counter()
    db_session.commit()
    db_session.expire_all()

    assert service.get_settings().should_retrain is True
    assert service.set_retraining_enabled(False).should_retrain is False


def test_consume_gold_labels_never_goes_negative(db_session):
    service = ThresholdService(db_session)
    service.increment_gold_counter()
    service.consume_gold_labels(5, FIXED_NOW)
    db_session.commit()
    db_session.expire_all()

    current = service.get_settings()
    assert current.new_gold_since_last_train == 0
    assert current.last_retrain_date == FIXED_NOW


# =============================================================================
# Clamping
# =============================================================================

def test_clamp_keeps_order_and_bounds():
    allow, review, block = clamp_thresholds(0.0, 0.0, 0.0)

    assert allow == pytest.approx(0.05)
    assert review == pytest.approx(0.06)
    assert block == pytest.approx(0.07)


def test_clamp_caps_block_at_ceiling():
    allow, review, block = clamp_thresholds(0.3, 0.98, 1.0)

    assert block == pytest.approx(0.95)
    assert review == pytest.approx(0.94)
    assert allow == pytest.approx(0.3)


# =============================================================================
# Adaptation
# =============================================================================

def test_too_few_samples_leaves_thresholds(db_session, test_config, add_reviews):
    add_reviews(49, "block", "allow")
    service = _service(db_session, test_config)

    assert service.adapt_thresholds() is None
    assert service.get_settings().block_threshold == 0.7


def test_false_positives_raise_thresholds(db_session, test_config, add_reviews):
    add_reviews(10, "block", "allow")
    add_reviews(40, "allow", "allow")

    adjustment = _service(db_session, test_config).adapt_thresholds()

    assert adjustment.sample_count == 50
    assert adjustment.false_positive_rate == pytest.approx(0.2)
    assert adjustment.new == {"allow": 0.3, "review": 0.53, "block": 0.75}
    assert adjustment.changed


def test_false_negatives_lower_thresholds(db_session, test_config, add_reviews):
    add_reviews(10, "allow", "block")
    add_reviews(40, "block", "block")

    adjustment = _service(db_session, test_config).adapt_thresholds()

    assert adjustment.false_negative_rate == pytest.approx(0.2)
    assert adjustment.new == {"allow": 0.3, "review": 0.47, "block": 0.65}


def test_both_error_rates_cancel_out(db_session, test_config, add_reviews):
    add_reviews(10, "block", "allow")
    add_reviews(10, "allow", "block")
    add_reviews(30, "review", "review")

    adjustment = _service(db_session, test_config).adapt_thresholds()

    assert adjustment.new == {"allow": 0.3, "review": 0.5, "block": 0.7}
    assert not adjustment.changed


def test_reviews_outside_window_are_ignored(db_session, test_config, add_reviews):
    add_reviews(60, "block", "allow", reviewed_at=FIXED_NOW - timedelta(days=8))

    assert _service(db_session, test_config).adapt_thresholds() is None


def test_unreviewed_items_are_ignored(db_session, test_config, add_reviews):
    add_reviews(60, "block", "allow", reviewed_at=None)

    assert _service(db_session, test_config).adapt_thresholds() is None


def test_adapted_thresholds_are_clamped(db_session, test_config, add_reviews):
    service = _service(db_session, test_config)
    service.update_thresholds(0.3, 0.5, 0.93)
    add_reviews(50, "block", "allow")

    adjustment = service.adapt_thresholds()

    assert adjustment.new["block"] == 0.95
    assert adjustment.new["review"] == 0.53


def test_clamping_can_be_disabled(db_session, test_config, add_reviews):
    service = _service(db_session, test_config, clamp_thresholds=False)
    service.update_thresholds(0.3, 0.5, 0.98)
    add_reviews(50, "block", "allow")

    assert service.adapt_thresholds().new["block"] == pytest.approx(1.03)


def test_threshold_runner_commits(session_factory, session_maker, test_config, add_reviews):
    add_reviews(50, "block", "allow")

    ThresholdUpdateRunner(session_factory=session_factory, config=test_config, clock=lambda: FIXED_NOW).tick()

    observer = session_maker()
    try:
        assert ThresholdService(observer).get_settings().block_threshold == 0.75
    finally:
        observer.close()
