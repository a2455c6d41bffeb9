"""Tests for combining lexicon scores with the classifier signal."""

import pytest

from moderation_agent.models import CategoryScores
from moderation_agent.score_combiner import combine_category, combine_scores, project_classifier_probability


def test_without_classifier_lexicon_is_returned_unchanged():
    lexicon = CategoryScores(spam=0.6, toxic=0.05, hate=0.05, offensive=0.05)
    assert combine_scores(lexicon, None) is lexicon


def test_projection_factors():
    projected = project_classifier_probability(1.0)

    assert projected.spam == pytest.approx(1.0)
    assert projected.toxic == pytest.approx(0.7)
    assert projected.hate == pytest.approx(0.6)
    assert projected.offensive == pytest.approx(0.8)


def test_strong_lexicon_dominates():
    # toxic lexicon 0.7 > 0.5 threshold; classifier toxic = 0.5 * 0.7
    assert combine_category("toxic", 0.7, 0.35) == pytest.approx(0.7 + 0.035)


def test_weak_lexicon_defers_to_classifier():
    lexicon = CategoryScores(spam=0.05, toxic=0.05, hate=0.05, offensive=0.05)
    combined = combine_scores(lexicon, 0.5)

    assert combined.spam == pytest.approx(0.5 * 0.7 + 0.05 * 0.3)
    assert combined.toxic == pytest.approx(0.35 * 0.7 + 0.05 * 0.3)
    assert combined.hate == pytest.approx(0.3 * 0.7 + 0.05 * 0.3)
    assert combined.offensive == pytest.approx(0.4 * 0.7 + 0.05 * 0.3)


def test_lexicon_at_threshold_is_not_dominant():
    # Strictly greater than the category threshold is required
    assert combine_category("spam", 0.4, 0.2) == pytest.approx(0.2 * 0.7 + 0.4 * 0.3)


def test_combined_scores_are_capped():
    lexicon = CategoryScores(spam=0.95, toxic=0.05, hate=0.05, offensive=0.05)
    assert combine_scores(lexicon, 1.0).spam == pytest.approx(0.95)
