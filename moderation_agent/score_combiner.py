"""
Score Combiner.

Merges lexicon scores with the optional classifier signal, category by
category. A lexicon score above its category threshold dominates and the
classifier only adds a small boost; otherwise the classifier dominates.

The classifier emits one block probability. ``project_classifier_probability``
spreads it over the four categories with fixed factors; swap that function
for a multi-label model without touching the decision engine.
"""

from typing import Optional

from .constants import (
    CLASSIFIER_PROJECTION,
    COMBINER_BOOST_WEIGHT,
    COMBINER_CATEGORY_THRESHOLDS,
    COMBINER_CLASSIFIER_WEIGHT,
    COMBINER_LEXICON_WEIGHT,
    SCORED_CATEGORIES,
    SCORE_CAP,
)
from .models import CategoryScores


def project_classifier_probability(probability: float) -> CategoryScores:
    """Spread a single block probability over all categories."""
    return CategoryScores.from_dict(
        {category: probability * CLASSIFIER_PROJECTION[category] for category in SCORED_CATEGORIES}
    )


def combine_category(category: str, lexicon_score: float, classifier_score: Optional[float]) -> float:
    if classifier_score is None:
        return lexicon_score
    if lexicon_score > COMBINER_CATEGORY_THRESHOLDS[category]:
        return min(SCORE_CAP, max(lexicon_score, classifier_score) + classifier_score * COMBINER_BOOST_WEIGHT)
    return min(
        SCORE_CAP,
        classifier_score * COMBINER_CLASSIFIER_WEIGHT + lexicon_score * COMBINER_LEXICON_WEIGHT,
    )


def combine_scores(lexicon: CategoryScores, classifier_probability: Optional[float]) -> CategoryScores:
    """
    Combine lexicon scores with a classifier probability.

    ``classifier_probability`` of None means no classifier ran and the
    lexicon scores are returned unchanged.
    """
    if classifier_probability is None:
        return lexicon

    projected = project_classifier_probability(classifier_probability).as_dict()
    lexicon_values = lexicon.as_dict()
    return CategoryScores.from_dict({
        category: combine_category(category, lexicon_values[category], projected[category])
        for category in SCORED_CATEGORIES
    })
