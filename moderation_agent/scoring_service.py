"""
Scoring Service (decision engine).

One scoring pass for one content item:

1. Lexicon scores from the text (plus a confident image label).
2. Image boost rules applied to the lexicon scores.
3. Classifier probability, if a model is loaded, combined per category.
4. Context multiplier from the cached context snapshot.
5. Weighted final score -> decision + confidence.
6. Prediction persisted, content status updated, processed_at stamped.

Thresholds come from an explicit ``ModerationSettings`` snapshot taken by the
caller at the start of the iteration.
"""

import json
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from .classifier import ClassifierSlot, ClassifierState, LoadedClassifier, classifier_slot as default_slot
from .config import Settings, settings as default_settings
from .constants import FINAL_SCORE_WEIGHTS, HIGH_CONFIDENCE_DISTANCE, MEDIUM_CONFIDENCE_DISTANCE
from .context_service import ContextService, context_multiplier
from .db_models import DBContent, DBPrediction
from .exceptions import ScoringError
from .image_classifier import apply_image_boosts, text_with_image_label
from .lexicon_scorer import LexiconScorer
from .models import (
    CategoryScores,
    ConfidenceLevel,
    Decision,
    ImageSignal,
    ModerationResult,
    ModerationSettings,
    utcnow,
)
from .score_combiner import combine_scores
from .wordlist_service import WordlistService

logger = logging.getLogger(__name__)


def weighted_score(scores: CategoryScores) -> float:
    values = scores.as_dict()
    return sum(values[category] * weight for category, weight in FINAL_SCORE_WEIGHTS.items())


def decide(final_score: float, moderation_settings: ModerationSettings) -> Decision:
    """Allow below the allow threshold, block above the block threshold, review otherwise."""
    if final_score < moderation_settings.allow_threshold:
        return Decision.ALLOW
    if final_score > moderation_settings.block_threshold:
        return Decision.BLOCK
    return Decision.REVIEW


def confidence_level(final_score: float, review_threshold: float) -> ConfidenceLevel:
    """Distance from the review threshold, the ambiguous middle of the band."""
    distance = abs(final_score - review_threshold)
    if distance > HIGH_CONFIDENCE_DISTANCE:
        return ConfidenceLevel.HIGH
    if distance > MEDIUM_CONFIDENCE_DISTANCE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def image_signal_for(content: DBContent) -> Optional[ImageSignal]:
    image = content.image
    if image is None or not image.classification_label:
        return None
    return ImageSignal(label=image.classification_label, confidence=image.classification_confidence or 0.0)


class ScoringService:
    """Scores content items and records the outcome."""

    def __init__(
        self,
        db: Session,
        slot: Optional[ClassifierSlot] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        lexicon: Optional[LexiconScorer] = None,
    ):
        self.db = db
        self.slot = slot or default_slot
        self.config = config or default_settings
        self.clock = clock or utcnow
        self.lexicon = lexicon or LexiconScorer()
        self.context_service = ContextService(db, clock=self.clock)

    # =============================================================================
    # Category Scores
    # =============================================================================

    def classifier_probability(self, state: ClassifierState, text: str) -> Optional[float]:
        """Block probability from the loaded model, or None (no model or inference failed)."""
        if not isinstance(state, LoadedClassifier):
            return None
        try:
            return state.model.predict(text)
        except Exception as e:
            logger.warning(f"Classifier v{state.version} inference failed, using lexicon only: {e}")
            return None

    def score_text(
        self,
        text: str,
        wordlists: Optional[Mapping[str, Iterable[str]]] = None,
        state: Optional[ClassifierState] = None,
        image_signal: Optional[ImageSignal] = None,
    ) -> Tuple[CategoryScores, bool]:
        """
        Category scores for ``text``.

        Returns the scores and whether the classifier contributed.
        """
        state = state if state is not None else self.slot.get()
        text = text_with_image_label(text or "", image_signal, self.config.image_label_min_confidence)

        lexicon_scores = self.lexicon.score(text, wordlists)
        lexicon_scores = apply_image_boosts(lexicon_scores, image_signal, self.config.image_boost_rules)

        probability = self.classifier_probability(state, text)
        return combine_scores(lexicon_scores, probability), probability is not None

    # =============================================================================
    # Decision Engine
    # =============================================================================

    def score_content(self, content: DBContent, moderation_settings: ModerationSettings) -> ModerationResult:
        """
        Run one full scoring pass and commit the prediction and new status.

        Any failure rolls back the pass and raises ScoringError; the item
        keeps whatever status was last committed (processing, for a claimed item).
        """
        content_id = content.id
        try:
            state = self.slot.get()
            wordlists = WordlistService(self.db).get_active_wordlists()
            scores, used_classifier = self.score_text(
                content.text, wordlists, state, image_signal_for(content)
            )

            context = self.context_service.get_or_create_context(content)
            multiplier = context_multiplier(context)
            final_score = weighted_score(scores) * multiplier

            decision = decide(final_score, moderation_settings)
            confidence = confidence_level(final_score, moderation_settings.review_threshold)
            model_version = state.version if used_classifier else None

            context_factors: Dict = dict(context.as_dict(), multiplier=multiplier)
            self.db.add(DBPrediction(
                content_id=content_id,
                spam_score=scores.spam,
                toxic_score=scores.toxic,
                hate_score=scores.hate,
                offensive_score=scores.offensive,
                final_score=final_score,
                decision=decision.value,
                confidence=confidence.value,
                context_factors=json.dumps(context_factors),
                model_version=model_version,
                created_at=self.clock(),
            ))

            new_status = decision.content_status
            content.status = new_status.value
            content.processed_at = self.clock()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise ScoringError(content_id, str(e)) from e

        logger.info(
            f"Content {content_id}: {decision.value} (score={final_score:.3f}, "
            f"confidence={confidence.value}, multiplier={multiplier:.2f}) -> {new_status.value}"
        )
        return ModerationResult(
            content_id=content_id,
            decision=decision,
            final_score=final_score,
            confidence=confidence,
            new_status=new_status,
            scores=scores,
            model_version=model_version,
        )
