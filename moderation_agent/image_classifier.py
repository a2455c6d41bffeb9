"""
Image signals.

The image classifier itself is a pluggable capability (``ImageClassifier``
protocol). The moderation pipeline only consumes its label and confidence:

- A label above ``image_label_min_confidence`` is appended to the text, so
  the wordlist can catch image-derived labels.
- Configured boost rules raise selected lexicon category scores when the
  label matches (default: "dog" above 0.5 boosts toxic/hate/offensive by 0.3).
"""

import logging
from typing import Iterable, Optional, Protocol

from .config import ImageBoostRule
from .constants import SCORE_CAP
from .models import CategoryScores, ImageSignal

logger = logging.getLogger(__name__)


class ImageClassifier(Protocol):
    """Classifies raw image bytes into a label with confidence."""

    def classify(self, image_bytes: bytes) -> Optional[ImageSignal]:
        ...


class NullImageClassifier:
    """Default classifier used when no image model is configured."""

    def classify(self, image_bytes: bytes) -> Optional[ImageSignal]:
        return None


def text_with_image_label(text: str, signal: Optional[ImageSignal], min_confidence: float) -> str:
    """Append the image label as a pseudo-keyword when it is confident enough."""
    if signal is None or not signal.label or signal.confidence <= min_confidence:
        return text
    if not text:
        return signal.label
    return f"{text} {signal.label}"


def apply_image_boosts(
    scores: CategoryScores,
    signal: Optional[ImageSignal],
    rules: Iterable[ImageBoostRule],
) -> CategoryScores:
    """Raise category scores for every rule whose label matches ``signal``."""
    if signal is None or not signal.label:
        return scores

    values = scores.as_dict()
    label = signal.label.lower()
    for rule in rules:
        if rule.label_contains.lower() not in label or signal.confidence <= rule.min_confidence:
            continue
        for category in rule.categories:
            if category in values:
                values[category] = min(SCORE_CAP, values[category] + rule.boost)
        logger.debug(f"Image label '{signal.label}' matched boost rule '{rule.label_contains}'")
    return CategoryScores.from_dict(values)
