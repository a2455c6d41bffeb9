"""
Lexicon Scorer.

Rule-based per-category scoring from keyword matches and a few structural
spam heuristics (repetition, punctuation, casing). Pure and deterministic
for a given wordlist snapshot.

Single-word keywords match on word boundaries ("ass" does not match
"classic"); multi-word phrases match as substrings of the lower-cased text.
"""

import re
from collections import Counter
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Optional

from .constants import (
    BASE_KEYWORDS,
    CAPS_MIN_LETTERS,
    CAPS_RATIO_LIMIT,
    CATEGORY_BASE_SCORES,
    CATEGORY_HATE,
    CATEGORY_OFFENSIVE,
    CATEGORY_SLUR,
    CATEGORY_SPAM,
    CATEGORY_TOXIC,
    COMPOUND_BOOST_FACTOR,
    COMPOUND_MIN_CATEGORIES,
    HARMFUL_CATEGORIES,
    MATCH_WEIGHT,
    PUNCTUATION_COMBINED_LIMIT,
    PUNCTUATION_SINGLE_LIMIT,
    PUNCTUATION_SPAM_BOOST,
    REPEATED_WORD_MIN_COUNT,
    SCORE_CAP,
    SCORE_FLOOR,
    SCORED_CATEGORIES,
    SHORT_TEXT_LENGTH,
    SHORT_TEXT_MIN_SPAM_MATCHES,
)
from .models import CategoryScores


@lru_cache(maxsize=4096)
def _word_pattern(word: str) -> "re.Pattern":
    # Not preceded or followed by a word character; works for "$$$" and "@ss" too
    return re.compile(rf"(?<!\w){re.escape(word)}(?!\w)")


def keyword_matches(lower_text: str, keyword: str) -> bool:
    """True if ``keyword`` occurs in already lower-cased text."""
    keyword = keyword.strip().lower()
    if not keyword:
        return False
    if " " in keyword:
        return keyword in lower_text
    return _word_pattern(keyword).search(lower_text) is not None


def count_matches(lower_text: str, keywords: Iterable[str]) -> int:
    """Number of distinct keywords found (each entry counts at most once)."""
    return sum(1 for keyword in keywords if keyword_matches(lower_text, keyword))


def build_keyword_sets(wordlists: Optional[Mapping[str, Iterable[str]]] = None) -> Dict[str, List[str]]:
    """
    Merge built-in keywords with stored words for each scored category.

    Slur words are folded into toxic, hate and offensive. Entries are
    lower-cased and de-duplicated per category, preserving order.
    """
    wordlists = wordlists or {}
    slurs = list(wordlists.get(CATEGORY_SLUR, []))

    merged: Dict[str, List[str]] = {}
    for category in SCORED_CATEGORIES:
        words = list(BASE_KEYWORDS.get(category, [])) + list(wordlists.get(category, []))
        if category in HARMFUL_CATEGORIES:
            words += slurs
        seen = set()
        unique = []
        for word in words:
            word = word.strip().lower()
            if word and word not in seen:
                seen.add(word)
                unique.append(word)
        merged[category] = unique
    return merged


def spam_heuristic_boost(text: str, spam_matches: int) -> int:
    """Extra spam matches from structural signals of ``text``."""
    boost = 0

    # Repeated words: every occurrence beyond the second counts
    words = text.lower().split()
    boost += sum(count - 2 for count in Counter(words).values() if count >= REPEATED_WORD_MIN_COUNT)

    exclamations = text.count("!")
    questions = text.count("?")
    if (
        exclamations >= PUNCTUATION_SINGLE_LIMIT
        or questions >= PUNCTUATION_SINGLE_LIMIT
        or exclamations + questions >= PUNCTUATION_COMBINED_LIMIT
    ):
        boost += PUNCTUATION_SPAM_BOOST

    letters = [c for c in text if c.isalpha()]
    if len(letters) > CAPS_MIN_LETTERS:
        upper = sum(1 for c in letters if c.isupper())
        if upper / len(letters) > CAPS_RATIO_LIMIT:
            boost += 1

    # Short-spam signal uses the count found so far, including the boosts above
    if len(text) < SHORT_TEXT_LENGTH and spam_matches + boost >= SHORT_TEXT_MIN_SPAM_MATCHES:
        boost += 1

    return boost


def category_score(category: str, matches: int) -> float:
    if matches <= 0:
        return SCORE_FLOOR
    return min(SCORE_CAP, CATEGORY_BASE_SCORES[category] + matches * MATCH_WEIGHT)


class LexiconScorer:
    """Scores text against the base keywords merged with a wordlist snapshot."""

    def score(self, text: str, wordlists: Optional[Mapping[str, Iterable[str]]] = None) -> CategoryScores:
        text = text or ""
        lower_text = text.lower()
        keyword_sets = build_keyword_sets(wordlists)

        matches = {
            category: count_matches(lower_text, keyword_sets[category])
            for category in SCORED_CATEGORIES
        }
        matches[CATEGORY_SPAM] += spam_heuristic_boost(text, matches[CATEGORY_SPAM])

        scores = {category: category_score(category, matches[category]) for category in SCORED_CATEGORIES}

        triggered = [category for category in HARMFUL_CATEGORIES if matches[category] > 0]
        if len(triggered) >= COMPOUND_MIN_CATEGORIES:
            for category in triggered:
                scores[category] = min(SCORE_CAP, scores[category] * COMPOUND_BOOST_FACTOR)

        return CategoryScores(
            spam=scores[CATEGORY_SPAM],
            toxic=scores[CATEGORY_TOXIC],
            hate=scores[CATEGORY_HATE],
            offensive=scores[CATEGORY_OFFENSIVE],
        )
