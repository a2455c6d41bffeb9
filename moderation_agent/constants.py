"""
Application Constants for the Content Moderation Agent.

Centralizes scoring weights, base wordlists, and magic numbers.

Note: Dynamic configuration (from environment variables) lives in config.py.
Thresholds that adapt at runtime live in the system_settings table.
This file only contains true constants that don't change between environments.
"""

# =============================================================================
# Score Bounds
# =============================================================================

SCORE_FLOOR = 0.05  # No-signal score, never exactly zero
SCORE_CAP = 0.95  # Upper bound for every category score

# =============================================================================
# Lexicon Scoring
# =============================================================================

CATEGORY_SPAM = "spam"
CATEGORY_TOXIC = "toxic"
CATEGORY_HATE = "hate"
CATEGORY_OFFENSIVE = "offensive"
CATEGORY_SLUR = "slur"

SCORED_CATEGORIES = (CATEGORY_SPAM, CATEGORY_TOXIC, CATEGORY_HATE, CATEGORY_OFFENSIVE)
HARMFUL_CATEGORIES = (CATEGORY_TOXIC, CATEGORY_HATE, CATEGORY_OFFENSIVE)
WORDLIST_CATEGORIES = SCORED_CATEGORIES + (CATEGORY_SLUR,)

# Score = min(SCORE_CAP, base + matches * MATCH_WEIGHT) when matches > 0
CATEGORY_BASE_SCORES = {
    CATEGORY_SPAM: 0.4,
    CATEGORY_TOXIC: 0.5,
    CATEGORY_HATE: 0.6,
    CATEGORY_OFFENSIVE: 0.5,
}
MATCH_WEIGHT = 0.2

COMPOUND_BOOST_FACTOR = 1.2  # Applied when >= 2 harmful categories trigger
COMPOUND_MIN_CATEGORIES = 2

# Spam heuristics
REPEATED_WORD_MIN_COUNT = 3
PUNCTUATION_SINGLE_LIMIT = 3  # '!' or '?' count
PUNCTUATION_COMBINED_LIMIT = 4  # '!' + '?' count
PUNCTUATION_SPAM_BOOST = 2
CAPS_RATIO_LIMIT = 0.7
CAPS_MIN_LETTERS = 5
SHORT_TEXT_LENGTH = 100
SHORT_TEXT_MIN_SPAM_MATCHES = 2

# =============================================================================
# Built-in Wordlists (merged with active blocked_words rows)
# =============================================================================

BASE_KEYWORDS = {
    CATEGORY_SPAM: [
        "spam", "buy now", "click here", "click", "limited time", "deal", "offer",
        "this offer", "amazing deal", "act now", "urgent", "free money",
        "limited offer", "special offer", "exclusive deal", "one time",
        "don't miss", "hurry", "today only",
    ],
    CATEGORY_TOXIC: [
        "fuck", "fucking", "bitch", "idiot", "stupid", "moron", "dumb",
        "retard", "asshole", "bastard", "crap",
    ],
    CATEGORY_HATE: [
        "hate", "kill", "die", "you are an idiot", "i hate", "i fucking hate",
        "deserve to die", "should die", "wish you were dead",
    ],
    CATEGORY_OFFENSIVE: [
        "fuck", "fucking", "bitch", "damn", "shit", "asshole", "crap", "hell",
        "bastard",
    ],
}

# =============================================================================
# Score Combination
# =============================================================================

# Lexicon above this value dominates the classifier signal
COMBINER_CATEGORY_THRESHOLDS = dict(CATEGORY_BASE_SCORES)
COMBINER_BOOST_WEIGHT = 0.1
COMBINER_CLASSIFIER_WEIGHT = 0.7
COMBINER_LEXICON_WEIGHT = 0.3

# Spam-like probability projected onto each category
CLASSIFIER_PROJECTION = {
    CATEGORY_SPAM: 1.0,
    CATEGORY_TOXIC: 0.7,
    CATEGORY_HATE: 0.6,
    CATEGORY_OFFENSIVE: 0.8,
}

# =============================================================================
# Decision Engine
# =============================================================================

FINAL_SCORE_WEIGHTS = {
    CATEGORY_SPAM: 0.3,
    CATEGORY_TOXIC: 0.3,
    CATEGORY_HATE: 0.25,
    CATEGORY_OFFENSIVE: 0.15,
}

HIGH_CONFIDENCE_DISTANCE = 0.2
MEDIUM_CONFIDENCE_DISTANCE = 0.1

# =============================================================================
# Context Calculator
# =============================================================================

VETERAN_ACCOUNT_AGE_DAYS = 30
VETERAN_REPUTATION_BONUS = 0.1
VIOLATION_PENALTY = 0.1

DEFAULT_THREAD_SENTIMENT = 0.0  # Not computed yet
DEFAULT_ENGAGEMENT_LEVEL = 0.5  # Not computed yet
DEFAULT_LANGUAGE = "en"

TRUSTED_REPUTATION = 0.8
TRUSTED_MULTIPLIER = 0.9
UNTRUSTED_REPUTATION = 0.3
UNTRUSTED_MULTIPLIER = 1.2
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6
NIGHT_MULTIPLIER = 1.1
HIGH_ENGAGEMENT_LEVEL = 0.8
HIGH_ENGAGEMENT_MULTIPLIER = 1.15

# =============================================================================
# System Settings Defaults
# =============================================================================

DEFAULT_ALLOW_THRESHOLD = 0.3
DEFAULT_REVIEW_THRESHOLD = 0.5
DEFAULT_BLOCK_THRESHOLD = 0.7
DEFAULT_RETRAIN_THRESHOLD = 10

THRESHOLD_FLOOR = 0.05
THRESHOLD_CEILING = 0.95
THRESHOLD_MIN_GAP = 0.01

# =============================================================================
# Authors
# =============================================================================

DEFAULT_AUTHOR_REPUTATION = 50
MIN_USERNAME_LENGTH = 1
MAX_USERNAME_LENGTH = 100
MAX_TEXT_LENGTH = 20000
