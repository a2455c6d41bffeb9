"""Content moderation agent: lexicon + classifier scoring with adaptive thresholds."""

__version__ = "1.0.0"
