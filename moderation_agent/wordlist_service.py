"""
Wordlist Service for the Content Moderation Agent.

Handles:
- Category -> keyword lookups for the lexicon scorer
- Wordlist CRUD (case-insensitive, stored lower-case)
- Idempotent seeding of the default wordlist
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .constants import BASE_KEYWORDS, WORDLIST_CATEGORIES
from .db_models import DBBlockedWord
from .exceptions import BlockedWordNotFoundError
from .models import utcnow

logger = logging.getLogger(__name__)


class WordlistService:
    """Store-backed wordlist. Categories are free text."""

    def __init__(self, db: Session):
        self.db = db

    # =============================================================================
    # Lookups
    # =============================================================================

    def get_active_words_by_category(self, category: str) -> List[str]:
        rows = (
            self.db.query(DBBlockedWord.word)
            .filter(DBBlockedWord.category == category.lower(), DBBlockedWord.is_active.is_(True))
            .all()
        )
        return [row.word for row in rows]

    def get_active_wordlists(self) -> Dict[str, List[str]]:
        """All active words grouped by category (one query)."""
        rows = (
            self.db.query(DBBlockedWord.category, DBBlockedWord.word)
            .filter(DBBlockedWord.is_active.is_(True))
            .all()
        )
        wordlists: Dict[str, List[str]] = {}
        for category, word in rows:
            wordlists.setdefault(category, []).append(word)
        return wordlists

    def list_words(self, category: Optional[str] = None) -> List[DBBlockedWord]:
        query = self.db.query(DBBlockedWord)
        if category:
            query = query.filter(DBBlockedWord.category == category.lower())
        return query.order_by(DBBlockedWord.category, DBBlockedWord.word).all()

    def get_word(self, word_id: str) -> DBBlockedWord:
        entry = self.db.query(DBBlockedWord).filter(DBBlockedWord.id == word_id).first()
        if entry is None:
            raise BlockedWordNotFoundError(word_id)
        return entry

    # =============================================================================
    # Mutations
    # =============================================================================

    def add_word(self, word: str, category: str) -> DBBlockedWord:
        """
        Add a word to a category.

        An existing entry with the same word and category (case-insensitive)
        is returned instead, re-activated if it was inactive.
        """
        word = word.strip().lower()
        category = category.strip().lower()

        existing = (
            self.db.query(DBBlockedWord)
            .filter(func.lower(DBBlockedWord.word) == word, DBBlockedWord.category == category)
            .first()
        )
        if existing is not None:
            if not existing.is_active:
                existing.is_active = True
                existing.updated_at = utcnow()
                self.db.commit()
                logger.info(f"Re-activated blocked word '{word}' in {category}")
            return existing

        entry = DBBlockedWord(word=word, category=category, is_active=True)
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"Added blocked word '{word}' to {category}")
        return entry

    def update_word(
        self,
        word_id: str,
        word: Optional[str] = None,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> DBBlockedWord:
        entry = self.get_word(word_id)
        if word is not None:
            entry.word = word.strip().lower()
        if category is not None:
            entry.category = category.strip().lower()
        if is_active is not None:
            entry.is_active = is_active
        entry.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def delete_word(self, word_id: str) -> None:
        entry = self.get_word(word_id)
        word, category = entry.word, entry.category
        self.db.delete(entry)
        self.db.commit()
        logger.info(f"Deleted blocked word '{word}' from {category}")

    def seed_defaults(self) -> int:
        """Insert the built-in keywords that are not stored yet. Returns rows added."""
        existing = {
            (word, category)
            for word, category in self.db.query(DBBlockedWord.word, DBBlockedWord.category).all()
        }
        added = 0
        for category in WORDLIST_CATEGORIES:
            for word in BASE_KEYWORDS.get(category, []):
                if (word, category) in existing:
                    continue
                self.db.add(DBBlockedWord(word=word, category=category, is_active=True))
                existing.add((word, category))
                added += 1
        if added:
            self.db.commit()
            logger.info(f"Seeded {added} default blocked words")
        return added
