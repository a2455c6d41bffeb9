"""
Wordlist Router.

Endpoints:
- GET /wordlist - All entries (optionally one category)
- GET /wordlist/category/{category} - Active words of one category
- POST /wordlist - Add a word (re-activates an inactive duplicate)
- PUT /wordlist/{word_id} - Edit word, category or active flag
- DELETE /wordlist/{word_id} - Remove an entry
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_wordlist_service
from ..models import BlockedWordCreate, BlockedWordResponse, BlockedWordUpdate
from ..wordlist_service import WordlistService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/wordlist",
    tags=["wordlist"],
    responses={404: {"description": "Word not found"}},
)


@router.get("", response_model=List[BlockedWordResponse])
def list_words(
    category: Optional[str] = Query(default=None),
    service: WordlistService = Depends(get_wordlist_service),
):
    return service.list_words(category)


@router.get("/category/{category}", response_model=List[str])
def active_words_by_category(
    category: str,
    service: WordlistService = Depends(get_wordlist_service),
):
    return service.get_active_words_by_category(category)


@router.post("", response_model=BlockedWordResponse, status_code=201)
def add_word(
    request: BlockedWordCreate,
    service: WordlistService = Depends(get_wordlist_service),
):
    return service.add_word(request.word, request.category)


@router.put("/{word_id}", response_model=BlockedWordResponse)
def update_word(
    word_id: str,
    request: BlockedWordUpdate,
    service: WordlistService = Depends(get_wordlist_service),
):
    return service.update_word(
        word_id, word=request.word, category=request.category, is_active=request.is_active
    )


@router.delete("/{word_id}", status_code=204)
def delete_word(
    word_id: str,
    service: WordlistService = Depends(get_wordlist_service),
):
    service.delete_word(word_id)
