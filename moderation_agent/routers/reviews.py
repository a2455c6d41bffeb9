"""
Reviews Router.

Endpoints:
- POST /reviews/{content_id} - Record a moderator gold label for a content item
- GET /reviews/{content_id} - Latest review of a content item
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_review_service
from ..models import ReviewCreate, ReviewResponse
from ..review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reviews",
    tags=["reviews"],
    responses={404: {"description": "Content not found"}},
)


@router.post("/{content_id}", response_model=ReviewResponse)
def submit_review(
    content_id: str,
    request: ReviewCreate,
    service: ReviewService = Depends(get_review_service),
):
    """
    Set the gold label for a content item.

    allow approves the item, block blocks it, review keeps it pending.
    The first label on a review counts toward retraining.
    """
    review = service.submit_review(
        content_id,
        gold_label=request.gold_label,
        feedback=request.feedback,
        moderator_id=request.moderator_id,
    )
    return ReviewResponse.model_validate(review)


@router.get("/{content_id}", response_model=ReviewResponse)
def get_review(
    content_id: str,
    service: ReviewService = Depends(get_review_service),
):
    review = service.latest_review_for(content_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"No review for content {content_id}")
    return ReviewResponse.model_validate(review)
