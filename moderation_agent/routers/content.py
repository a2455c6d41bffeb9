"""
Content Router.

Endpoints:
- POST /content - Submit content for moderation (queued)
- GET /content/pending-review - Items waiting for a moderator
- POST /content/reset-stuck - Requeue items stuck in processing
- GET /content/{content_id} - Item with its latest prediction
- POST /content/{content_id}/send-to-review - Move an item to pending_review
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import settings
from ..content_service import ContentService
from ..dependencies import get_content_service, get_queue_service
from ..models import ContentCreate, ContentResponse, ContentStatus, ResetStuckResponse
from ..queue_service import QueueService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/content",
    tags=["content"],
    responses={404: {"description": "Content not found"}},
)


@router.post("", response_model=ContentResponse, status_code=201)
def submit_content(
    request: ContentCreate,
    service: ContentService = Depends(get_content_service),
):
    """Queue a new content item. The moderation worker scores it asynchronously."""
    try:
        content = service.submit(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return service.to_response(content)


@router.get("/pending-review", response_model=List[ContentResponse])
def list_pending_review(
    limit: int = Query(default=100, ge=1, le=500),
    queue: QueueService = Depends(get_queue_service),
    service: ContentService = Depends(get_content_service),
):
    items = queue.list_by_status(ContentStatus.PENDING_REVIEW, limit=limit)
    return [service.to_response(item) for item in items]


@router.post("/reset-stuck", response_model=ResetStuckResponse)
def reset_stuck(
    timeout_minutes: Optional[int] = Query(default=None, ge=1),
    queue: QueueService = Depends(get_queue_service),
):
    """Requeue items left in processing longer than the timeout."""
    reset = queue.reset_stuck(timeout_minutes or settings.stuck_timeout_minutes)
    return ResetStuckResponse(reset_count=reset)


@router.get("/{content_id}", response_model=ContentResponse)
def get_content(
    content_id: str,
    service: ContentService = Depends(get_content_service),
):
    return service.to_response(service.get(content_id))


@router.post("/{content_id}/send-to-review", response_model=ContentResponse)
def send_to_review(
    content_id: str,
    queue: QueueService = Depends(get_queue_service),
    service: ContentService = Depends(get_content_service),
):
    queue.send_to_review(content_id)
    return service.to_response(service.get(content_id))
