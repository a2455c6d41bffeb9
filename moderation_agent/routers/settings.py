"""
Settings Router.

Endpoints:
- GET /settings - Current thresholds and retraining state
- PUT /settings/thresholds - Replace allow/review/block thresholds
- POST /settings/retrain-threshold - Change the label count that triggers retraining
- POST /settings/retraining - Enable or disable retraining
"""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_threshold_service
from ..models import (
    ModerationSettings,
    RetrainingToggle,
    RetrainThresholdUpdate,
    SettingsResponse,
    ThresholdsUpdate,
)
from ..threshold_service import ThresholdService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
)


def _response(snapshot: ModerationSettings) -> SettingsResponse:
    return SettingsResponse(
        allow_threshold=snapshot.allow_threshold,
        review_threshold=snapshot.review_threshold,
        block_threshold=snapshot.block_threshold,
        retrain_threshold=snapshot.retrain_threshold,
        new_gold_since_last_train=snapshot.new_gold_since_last_train,
        retraining_enabled=snapshot.retraining_enabled,
        last_retrain_date=snapshot.last_retrain_date,
    )


@router.get("", response_model=SettingsResponse)
def get_settings(service: ThresholdService = Depends(get_threshold_service)):
    snapshot = service.get_settings()
    service.db.commit()  # Persist the defaults row on first access
    return _response(snapshot)


@router.put("/thresholds", response_model=SettingsResponse)
def update_thresholds(
    request: ThresholdsUpdate,
    service: ThresholdService = Depends(get_threshold_service),
):
    """Requires 0 <= allow < review < block <= 1 (400 otherwise)."""
    return _response(service.update_thresholds(
        request.allow_threshold, request.review_threshold, request.block_threshold
    ))


@router.post("/retrain-threshold", response_model=SettingsResponse)
def update_retrain_threshold(
    request: RetrainThresholdUpdate,
    service: ThresholdService = Depends(get_threshold_service),
):
    return _response(service.update_retrain_threshold(request.retrain_threshold))


@router.post("/retraining", response_model=SettingsResponse)
def set_retraining(
    request: RetrainingToggle,
    service: ThresholdService = Depends(get_threshold_service),
):
    return _response(service.set_retraining_enabled(request.enabled))
