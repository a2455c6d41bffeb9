"""
Model Router.

Endpoints:
- GET /model/status - Live classifier and known versions
- POST /model/reload-active - Load the active version from disk
- POST /model/save-active - Write the live classifier to the active version's file (409 if it is another version)
- POST /model/retrain - Train a new version now (409 when the retrain is skipped)
"""

import logging

from fastapi import APIRouter, Depends, Query

from ..classifier import ClassifierSlot
from ..dependencies import get_classifier_slot, get_training_service
from ..models import ModelStatusResponse, ModelVersionResponse, TrainingResultResponse
from ..training_service import TrainingService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/model",
    tags=["model"],
)


@router.get("/status", response_model=ModelStatusResponse)
def model_status(
    service: TrainingService = Depends(get_training_service),
    slot: ClassifierSlot = Depends(get_classifier_slot),
):
    state = slot.get()
    active = service.get_active_version()
    return ModelStatusResponse(
        loaded=state.is_loaded,
        loaded_version=state.version,
        active_version=active.version if active else None,
        versions=[ModelVersionResponse.model_validate(v) for v in service.list_versions()],
    )


@router.post("/reload-active")
def reload_active(service: TrainingService = Depends(get_training_service)):
    loaded = service.reload_active()
    return {"message": f"Loaded model v{loaded.version}", "version": loaded.version}


@router.post("/save-active")
def save_active(service: TrainingService = Depends(get_training_service)):
    path = service.save_active()
    return {"message": "Active model saved", "model_path": path}


@router.post("/retrain", response_model=TrainingResultResponse)
def retrain(
    activate: bool = Query(default=True),
    service: TrainingService = Depends(get_training_service),
):
    """Train from all gold labels regardless of the counter."""
    outcome = service.retrain(activate=activate)
    version = outcome.version
    return TrainingResultResponse(
        version=version.version,
        activated=outcome.activated,
        accuracy=version.accuracy,
        precision=version.precision,
        recall=version.recall,
        f1_score=version.f1_score,
        training_sample_count=version.training_sample_count,
    )
