"""Candidate-facing application endpoints."""

from dataclasses import asdict
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
import structlog

from admissions_backend.auth.dependencies import get_current_identity, get_lifecycle_service
from admissions_backend.auth.identity import Identity
from admissions_backend.core.config import settings
from admissions_backend.core.error_handling import AuthorizationError
from admissions_backend.core.logging import performance_logger
from admissions_backend.schemas.application import ApplicationResponse
from admissions_backend.schemas.form import ESSAY_FIELDS, SELECTION_FIELDS, UPLOAD_FIELDS
from admissions_backend.schemas.review import FormSave, SecondRoundResponse
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])


def _require_dev_tools(identity: Identity) -> None:
    if not settings.enable_dev_tools:
        logger.warning("Developer tool requested while disabled", user_id=identity.identity)
        raise AuthorizationError("Developer tools are disabled")


@router.get("/form")
async def get_form_config() -> Dict[str, List[Dict[str, Any]]]:
    """Application form sections with field ids, labels and required flags."""
    return {
        "essays": [asdict(f) for f in ESSAY_FIELDS],
        "selections": [asdict(f) for f in SELECTION_FIELDS],
        "uploads": [asdict(f) for f in UPLOAD_FIELDS],
    }


@router.get("/me", response_model=ApplicationResponse)
async def get_my_application(
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Get the caller's application, creating a draft on first access."""
    with performance_logger.log_operation_time("get_my_application", user_id=identity.identity):
        record = service.get_or_create(identity.identity)
        return ApplicationResponse.from_record(record)


@router.put("/me/form", response_model=ApplicationResponse)
async def save_my_form(
    payload: FormSave,
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Save the form answers of a draft application."""
    with performance_logger.log_operation_time("save_form", user_id=identity.identity):
        record = service.save_form(identity.identity, payload.form_data)
        return ApplicationResponse.from_record(record)


@router.post("/me/submit", response_model=ApplicationResponse)
async def submit_my_application(
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Submit the caller's draft application."""
    with performance_logger.log_operation_time("submit_application", user_id=identity.identity):
        record = service.submit(identity.identity)
        logger.info("Application submitted via API", user_id=identity.identity)
        return ApplicationResponse.from_record(record)


@router.post("/me/second-round", response_model=ApplicationResponse)
async def submit_second_round(
    payload: SecondRoundResponse,
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Submit the second-round video link."""
    with performance_logger.log_operation_time("submit_second_round", user_id=identity.identity):
        record = service.submit_second_round_response(identity.identity, payload.video_link)
        return ApplicationResponse.from_record(record)


@router.post("/me/accept", response_model=ApplicationResponse)
async def accept_offer(
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Accept a released offer and enroll."""
    with performance_logger.log_operation_time("accept_offer", user_id=identity.identity):
        record = service.accept_offer(identity.identity)
        return ApplicationResponse.from_record(record)


@router.post("/me/reset", response_model=ApplicationResponse)
async def reset_my_application(
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Developer tool: revert the caller's application to draft."""
    _require_dev_tools(identity)
    record = service.reset(identity.identity, actor=identity.identity)
    return ApplicationResponse.from_record(record)


@router.post("/me/advance", response_model=ApplicationResponse)
async def advance_my_application(
    identity: Identity = Depends(get_current_identity),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Developer tool: move the caller's application one step forward."""
    _require_dev_tools(identity)
    record = service.advance_status(identity.identity, actor=identity.identity)
    return ApplicationResponse.from_record(record)
