"""Admin endpoints: roster, review workflow and decision release."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
import structlog

from admissions_backend.auth.dependencies import get_lifecycle_service, require_admin
from admissions_backend.auth.identity import Identity
from admissions_backend.core.config import settings
from admissions_backend.core.error_handling import AuthorizationError, ValidationError
from admissions_backend.core.logging import performance_logger
from admissions_backend.schemas.application import ApplicationRecord
from admissions_backend.schemas.review import (
    AllocationUpdate,
    DecisionUpdate,
    NoteCreate,
    ReviewCreate,
    ReviewSummary,
)
from admissions_backend.schemas.roster import (
    ALL_ALLOCATIONS,
    ALL_AVAILABILITIES,
    ALL_STATUSES,
    ALL_SUBJECTS,
    Page,
    RosterFilter,
    RosterRow,
)
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService
from admissions_backend.services.roster_export import EXPORT_FILENAME, export_csv
from admissions_backend.services.roster_filter import filter_applications, to_roster_row

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/applications", tags=["admin"])


def roster_filter_params(
    search: str = Query("", description="Search by name, id or school"),
    subject: str = Query(ALL_SUBJECTS),
    availability: str = Query(ALL_AVAILABILITIES),
    allocation: str = Query(ALL_ALLOCATIONS),
    status: str = Query(ALL_STATUSES, description="Pending, Accepted, Rejected or All Statuses"),
) -> RosterFilter:
    return RosterFilter(
        search=search,
        subject=subject,
        availability=availability,
        allocation=allocation,
        status=status,
    )


def _actor(identity: Identity) -> str:
    return identity.email or identity.identity


def _filtered(records, roster_filter: RosterFilter):
    try:
        return filter_applications(records, roster_filter)
    except ValueError as e:
        raise ValidationError(str(e), field="status", value=roster_filter.status)


@router.get("", response_model=Page[RosterRow])
async def list_roster(
    roster_filter: RosterFilter = Depends(roster_filter_params),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    limit: Optional[int] = Query(
        None, ge=1, le=settings.roster_max_records, description="Maximum number of records"
    ),
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """List one page of applications, newest update first, filtered.

    Filters apply to the fetched page; ``total`` and ``next_offset`` describe
    the unfiltered collection.
    """
    page_size = limit or settings.roster_page_size
    with performance_logger.log_operation_time("list_roster", actor=_actor(admin), offset=offset):
        page = service.repository.list_page(offset=offset, limit=page_size)
        visible = _filtered(page.items, roster_filter)
        return Page[RosterRow](
            items=[to_roster_row(record) for record in visible],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
            next_offset=page.next_offset,
        )


@router.get("/export")
async def export_roster(
    roster_filter: RosterFilter = Depends(roster_filter_params),
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Export the filtered roster as CSV."""
    with performance_logger.log_operation_time("export_roster", actor=_actor(admin)):
        records = service.repository.list_all(limit=settings.roster_max_records)
        rows = [to_roster_row(record) for record in _filtered(records, roster_filter)]
        logger.info("Roster exported", actor=_actor(admin), rows=len(rows))
        return Response(
            content=export_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        )


@router.get("/{user_id}", response_model=ApplicationRecord)
async def get_application(
    user_id: str,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Get a full application record including admin data."""
    return service.get_application(user_id)


@router.get("/{user_id}/summary", response_model=ReviewSummary)
async def get_review_summary(
    user_id: str,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Average score, majority decision and flag count of the reviews."""
    return service.review_summary(user_id)


@router.post("/{user_id}/reviews", response_model=ApplicationRecord)
async def record_review(
    user_id: str,
    review: ReviewCreate,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Record a reviewer assessment for the active round."""
    with performance_logger.log_operation_time("record_review", user_id=user_id, actor=_actor(admin)):
        return service.record_review(user_id, _actor(admin), review)


@router.post("/{user_id}/notes", response_model=ApplicationRecord)
async def add_note(
    user_id: str,
    note: NoteCreate,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Append an internal note."""
    return service.add_note(user_id, _actor(admin), note.content)


@router.put("/{user_id}/decision", response_model=ApplicationRecord)
async def set_internal_decision(
    user_id: str,
    update: DecisionUpdate,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Set or clear the internal decision."""
    return service.set_internal_decision(user_id, update.decision, actor=_actor(admin))


@router.put("/{user_id}/allocation", response_model=ApplicationRecord)
async def set_camp_allocation(
    user_id: str,
    update: AllocationUpdate,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Assign or clear the camp allocation."""
    return service.set_camp_allocation(user_id, update.camp_allocation, actor=_actor(admin))


@router.post("/{user_id}/release", response_model=ApplicationRecord)
async def release_result(
    user_id: str,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Publish the internal decision to the candidate."""
    with performance_logger.log_operation_time("release_result", user_id=user_id, actor=_actor(admin)):
        return service.release_result(user_id, actor=_actor(admin))


@router.post("/{user_id}/reset", response_model=ApplicationRecord)
async def reset_application(
    user_id: str,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Revert an application to draft."""
    return service.reset(user_id, actor=_actor(admin))


@router.post("/{user_id}/advance", response_model=ApplicationRecord)
async def advance_status(
    user_id: str,
    admin: Identity = Depends(require_admin),
    service: ApplicationLifecycleService = Depends(get_lifecycle_service),
):
    """Developer tool: move an application one step forward."""
    if not settings.enable_dev_tools:
        raise AuthorizationError("Developer tools are disabled")
    return service.advance_status(user_id, actor=_actor(admin))
