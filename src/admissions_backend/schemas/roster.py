"""Pydantic schemas for the admin roster: filter state, rows and pages."""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from .application import ApplicationStatus, ReviewStage

ALL_SUBJECTS = "All Subjects"
ALL_AVAILABILITIES = "All Availabilities"
ALL_ALLOCATIONS = "All Allocations"
UNALLOCATED = "Unallocated"
ALL_STATUSES = "All Statuses"

STATUS_BUCKETS = {
    "Pending": {"submitted", "under_review"},
    "Accepted": {"decision_released", "enrolled", "accepted"},
    "Rejected": {"rejected"},
}

T = TypeVar("T")


class RosterFilter(BaseModel):
    """Filter state of the admin roster; every field defaults to match-all."""

    search: str = Field(default="", description="Case-insensitive substring over name, id and school")
    subject: str = Field(default=ALL_SUBJECTS)
    availability: str = Field(default=ALL_AVAILABILITIES)
    allocation: str = Field(default=ALL_ALLOCATIONS)
    status: str = Field(default=ALL_STATUSES, description="Pending, Accepted, Rejected or All Statuses")


class RosterRow(BaseModel):
    """One line of the admin roster table."""

    user_id: str
    name: str
    email: str = ""
    school: str = ""
    grade: str = ""
    subject: str = ""
    availability: List[str] = Field(default_factory=list)
    allocation: str = ""
    status: ApplicationStatus
    stage: ReviewStage
    average_score: Optional[float] = None
    review_count: int = 0
    last_updated_at: datetime


class Page(BaseModel, Generic[T]):
    """Offset-paginated slice of a collection."""

    items: List[T]
    total: int
    offset: int
    limit: int
    next_offset: Optional[int] = None
