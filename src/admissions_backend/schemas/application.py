"""Pydantic schemas for the application record and its admin-owned data."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ApplicationStatus(str, Enum):
    """Public-facing lifecycle state of an application."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    DECISION_RELEASED = "decision_released"
    ENROLLED = "enrolled"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class ReviewStage(str, Enum):
    """Evaluation round an application under review is in."""
    FIRST_ROUND = "first_round"
    SECOND_ROUND = "second_round"


class FinalDecision(str, Enum):
    """Releasable decision vocabulary (second round and internal decision)."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"


class FirstRoundRecommendation(str, Enum):
    """First-round reviewer recommendation vocabulary."""
    SECOND_ROUND = "second_round"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"

    def to_final_decision(self) -> Optional[FinalDecision]:
        """Final decision implied by this recommendation.

        ``second_round`` advances the stage instead of deciding, so it maps to None.
        """
        return _RECOMMENDATION_TO_DECISION[self]


_RECOMMENDATION_TO_DECISION = {
    FirstRoundRecommendation.SECOND_ROUND: None,
    FirstRoundRecommendation.WAITLISTED: FinalDecision.WAITLISTED,
    FirstRoundRecommendation.REJECTED: FinalDecision.REJECTED,
}


class PersonalInfoSnapshot(BaseModel):
    """Denormalized projection of form data used for listing and search."""

    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    school: Optional[str] = None
    grade: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Timeline(BaseModel):
    """Write-once lifecycle timestamps."""

    registered_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    decision_released_at: Optional[datetime] = None
    enrolled_at: Optional[datetime] = None


class ReviewEntry(BaseModel):
    """One reviewer's assessment; append-only."""

    author: str = Field(..., min_length=1, description="Reviewer identity")
    score: Optional[float] = Field(None, ge=0, le=10, description="Round-scoped score")
    decision: str = Field(..., description="Recommendation in the vocabulary of its round")
    comment: str = Field(default="", description="Reviewer comment")
    flagged: bool = Field(default=False, description="Whether the reviewer raised a flag")
    flag_reason: Optional[str] = Field(None, description="Reason for flagging")
    stage: ReviewStage = Field(default=ReviewStage.FIRST_ROUND, description="Round the review belongs to")
    date: datetime

    @model_validator(mode="after")
    def validate_flag_reason(self):
        """Validate flag reason is provided when flagged."""
        if self.flagged and not (self.flag_reason or "").strip():
            raise ValueError("Flag reason is required when a review is flagged")
        return self


class NoteEntry(BaseModel):
    """Free-text admin note; append-only."""

    author: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    date: datetime


class AdminData(BaseModel):
    """Admin-owned part of the record. Absent values are None or empty."""

    internal_decision: Optional[FinalDecision] = None
    stage: ReviewStage = ReviewStage.FIRST_ROUND
    camp_allocation: Optional[str] = None
    review_score: Optional[float] = Field(None, ge=0, le=5)
    reviews: List[ReviewEntry] = Field(default_factory=list)
    notes: List[NoteEntry] = Field(default_factory=list)


class ApplicationRecord(BaseModel):
    """Canonical application entity, keyed by the candidate's user identifier."""

    model_config = ConfigDict(validate_assignment=True)

    user_id: str = Field(..., min_length=1, description="Stable candidate identifier (primary key)")
    status: ApplicationStatus = ApplicationStatus.DRAFT
    form_data: Dict[str, Any] = Field(default_factory=dict)
    personal_info_snapshot: PersonalInfoSnapshot = Field(default_factory=PersonalInfoSnapshot)
    timeline: Timeline = Field(default_factory=Timeline)
    admin_data: AdminData = Field(default_factory=AdminData)
    last_updated_at: datetime

    @property
    def is_draft(self) -> bool:
        return self.status == ApplicationStatus.DRAFT


class ApplicationResponse(BaseModel):
    """Candidate-facing view: hides admin-owned data."""

    user_id: str
    status: ApplicationStatus
    stage: ReviewStage
    form_data: Dict[str, Any]
    personal_info_snapshot: PersonalInfoSnapshot
    timeline: Timeline
    last_updated_at: datetime
    is_read_only: bool = Field(description="Whether the candidate can still edit the form")

    @classmethod
    def from_record(cls, record: ApplicationRecord) -> "ApplicationResponse":
        return cls(
            user_id=record.user_id,
            status=record.status,
            stage=record.admin_data.stage,
            form_data=record.form_data,
            personal_info_snapshot=record.personal_info_snapshot,
            timeline=record.timeline,
            last_updated_at=record.last_updated_at,
            is_read_only=not record.is_draft,
        )
