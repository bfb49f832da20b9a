"""Pydantic schemas for admin review actions and the review summary view."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from .application import FinalDecision, ReviewStage


class ReviewCreate(BaseModel):
    """Schema for recording a reviewer assessment."""

    decision: str = Field(..., min_length=1, description="Recommendation for the active round")
    comment: str = Field(default="", description="Reviewer comment (required in first round)")
    score: Optional[float] = Field(None, ge=0, le=10, description="Score (required in second round, 0-5)")
    flagged: bool = Field(default=False, description="Raise a flag on this application")
    flag_reason: Optional[str] = Field(None, description="Reason for flagging")
    stage: Optional[ReviewStage] = Field(
        None, description="Round the review belongs to; defaults to the application's current stage"
    )

    @model_validator(mode="after")
    def validate_flag_reason(self):
        """Validate flag reason is provided when flagged."""
        if self.flagged and not (self.flag_reason or "").strip():
            raise ValueError("Flag reason is required when a review is flagged")
        return self


class NoteCreate(BaseModel):
    """Schema for appending an admin note."""

    content: str = Field(..., description="Note text")


class DecisionUpdate(BaseModel):
    """Schema for setting or clearing the internal decision."""

    decision: Optional[FinalDecision] = Field(None, description="Internal decision; null clears it")


class AllocationUpdate(BaseModel):
    """Schema for assigning a camp allocation."""

    camp_allocation: Optional[str] = Field(None, max_length=255, description="Camp name; null unallocates")


class FormSave(BaseModel):
    """Schema for a candidate's form save."""

    form_data: Dict[str, Any] = Field(default_factory=dict)


class SecondRoundResponse(BaseModel):
    """Schema for the candidate's second-round submission."""

    video_link: str = Field(..., description="Link to the recorded response")


class ReviewSummary(BaseModel):
    """Derived statistics over an application's reviews."""

    user_id: str
    review_count: int
    average_score: Optional[float] = Field(None, description="Mean of present scores; null when none")
    average_display: str = Field(description="Average rounded to one decimal, or N/A")
    majority_decision: str
    recommendation_label: str
    flagged_count: int
