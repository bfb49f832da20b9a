"""Pydantic schemas for data validation and serialization."""

from .application import (
    AdminData,
    ApplicationRecord,
    ApplicationResponse,
    ApplicationStatus,
    FinalDecision,
    FirstRoundRecommendation,
    NoteEntry,
    PersonalInfoSnapshot,
    ReviewEntry,
    ReviewStage,
    Timeline,
)
from .review import (
    AllocationUpdate,
    DecisionUpdate,
    FormSave,
    NoteCreate,
    ReviewCreate,
    ReviewSummary,
    SecondRoundResponse,
)
from .roster import Page, RosterFilter, RosterRow

__all__ = [
    "AdminData", "ApplicationRecord", "ApplicationResponse", "ApplicationStatus",
    "FinalDecision", "FirstRoundRecommendation", "NoteEntry", "PersonalInfoSnapshot",
    "ReviewEntry", "ReviewStage", "Timeline",
    "AllocationUpdate", "DecisionUpdate", "FormSave", "NoteCreate", "ReviewCreate",
    "ReviewSummary", "SecondRoundResponse",
    "Page", "RosterFilter", "RosterRow",
]
