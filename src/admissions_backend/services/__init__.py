"""Service layer for business logic."""

from .lifecycle_service import ApplicationLifecycleService, DECISION_TO_STATUS
from .review_aggregation import summarize_reviews
from .roster_filter import filter_applications, to_roster_row
from .roster_export import export_csv

__all__ = [
    "ApplicationLifecycleService",
    "DECISION_TO_STATUS",
    "summarize_reviews",
    "filter_applications",
    "to_roster_row",
    "export_csv",
]
