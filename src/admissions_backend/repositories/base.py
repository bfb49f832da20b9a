"""Repository interface for application records."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from admissions_backend.schemas.application import ApplicationRecord, NoteEntry, ReviewEntry
from admissions_backend.schemas.roster import Page

REVIEWS_FIELD = "admin_data.reviews"
NOTES_FIELD = "admin_data.notes"

# Dotted paths a partial update may set; None clears the field
UPDATABLE_FIELDS = frozenset({
    "status",
    "form_data",
    "personal_info_snapshot",
    "timeline.registered_at",
    "timeline.submitted_at",
    "timeline.decision_released_at",
    "timeline.enrolled_at",
    "admin_data.internal_decision",
    "admin_data.stage",
    "admin_data.camp_allocation",
    "admin_data.review_score",
    "last_updated_at",
})

# Append-only collections; written through additive appends only
ARRAY_FIELDS = {
    REVIEWS_FIELD: ReviewEntry,
    NOTES_FIELD: NoteEntry,
}

ArrayEntry = Union[ReviewEntry, NoteEntry]


def validate_update(changes: Mapping[str, Any], appends: Optional[Mapping[str, ArrayEntry]] = None) -> None:
    """Reject unknown field paths and mistyped array entries.

    Raises:
        ValueError: If a path is not updatable or an entry has the wrong type
    """
    for path in changes:
        if path not in UPDATABLE_FIELDS:
            raise ValueError(f"Invalid field: {path}")

    for path, entry in (appends or {}).items():
        expected = ARRAY_FIELDS.get(path)
        if expected is None:
            raise ValueError(f"Invalid array field: {path}")
        if not isinstance(entry, expected):
            raise ValueError(f"{path} expects {expected.__name__}, got {type(entry).__name__}")


class ApplicationRepository(ABC):
    """Document-store style access to application records keyed by user id.

    Every mutating call is atomic for the single record it touches. Array fields
    (reviews, notes) only grow: implementations append, never rewrite.
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[ApplicationRecord]:
        """Get a record by user id, or None if absent."""

    @abstractmethod
    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        """Persist a new record.

        Raises:
            StorageError: If a record with the same user id exists or the write fails
        """

    @abstractmethod
    def update(
        self,
        user_id: str,
        changes: Mapping[str, Any],
        appends: Optional[Mapping[str, ArrayEntry]] = None,
    ) -> None:
        """Apply a partial update and array appends in one atomic write.

        Args:
            user_id: Record key
            changes: Dotted field paths from UPDATABLE_FIELDS mapped to new values
            appends: Array field paths mapped to one entry each to append

        Raises:
            ValueError: If a field path is not updatable
            NotFoundError: If the record does not exist
            StorageError: If the write fails
        """

    @abstractmethod
    def list_page(self, offset: int = 0, limit: int = 100) -> Page[ApplicationRecord]:
        """Records ordered by last_updated_at descending, offset-paginated."""

    def append_to_array_field(
        self,
        user_id: str,
        field: str,
        entry: ArrayEntry,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Append one entry to an array field, bumping last_updated_at when given."""
        changes: Dict[str, Any] = {}
        if updated_at is not None:
            changes["last_updated_at"] = updated_at
        self.update(user_id, changes, appends={field: entry})

    def list_all(self, limit: int = 1000) -> List[ApplicationRecord]:
        """Records ordered by last_updated_at descending, capped at limit."""
        return self.list_page(offset=0, limit=limit).items


def build_page(items: List[ApplicationRecord], total: int, offset: int, limit: int) -> Page[ApplicationRecord]:
    """Wrap a slice into a Page with the offset of the following slice."""
    next_offset = offset + len(items)
    return Page[ApplicationRecord](
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        next_offset=next_offset if next_offset < total else None,
    )
