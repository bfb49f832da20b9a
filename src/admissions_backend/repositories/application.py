"""SQLAlchemy-backed application repository."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
import structlog

from admissions_backend.core.error_handling import NotFoundError, StorageError
from admissions_backend.models.application import Application, ApplicationNote, ApplicationReview
from admissions_backend.schemas.application import (
    AdminData,
    ApplicationRecord,
    NoteEntry,
    PersonalInfoSnapshot,
    ReviewEntry,
    Timeline,
)
from admissions_backend.schemas.roster import Page

from .base import NOTES_FIELD, REVIEWS_FIELD, ApplicationRepository, ArrayEntry, build_page, validate_update

logger = structlog.get_logger(__name__)

COLUMN_BY_PATH = {
    "status": "status",
    "form_data": "form_data",
    "timeline.registered_at": "registered_at",
    "timeline.submitted_at": "submitted_at",
    "timeline.decision_released_at": "decision_released_at",
    "timeline.enrolled_at": "enrolled_at",
    "admin_data.internal_decision": "internal_decision",
    "admin_data.stage": "stage",
    "admin_data.camp_allocation": "camp_allocation",
    "admin_data.review_score": "review_score",
    "last_updated_at": "last_updated_at",
}

SNAPSHOT_COLUMNS = ("first_name", "last_name", "email", "school", "grade")


class SQLAlchemyApplicationRepository(ApplicationRepository):
    """Repository for Application rows bound to one database session.

    Reviews and notes live in insert-only child tables, so concurrent appends
    from different sessions never overwrite each other.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[ApplicationRecord]:
        """Get application record by user id.

        Args:
            user_id: Candidate identifier

        Returns:
            Application record if found, None otherwise
        """
        try:
            row = (
                self.db.query(Application)
                .options(selectinload(Application.reviews), selectinload(Application.notes))
                .filter(Application.user_id == user_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            logger.error("Record fetch failed", user_id=user_id, error=str(e))
            raise StorageError(f"Failed to load application {user_id}", original_error=e)

        return _to_record(row) if row else None

    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        """Insert a new application row.

        Args:
            record: Record to persist

        Returns:
            The persisted record as read back from the database

        Raises:
            StorageError: If the key exists or the insert fails
        """
        row = Application(user_id=record.user_id)
        _apply_record(row, record)
        for entry in record.admin_data.reviews:
            row.reviews.append(_review_row(record.user_id, entry))
        for entry in record.admin_data.notes:
            row.notes.append(_note_row(record.user_id, entry))

        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error("Record creation failed", user_id=record.user_id, error=str(e))
            raise StorageError(f"Application for {record.user_id} already exists", original_error=e)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Record creation failed", user_id=record.user_id, error=str(e))
            raise StorageError(f"Failed to create application {record.user_id}", original_error=e)

        logger.info("Record created", model="Application", user_id=record.user_id)
        return self.get(record.user_id)

    def update(
        self,
        user_id: str,
        changes: Mapping[str, Any],
        appends: Optional[Mapping[str, ArrayEntry]] = None,
    ) -> None:
        """Apply column changes and child-row inserts in one transaction.

        Args:
            user_id: Candidate identifier
            changes: Dotted field paths mapped to new values
            appends: Array field paths mapped to one entry each

        Raises:
            ValueError: If a field path is not updatable
            NotFoundError: If the application does not exist
            StorageError: If the transaction fails
        """
        validate_update(changes, appends)

        try:
            row = (
                self.db.query(Application)
                .filter(Application.user_id == user_id)
                .with_for_update(of=Application)
                .first()
            )
            if row is None:
                self.db.rollback()
                logger.warning("Record not found for update", user_id=user_id)
                raise NotFoundError(user_id=user_id)

            for path, value in changes.items():
                if path == "personal_info_snapshot":
                    _apply_snapshot(row, value)
                else:
                    setattr(row, COLUMN_BY_PATH[path], _column_value(value))

            for path, entry in (appends or {}).items():
                if path == REVIEWS_FIELD:
                    self.db.add(_review_row(user_id, entry))
                elif path == NOTES_FIELD:
                    self.db.add(_note_row(user_id, entry))

            self.db.commit()

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Record update failed",
                user_id=user_id,
                fields=sorted(changes),
                error=str(e)
            )
            raise StorageError(f"Failed to update application {user_id}", original_error=e)

        logger.debug(
            "Record updated",
            user_id=user_id,
            fields=sorted(changes),
            appended=sorted(appends or {}),
        )

    def list_page(self, offset: int = 0, limit: int = 100) -> Page[ApplicationRecord]:
        """Get applications ordered by last update, newest first.

        Args:
            offset: Number of records to skip
            limit: Maximum number of records

        Returns:
            Page of application records
        """
        try:
            total = self.db.query(Application).count()
            rows = (
                self.db.query(Application)
                .options(selectinload(Application.reviews), selectinload(Application.notes))
                .order_by(Application.last_updated_at.desc(), Application.user_id)
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Record listing failed", offset=offset, limit=limit, error=str(e))
            raise StorageError("Failed to list applications", original_error=e)

        return build_page([_to_record(row) for row in rows], total, offset, limit)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return dict(value)
    return value


def _apply_snapshot(row: Application, snapshot: PersonalInfoSnapshot) -> None:
    for column in SNAPSHOT_COLUMNS:
        setattr(row, column, getattr(snapshot, column))


def _apply_record(row: Application, record: ApplicationRecord) -> None:
    row.status = record.status.value
    row.form_data = dict(record.form_data)
    _apply_snapshot(row, record.personal_info_snapshot)
    row.registered_at = record.timeline.registered_at
    row.submitted_at = record.timeline.submitted_at
    row.decision_released_at = record.timeline.decision_released_at
    row.enrolled_at = record.timeline.enrolled_at
    admin = record.admin_data
    row.internal_decision = admin.internal_decision.value if admin.internal_decision else None
    row.stage = admin.stage.value
    row.camp_allocation = admin.camp_allocation
    row.review_score = admin.review_score
    row.last_updated_at = record.last_updated_at


def _review_row(user_id: str, entry: ReviewEntry) -> ApplicationReview:
    return ApplicationReview(
        user_id=user_id,
        author=entry.author,
        score=entry.score,
        decision=entry.decision,
        comment=entry.comment,
        flagged=entry.flagged,
        flag_reason=entry.flag_reason,
        stage=entry.stage.value,
        created_at=entry.date,
    )


def _note_row(user_id: str, entry: NoteEntry) -> ApplicationNote:
    return ApplicationNote(
        user_id=user_id,
        author=entry.author,
        content=entry.content,
        created_at=entry.date,
    )


def _to_record(row: Application) -> ApplicationRecord:
    return ApplicationRecord(
        user_id=row.user_id,
        status=row.status,
        form_data=dict(row.form_data or {}),
        personal_info_snapshot=PersonalInfoSnapshot(
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            email=row.email,
            school=row.school,
            grade=row.grade,
        ),
        timeline=Timeline(
            registered_at=_aware(row.registered_at),
            submitted_at=_aware(row.submitted_at),
            decision_released_at=_aware(row.decision_released_at),
            enrolled_at=_aware(row.enrolled_at),
        ),
        admin_data=AdminData(
            internal_decision=row.internal_decision,
            stage=row.stage,
            camp_allocation=row.camp_allocation,
            review_score=row.review_score,
            reviews=[
                ReviewEntry(
                    author=r.author,
                    score=r.score,
                    decision=r.decision,
                    comment=r.comment or "",
                    flagged=r.flagged,
                    flag_reason=r.flag_reason,
                    stage=r.stage,
                    date=_aware(r.created_at),
                )
                for r in row.reviews
            ],
            notes=[
                NoteEntry(author=n.author, content=n.content, date=_aware(n.created_at))
                for n in row.notes
            ],
        ),
        last_updated_at=_aware(row.last_updated_at),
    )
