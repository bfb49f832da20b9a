"""Lifecycle service: status/stage transitions with guards and side effects."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from admissions_backend.core.config import settings
from admissions_backend.core.error_handling import (
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from admissions_backend.core.logging import audit_logger
from admissions_backend.repositories.base import NOTES_FIELD, REVIEWS_FIELD, ApplicationRepository
from admissions_backend.schemas.application import (
    ApplicationRecord,
    ApplicationStatus,
    FinalDecision,
    FirstRoundRecommendation,
    NoteEntry,
    PersonalInfoSnapshot,
    ReviewEntry,
    ReviewStage,
    Timeline,
)
from admissions_backend.schemas.form import (
    EMAIL_FIELD,
    FULL_NAME_FIELD,
    GRADE_FIELD,
    SCHOOL_FALLBACK_FIELD,
    SCHOOL_FIELD,
    SECOND_ROUND_VIDEO_FIELD,
    required_fields,
)
from admissions_backend.schemas.review import ReviewCreate, ReviewSummary
from admissions_backend.services.review_aggregation import summarize_reviews

logger = structlog.get_logger(__name__)

# Released internal decision -> public status
DECISION_TO_STATUS = {
    FinalDecision.ACCEPTED: ApplicationStatus.DECISION_RELEASED,
    FinalDecision.REJECTED: ApplicationStatus.REJECTED,
    FinalDecision.WAITLISTED: ApplicationStatus.WAITLISTED,
}

SECOND_ROUND_SCORE_MAX = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def derive_snapshot(form_data: Mapping[str, Any]) -> PersonalInfoSnapshot:
    """Project the listing/search fields out of the raw form answers.

    The full name is split on whitespace: first word is the first name, the
    rest is the last name.
    """
    parts = str(form_data.get(FULL_NAME_FIELD) or "").split()
    school = form_data.get(SCHOOL_FIELD) or form_data.get(SCHOOL_FALLBACK_FIELD)
    return PersonalInfoSnapshot(
        first_name=parts[0] if parts else "",
        last_name=" ".join(parts[1:]),
        email=_text_or_none(form_data.get(EMAIL_FIELD)),
        school=_text_or_none(school),
        grade=_text_or_none(form_data.get(GRADE_FIELD)),
    )


def missing_required_fields(form_data: Mapping[str, Any]) -> List[str]:
    """Ids of required form fields with a blank answer."""
    missing = []
    for form_field in required_fields():
        value = form_data.get(form_field.id)
        if isinstance(value, str):
            value = value.strip()
        if not value:
            missing.append(form_field.id)
    return missing


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class ApplicationLifecycleService:
    """Enforces the application state machine over an ApplicationRepository.

    Every mutating operation validates against a fresh read, issues exactly one
    repository update, and returns the record re-fetched after the write.
    """

    RELEASABLE_STATES = [ApplicationStatus.UNDER_REVIEW, ApplicationStatus.WAITLISTED]
    REVIEWABLE_STATES = [ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW]

    def __init__(
        self,
        repository: ApplicationRepository,
        clock: Callable[[], datetime] = utc_now,
        enforce_required_fields: Optional[bool] = None,
    ):
        self.repository = repository
        self.clock = clock
        self.enforce_required_fields = (
            settings.enforce_required_fields if enforce_required_fields is None else enforce_required_fields
        )

    # Candidate operations

    def get_or_create(self, user_id: str) -> ApplicationRecord:
        """Get the candidate's application, creating a draft on first access.

        Args:
            user_id: Candidate identifier

        Returns:
            Existing or newly created application record

        Raises:
            StorageError: If the record can neither be read nor created
        """
        record = self.repository.get(user_id)
        if record is not None:
            return record

        now = self.clock()
        draft = ApplicationRecord(
            user_id=user_id,
            status=ApplicationStatus.DRAFT,
            timeline=Timeline(registered_at=now),
            last_updated_at=now,
        )
        try:
            created = self.repository.create(draft)
        except StorageError:
            # A concurrent first access may have created it already
            existing = self.repository.get(user_id)
            if existing is None:
                raise
            logger.info("Application created concurrently", user_id=user_id)
            return existing

        logger.info("Application created", user_id=user_id, status=created.status.value)
        return created

    def save_form(self, user_id: str, form_data: Dict[str, Any]) -> ApplicationRecord:
        """Replace the form answers and recompute the snapshot.

        Raises:
            InvalidStateError: If the application is no longer a draft
        """
        record = self.get_or_create(user_id)
        self._require_status(record, [ApplicationStatus.DRAFT], "save form")

        self.repository.update(user_id, {
            "form_data": form_data,
            "personal_info_snapshot": derive_snapshot(form_data),
            "last_updated_at": self.clock(),
        })
        logger.debug("Application form saved", user_id=user_id, fields=len(form_data))
        return self._refetch(user_id)

    def submit(self, user_id: str) -> ApplicationRecord:
        """Submit a draft application.

        Raises:
            InvalidStateError: If the application is not a draft
            ValidationError: If required answers are blank
        """
        record = self.get_or_create(user_id)
        self._require_status(record, [ApplicationStatus.DRAFT], "submit")

        if self.enforce_required_fields:
            missing = missing_required_fields(record.form_data)
            if missing:
                logger.warning("Submission rejected", user_id=user_id, missing_fields=missing)
                raise ValidationError(
                    f"Required fields are missing: {', '.join(missing)}",
                    field=missing[0],
                )

        now = self.clock()
        self.repository.update(user_id, {
            "status": ApplicationStatus.SUBMITTED,
            "timeline.submitted_at": now,
            "last_updated_at": now,
        })
        audit_logger.log_transition(
            user_id, record.status.value, ApplicationStatus.SUBMITTED.value, trigger="submit", actor=user_id
        )
        return self._refetch(user_id)

    def submit_second_round_response(self, user_id: str, video_link: str) -> ApplicationRecord:
        """Attach the candidate's second-round video link to the form answers.

        Raises:
            InvalidStateError: If the application is not in the second round
            ValidationError: If the link is blank
        """
        link = (video_link or "").strip()
        if not link:
            raise ValidationError("Video link is required", field=SECOND_ROUND_VIDEO_FIELD)

        record = self.get_application(user_id)
        self._require_status(record, [ApplicationStatus.UNDER_REVIEW], "submit second-round response")
        if record.admin_data.stage != ReviewStage.SECOND_ROUND:
            logger.warning("Second-round response rejected", user_id=user_id, stage=record.admin_data.stage.value)
            raise InvalidStateError(
                "Application is not in the second round",
                current_status=record.status.value,
            )

        form_data = dict(record.form_data)
        form_data[SECOND_ROUND_VIDEO_FIELD] = link
        self.repository.update(user_id, {
            "form_data": form_data,
            "personal_info_snapshot": derive_snapshot(form_data),
            "last_updated_at": self.clock(),
        })
        logger.info("Second-round response submitted", user_id=user_id)
        return self._refetch(user_id)

    def accept_offer(self, user_id: str) -> ApplicationRecord:
        """Enroll a candidate whose acceptance was released.

        Raises:
            InvalidStateError: If no acceptance has been released
        """
        record = self.get_application(user_id)
        self._require_status(record, [ApplicationStatus.DECISION_RELEASED], "accept offer")

        now = self.clock()
        changes: Dict[str, Any] = {"status": ApplicationStatus.ENROLLED, "last_updated_at": now}
        if record.timeline.enrolled_at is None:
            changes["timeline.enrolled_at"] = now
        self.repository.update(user_id, changes)

        audit_logger.log_transition(
            user_id, record.status.value, ApplicationStatus.ENROLLED.value, trigger="accept_offer", actor=user_id
        )
        return self._refetch(user_id)

    # Admin operations

    def get_application(self, user_id: str) -> ApplicationRecord:
        """Get an existing application.

        Raises:
            NotFoundError: If no application exists for the user
        """
        record = self.repository.get(user_id)
        if record is None:
            raise NotFoundError(user_id=user_id)
        return record

    def record_review(self, user_id: str, author: str, review: ReviewCreate) -> ApplicationRecord:
        """Append a reviewer assessment and apply its effect on stage and decision.

        A first-round ``second_round`` recommendation advances the stage; other
        recommendations set the internal decision. A submitted application moves
        to under_review with its first review.

        Args:
            user_id: Candidate identifier
            author: Reviewer identity
            review: Review payload

        Returns:
            Updated application record

        Raises:
            NotFoundError: If the application does not exist
            InvalidStateError: If the application cannot be reviewed now
            ValidationError: If the review does not fit its round
        """
        record = self.get_application(user_id)
        self._require_status(record, self.REVIEWABLE_STATES, "record review")

        current_stage = record.admin_data.stage
        stage = review.stage or current_stage
        if stage == ReviewStage.SECOND_ROUND and current_stage != ReviewStage.SECOND_ROUND:
            logger.warning("Second-round review rejected", user_id=user_id, stage=current_stage.value)
            raise InvalidStateError(
                "Application has not advanced to the second round",
                current_status=record.status.value,
            )

        now = self.clock()
        changes: Dict[str, Any] = {"last_updated_at": now}

        if stage == ReviewStage.FIRST_ROUND:
            recommendation = self._parse_choice(FirstRoundRecommendation, review.decision)
            if not review.comment.strip():
                raise ValidationError("Comment is required for a first-round review", field="comment")
            decision = recommendation.to_final_decision()
            if decision is None:
                changes["admin_data.stage"] = ReviewStage.SECOND_ROUND
            else:
                changes["admin_data.internal_decision"] = decision
            decision_value = recommendation.value
        else:
            decision = self._parse_choice(FinalDecision, review.decision)
            if review.score is None:
                raise ValidationError("Score is required for a second-round review", field="score")
            if review.score > SECOND_ROUND_SCORE_MAX:
                raise ValidationError(
                    f"Second-round score must be between 0 and {SECOND_ROUND_SCORE_MAX}",
                    field="score",
                    value=review.score,
                )
            changes["admin_data.internal_decision"] = decision
            changes["admin_data.review_score"] = review.score
            decision_value = decision.value

        if record.status == ApplicationStatus.SUBMITTED:
            changes["status"] = ApplicationStatus.UNDER_REVIEW

        entry = ReviewEntry(
            author=author,
            score=review.score,
            decision=decision_value,
            comment=review.comment,
            flagged=review.flagged,
            flag_reason=review.flag_reason if review.flagged else None,
            stage=stage,
            date=now,
        )
        self.repository.update(user_id, changes, appends={REVIEWS_FIELD: entry})

        audit_logger.log_admin_action(
            user_id,
            "record_review",
            actor=author,
            stage=stage.value,
            decision=decision_value,
            flagged=review.flagged,
        )
        if "status" in changes:
            audit_logger.log_transition(
                user_id, record.status.value, ApplicationStatus.UNDER_REVIEW.value,
                trigger="record_review", actor=author,
            )
        return self._refetch(user_id)

    def add_note(self, user_id: str, author: str, content: str) -> ApplicationRecord:
        """Append an admin note.

        Raises:
            ValidationError: If the note is blank
            NotFoundError: If the application does not exist
        """
        if not (content or "").strip():
            raise ValidationError("Note content is required", field="content")

        self.get_application(user_id)
        now = self.clock()
        self.repository.append_to_array_field(
            user_id,
            NOTES_FIELD,
            NoteEntry(author=author, content=content, date=now),
            updated_at=now,
        )
        audit_logger.log_admin_action(user_id, "add_note", actor=author)
        return self._refetch(user_id)

    def set_internal_decision(
        self,
        user_id: str,
        decision: Optional[FinalDecision],
        actor: Optional[str] = None,
    ) -> ApplicationRecord:
        """Set or clear the internal decision without touching public status."""
        self.get_application(user_id)
        self.repository.update(user_id, {
            "admin_data.internal_decision": decision,
            "last_updated_at": self.clock(),
        })
        audit_logger.log_admin_action(
            user_id, "set_internal_decision", actor=actor, decision=decision.value if decision else None
        )
        return self._refetch(user_id)

    def set_camp_allocation(
        self,
        user_id: str,
        camp_allocation: Optional[str],
        actor: Optional[str] = None,
    ) -> ApplicationRecord:
        """Assign a camp, or unallocate with None or a blank name."""
        allocation = (camp_allocation or "").strip() or None
        self.get_application(user_id)
        self.repository.update(user_id, {
            "admin_data.camp_allocation": allocation,
            "last_updated_at": self.clock(),
        })
        audit_logger.log_admin_action(user_id, "set_camp_allocation", actor=actor, camp_allocation=allocation)
        return self._refetch(user_id)

    def release_result(self, user_id: str, actor: Optional[str] = None) -> ApplicationRecord:
        """Publish the internal decision as the candidate-visible status.

        Raises:
            NotFoundError: If the application does not exist
            InvalidStateError: If no decision is set or the status cannot be released
        """
        record = self.get_application(user_id)
        return self._release(record, actor, trigger="release_result")

    def reset(self, user_id: str, actor: Optional[str] = None) -> ApplicationRecord:
        """Revert the application to draft, clearing submission-side timestamps.

        Admin data, reviews and notes are preserved.
        """
        record = self.get_application(user_id)
        self.repository.update(user_id, {
            "status": ApplicationStatus.DRAFT,
            "timeline.submitted_at": None,
            "timeline.decision_released_at": None,
            "timeline.enrolled_at": None,
            "last_updated_at": self.clock(),
        })
        audit_logger.log_transition(
            user_id, record.status.value, ApplicationStatus.DRAFT.value, trigger="reset", actor=actor
        )
        return self._refetch(user_id)

    def advance_status(self, user_id: str, actor: Optional[str] = None) -> ApplicationRecord:
        """Move the application one step along the happy path.

        submitted -> under_review, under_review -> released decision,
        decision_released -> enrolled.

        Raises:
            InvalidStateError: If the current status has no next step
        """
        record = self.get_application(user_id)

        if record.status == ApplicationStatus.SUBMITTED:
            self.repository.update(user_id, {
                "status": ApplicationStatus.UNDER_REVIEW,
                "last_updated_at": self.clock(),
            })
            audit_logger.log_transition(
                user_id, record.status.value, ApplicationStatus.UNDER_REVIEW.value,
                trigger="advance_status", actor=actor,
            )
            return self._refetch(user_id)

        if record.status == ApplicationStatus.UNDER_REVIEW:
            return self._release(record, actor, trigger="advance_status")

        if record.status == ApplicationStatus.DECISION_RELEASED:
            return self.accept_offer(user_id)

        logger.warning("Advance rejected", user_id=user_id, status=record.status.value)
        raise InvalidStateError(
            f"No next status from {record.status.value}",
            current_status=record.status.value,
        )

    def review_summary(self, user_id: str) -> ReviewSummary:
        """Derived statistics over the application's reviews."""
        record = self.get_application(user_id)
        return summarize_reviews(user_id, record.admin_data.reviews)

    # Internals

    def _release(self, record: ApplicationRecord, actor: Optional[str], trigger: str) -> ApplicationRecord:
        user_id = record.user_id
        decision = record.admin_data.internal_decision
        if decision is None:
            logger.warning("Release rejected", user_id=user_id, status=record.status.value, reason="no decision")
            raise InvalidStateError("No decision to release", current_status=record.status.value)

        self._require_status(record, self.RELEASABLE_STATES, "release result")

        new_status = DECISION_TO_STATUS[decision]
        now = self.clock()
        changes: Dict[str, Any] = {"status": new_status, "last_updated_at": now}
        if record.timeline.decision_released_at is None:
            changes["timeline.decision_released_at"] = now
        self.repository.update(user_id, changes)

        audit_logger.log_transition(
            user_id, record.status.value, new_status.value, trigger=trigger, actor=actor, decision=decision.value
        )
        return self._refetch(user_id)

    def _require_status(
        self,
        record: ApplicationRecord,
        allowed: List[ApplicationStatus],
        action: str,
    ) -> None:
        if record.status not in allowed:
            logger.warning(
                "Transition rejected",
                user_id=record.user_id,
                action=action,
                status=record.status.value,
            )
            raise InvalidStateError(
                f"Cannot {action} while application is {record.status.value}",
                current_status=record.status.value,
            )

    @staticmethod
    def _parse_choice(vocabulary, value: str):
        normalized = (value or "").strip().lower()
        try:
            return vocabulary(normalized)
        except ValueError:
            allowed = [choice.value for choice in vocabulary]
            raise ValidationError(
                f"Invalid decision: {value}. Must be one of {allowed}",
                field="decision",
                value=value,
            )

    def _refetch(self, user_id: str) -> ApplicationRecord:
        record = self.repository.get(user_id)
        if record is None:
            raise StorageError(f"Application {user_id} vanished after write")
        return record
