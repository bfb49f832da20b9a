"""Candidate roster filtering for the admin view.

The filtered view is recomputed from (collection, filter) on every call; there
is no cached or incrementally patched state.
"""

from typing import Callable, Iterable, List

from admissions_backend.schemas.application import ApplicationRecord
from admissions_backend.schemas.form import AVAILABILITY_FIELD, SUBJECT_FIELD
from admissions_backend.schemas.roster import (
    ALL_ALLOCATIONS,
    ALL_AVAILABILITIES,
    ALL_STATUSES,
    ALL_SUBJECTS,
    STATUS_BUCKETS,
    UNALLOCATED,
    RosterFilter,
    RosterRow,
)
from admissions_backend.services.review_aggregation import NOT_AVAILABLE, average_score

Predicate = Callable[[ApplicationRecord], bool]


def _match_all(record: ApplicationRecord) -> bool:
    return True


def search_predicate(search: str) -> Predicate:
    """Substring match over first name, last name, user id and school."""
    needle = (search or "").strip().lower()
    if not needle:
        return _match_all

    def matches(record: ApplicationRecord) -> bool:
        snapshot = record.personal_info_snapshot
        haystacks = (
            snapshot.first_name or "",
            snapshot.last_name or "",
            record.user_id,
            snapshot.school or "",
        )
        return any(needle in value.lower() for value in haystacks)

    return matches


def subject_predicate(subject: str) -> Predicate:
    if not subject or subject == ALL_SUBJECTS:
        return _match_all
    return lambda record: record.form_data.get(SUBJECT_FIELD) == subject


def availability_predicate(availability: str) -> Predicate:
    if not availability or availability == ALL_AVAILABILITIES:
        return _match_all

    def matches(record: ApplicationRecord) -> bool:
        values = record.form_data.get(AVAILABILITY_FIELD)
        return isinstance(values, list) and availability in values

    return matches


def allocation_predicate(allocation: str) -> Predicate:
    if not allocation or allocation == ALL_ALLOCATIONS:
        return _match_all
    if allocation == UNALLOCATED:
        return lambda record: not record.admin_data.camp_allocation
    return lambda record: record.admin_data.camp_allocation == allocation


def status_predicate(bucket: str) -> Predicate:
    """Map a coarse UI bucket onto the set of statuses it covers.

    Raises:
        ValueError: If the bucket is not known
    """
    if not bucket or bucket == ALL_STATUSES:
        return _match_all
    if bucket not in STATUS_BUCKETS:
        raise ValueError(
            f"Unknown status filter: {bucket}. Must be one of {[ALL_STATUSES, *STATUS_BUCKETS]}"
        )
    statuses = STATUS_BUCKETS[bucket]
    return lambda record: record.status.value in statuses


def build_predicates(roster_filter: RosterFilter) -> List[Predicate]:
    """Predicates in evaluation order: search, subject, availability, allocation, status."""
    return [
        search_predicate(roster_filter.search),
        subject_predicate(roster_filter.subject),
        availability_predicate(roster_filter.availability),
        allocation_predicate(roster_filter.allocation),
        status_predicate(roster_filter.status),
    ]


def filter_applications(
    applications: Iterable[ApplicationRecord],
    roster_filter: RosterFilter,
) -> List[ApplicationRecord]:
    """Records matching every predicate of the filter, in input order."""
    predicates = build_predicates(roster_filter)
    return [app for app in applications if all(p(app) for p in predicates)]


def to_roster_row(record: ApplicationRecord) -> RosterRow:
    """Flatten a record into the roster table shape."""
    snapshot = record.personal_info_snapshot
    reviews = record.admin_data.reviews
    average = average_score(reviews)
    availability = record.form_data.get(AVAILABILITY_FIELD)
    return RosterRow(
        user_id=record.user_id,
        name=snapshot.full_name,
        email=snapshot.email or "",
        school=snapshot.school or "",
        grade=snapshot.grade or "",
        subject=str(record.form_data.get(SUBJECT_FIELD) or ""),
        availability=[str(v) for v in availability] if isinstance(availability, list) else [],
        allocation=record.admin_data.camp_allocation or "",
        status=record.status,
        stage=record.admin_data.stage,
        average_score=None if average == NOT_AVAILABLE else round(average, 1),
        review_count=len(reviews),
        last_updated_at=record.last_updated_at,
    )
