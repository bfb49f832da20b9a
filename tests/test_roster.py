"""Tests for roster filtering and CSV export."""

from datetime import datetime, timedelta, timezone

import pytest

from admissions_backend.schemas.application import (
    AdminData,
    ApplicationRecord,
    ApplicationStatus,
    PersonalInfoSnapshot,
    ReviewEntry,
)
from admissions_backend.schemas.roster import RosterFilter, UNALLOCATED
from admissions_backend.services.roster_export import CSV_HEADERS, export_csv
from admissions_backend.services.roster_filter import filter_applications, to_roster_row

BASE = datetime(2025, 5, 1, tzinfo=timezone.utc)


def make_record(user_id, first, last, school, subject, availability, allocation=None,
                status=ApplicationStatus.SUBMITTED, minutes=0):
    return ApplicationRecord(
        user_id=user_id,
        status=status,
        form_data={"subjectGroup": subject, "availability": availability},
        personal_info_snapshot=PersonalInfoSnapshot(
            first_name=first, last_name=last, email=f"{user_id}@example.org", school=school, grade="Grade 11"
        ),
        admin_data=AdminData(camp_allocation=allocation),
        last_updated_at=BASE + timedelta(minutes=minutes),
    )


@pytest.fixture
def roster():
    return [
        make_record("u1", "Alice", "Anders", "Northfield High", "Physics", ["July"], "Camp North"),
        make_record("u2", "Alan", "Turing", "Sherborne", "Mathematics", ["July", "August"],
                    status=ApplicationStatus.UNDER_REVIEW),
        make_record("u3", "Grace", "Hopper", "Vassar", "Computer Science", ["August"], "Camp South",
                    status=ApplicationStatus.DECISION_RELEASED),
        make_record("u4", "Barbara", "Liskov", "Stanford", "Mathematics", [],
                    status=ApplicationStatus.REJECTED),
        make_record("u5", "Edsger", "Dijkstra", "Leiden", "Mathematics", ["July"], "Camp North",
                    status=ApplicationStatus.ENROLLED),
    ]


def ids(records):
    return [r.user_id for r in records]


class TestRosterFilter:
    """Conjunctive roster predicates."""

    def test_default_filter_matches_all(self, roster):
        assert ids(filter_applications(roster, RosterFilter())) == ["u1", "u2", "u3", "u4", "u5"]

    def test_search_and_subject_are_conjunctive(self, roster):
        result = filter_applications(roster, RosterFilter(search="Al", subject="Mathematics"))

        # u1 matches the search but not the subject
        assert "u1" not in ids(result)
        assert ids(result) == ["u2"]

    def test_search_is_case_insensitive_over_name_id_and_school(self, roster):
        assert ids(filter_applications(roster, RosterFilter(search="hopper"))) == ["u3"]
        assert ids(filter_applications(roster, RosterFilter(search="U4"))) == ["u4"]
        assert ids(filter_applications(roster, RosterFilter(search="leiden"))) == ["u5"]

    def test_blank_search_matches_all(self, roster):
        assert len(filter_applications(roster, RosterFilter(search="   "))) == 5

    def test_availability_membership(self, roster):
        assert ids(filter_applications(roster, RosterFilter(availability="August"))) == ["u2", "u3"]

    def test_allocation_and_unallocated(self, roster):
        assert ids(filter_applications(roster, RosterFilter(allocation="Camp North"))) == ["u1", "u5"]
        assert ids(filter_applications(roster, RosterFilter(allocation=UNALLOCATED))) == ["u2", "u4"]

    @pytest.mark.parametrize("bucket,expected", [
        ("Pending", ["u1", "u2"]),
        ("Accepted", ["u3", "u5"]),
        ("Rejected", ["u4"]),
    ])
    def test_status_buckets(self, roster, bucket, expected):
        assert ids(filter_applications(roster, RosterFilter(status=bucket))) == expected

    def test_unknown_status_bucket(self, roster):
        with pytest.raises(ValueError, match="Unknown status filter"):
            filter_applications(roster, RosterFilter(status="Maybe"))

    def test_filter_is_recomputed_from_inputs(self, roster):
        first = filter_applications(roster, RosterFilter(subject="Mathematics"))
        roster.append(make_record("u6", "Ada", "Lovelace", "Home", "Mathematics", ["July"]))
        second = filter_applications(roster, RosterFilter(subject="Mathematics"))

        assert ids(first) == ["u2", "u4", "u5"]
        assert ids(second) == ["u2", "u4", "u5", "u6"]


class TestRosterRows:
    """Row flattening and export."""

    def test_row_average_rounded(self, roster):
        record = roster[0]
        record.admin_data.reviews = [
            ReviewEntry(author="a", score=9, decision="accept", date=BASE),
            ReviewEntry(author="b", score=7.5, decision="waitlist", date=BASE),
            ReviewEntry(author="c", score=8.8, decision="accept", date=BASE),
        ]

        row = to_roster_row(record)

        assert row.name == "Alice Anders"
        assert row.average_score == 8.4
        assert row.review_count == 3
        assert row.availability == ["July"]

    def test_row_without_reviews(self, roster):
        row = to_roster_row(roster[3])

        assert row.average_score is None
        assert row.allocation == ""
        assert row.availability == []

    def test_export_csv(self, roster):
        rows = [to_roster_row(r) for r in roster[:2]]

        lines = export_csv(rows).split("\n")

        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == "u1,Alice Anders,u1@example.org,Northfield High,Grade 11,Physics,July,Camp North,submitted"
        assert lines[2] == (
            "u2,Alan Turing,u2@example.org,Sherborne,Grade 11,Mathematics,July; August,,under_review"
        )

    def test_export_header_only(self):
        assert export_csv([]) == "ID,Name,Email,School,Grade,Subject,Availability,Allocation,Status"
