"""Base classes and utilities for property-based testing."""

from datetime import datetime, timedelta
from typing import Any, Optional

import pytest
from hypothesis import event, note

from admissions_backend.repositories.memory import InMemoryApplicationRepository
from admissions_backend.schemas.application import ApplicationRecord, ApplicationStatus, Timeline
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService

from .config import get_test_seed
from .generators import BASE_TIME


class FakeClock:
    """Clock that moves forward one second on every reading."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current = self.current + self.step
        return self.current


def make_service(enforce_required_fields: bool = True) -> ApplicationLifecycleService:
    """Lifecycle service over a fresh in-memory repository and a fake clock."""
    return ApplicationLifecycleService(
        InMemoryApplicationRepository(),
        clock=FakeClock(),
        enforce_required_fields=enforce_required_fields,
    )


def seed_record(
    service: ApplicationLifecycleService,
    user_id: str,
    status: ApplicationStatus,
    **admin_data: Any,
) -> ApplicationRecord:
    """Store a record directly in the given status, bypassing transitions."""
    now = service.clock()
    record = ApplicationRecord(
        user_id=user_id,
        status=status,
        timeline=Timeline(registered_at=now),
        last_updated_at=now,
    )
    for name, value in admin_data.items():
        setattr(record.admin_data, name, value)
    return service.repository.create(record)


class PropertyTestBase:
    """Base class for property-based tests with common utilities."""

    def setup_method(self):
        """Setup method called before each test."""
        seed = get_test_seed()
        if seed is not None:
            import random
            random.seed(seed)

    def log_test_data(self, description: str, data: Any):
        """Log test data for debugging purposes."""
        note(f"{description}: {data}")
        event(f"Testing {description}")


class LifecyclePropertyTest(PropertyTestBase):
    """Base class for application state machine property tests."""

    # Position along the lifecycle; release outcomes share a rank
    STATUS_RANK = {
        ApplicationStatus.DRAFT: 0,
        ApplicationStatus.SUBMITTED: 1,
        ApplicationStatus.UNDER_REVIEW: 2,
        ApplicationStatus.WAITLISTED: 3,
        ApplicationStatus.DECISION_RELEASED: 4,
        ApplicationStatus.REJECTED: 4,
        ApplicationStatus.ENROLLED: 5,
    }

    def verify_no_regression(self, old: ApplicationStatus, new: ApplicationStatus):
        assert self.STATUS_RANK[new] >= self.STATUS_RANK[old], f"{old.value} regressed to {new.value}"

    def verify_timeline_write_once(self, before: Timeline, after: Timeline):
        for name in ("registered_at", "submitted_at", "decision_released_at", "enrolled_at"):
            old_value: Optional[datetime] = getattr(before, name)
            if old_value is not None:
                assert getattr(after, name) == old_value, f"{name} was rewritten"


def property_test(feature_name: str, property_number: int, property_description: str):
    """Decorator to mark and tag property-based tests."""
    def decorator(test_func):
        test_func._property_test_metadata = {
            "feature": feature_name,
            "property_number": property_number,
            "description": property_description,
            "tag": f"Feature: {feature_name}, Property {property_number}: {property_description}"
        }
        return pytest.mark.property_test(test_func)
    return decorator
