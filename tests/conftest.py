"""Pytest configuration for admissions backend tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Configure Hypothesis before importing test modules
from tests.property_based.config import PropertyTestConfig
PropertyTestConfig.configure_hypothesis()

from admissions_backend.core.base import Base
from admissions_backend.repositories.application import SQLAlchemyApplicationRepository
from admissions_backend.repositories.memory import InMemoryApplicationRepository
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService
from tests.property_based.base import FakeClock


@pytest.fixture
def clock():
    """Clock advancing one second per reading."""
    return FakeClock()


@pytest.fixture
def memory_repository():
    """Provide an empty in-memory application repository."""
    return InMemoryApplicationRepository()


@pytest.fixture
def lifecycle_service(memory_repository, clock):
    """Provide a lifecycle service over the in-memory repository."""
    return ApplicationLifecycleService(memory_repository, clock=clock, enforce_required_fields=True)


@pytest.fixture
def complete_form():
    """Form answers covering every required field."""
    return {
        "email": "ada@example.org",
        "fullName": "Ada King Lovelace",
        "phoneNumber": "+44 20 7946 0000",
        "nationality": "British",
        "gender": "Female",
        "dob": "1815-12-10",
        "fieldOfStudy": "Mathematics",
        "sessionOneTitle": "Engines that weave",
        "sessionOneOutline": "Punched cards and the Jacquard loom",
        "sessionTwoTitle": "Programs before computers",
        "sessionTwoOutline": "Computing Bernoulli numbers by hand",
        "interest": "Teaching analytical thinking",
        "aboutMe": "Mathematician and writer",
        "tutoringExp": "Three years of private tutoring",
        "yearOfStudy": "University Year 2",
        "subjectGroup": "Mathematics",
        "availability": ["July", "August"],
    }


@pytest.fixture
def db_session():
    """Provide a session on a fresh in-memory SQLite database."""
    from admissions_backend import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_repository(db_session):
    """Provide a SQLAlchemy application repository."""
    return SQLAlchemyApplicationRepository(db_session)


# Pytest markers for organizing tests
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "property_test: mark test as a property-based test"
    )
    config.addinivalue_line(
        "markers", "database: mark test as requiring database access"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "property_based" in str(item.fspath):
            item.add_marker(pytest.mark.property_test)
        elif "test_api" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)

