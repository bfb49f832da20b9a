"""Repository pattern implementations for data access."""

from .base import ApplicationRepository, UPDATABLE_FIELDS, REVIEWS_FIELD, NOTES_FIELD
from .memory import InMemoryApplicationRepository
from .application import SQLAlchemyApplicationRepository

__all__ = [
    "ApplicationRepository",
    "InMemoryApplicationRepository",
    "SQLAlchemyApplicationRepository",
    "UPDATABLE_FIELDS",
    "REVIEWS_FIELD",
    "NOTES_FIELD",
]
