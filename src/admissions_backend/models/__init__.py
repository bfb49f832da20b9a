"""Database models for the admissions backend."""

from .application import Application, ApplicationReview, ApplicationNote

__all__ = ["Application", "ApplicationReview", "ApplicationNote"]
