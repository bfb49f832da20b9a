"""Admissions lifecycle backend: application workflow, review aggregation and roster queries."""

__version__ = "0.1.0"
