"""ORM models for application records and their append-only review and note logs."""

from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Float, Integer, Text, JSON
from sqlalchemy.orm import relationship

from admissions_backend.core.base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    """One application per candidate, keyed by the candidate's user identifier."""
    
    __tablename__ = "applications"
    
    user_id = Column(String(128), primary_key=True)
    status = Column(String(50), default="draft", nullable=False, index=True)
    form_data = Column(JSON, default=dict, nullable=False)
    
    # Snapshot of form data for listing and search
    first_name = Column(String(255), default="", nullable=False)
    last_name = Column(String(255), default="", nullable=False)
    email = Column(String(255), nullable=True)
    school = Column(String(255), nullable=True)
    grade = Column(String(100), nullable=True)
    
    # Timeline
    registered_at = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    decision_released_at = Column(DateTime(timezone=True), nullable=True)
    enrolled_at = Column(DateTime(timezone=True), nullable=True)
    
    # Admin data
    internal_decision = Column(String(50), nullable=True)
    stage = Column(String(50), default="first_round", nullable=False)
    camp_allocation = Column(String(255), nullable=True)
    review_score = Column(Float, nullable=True)
    
    last_updated_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False, index=True)
    
    # Relationships
    reviews = relationship(
        "ApplicationReview",
        back_populates="application",
        order_by="ApplicationReview.id",
        cascade="all, delete-orphan",
    )
    notes = relationship(
        "ApplicationNote",
        back_populates="application",
        order_by="ApplicationNote.id",
        cascade="all, delete-orphan",
    )
    
    def __repr__(self) -> str:
        return f"<Application(user_id='{self.user_id}', status='{self.status}')>"


class ApplicationReview(Base):
    """Reviewer assessment row. Rows are only ever inserted."""
    
    __tablename__ = "application_reviews"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("applications.user_id"), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    score = Column(Float, nullable=True)
    decision = Column(String(50), nullable=False)
    comment = Column(Text, default="", nullable=False)
    flagged = Column(Boolean, default=False, nullable=False)
    flag_reason = Column(Text, nullable=True)
    stage = Column(String(50), default="first_round", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    
    application = relationship("Application", back_populates="reviews")
    
    def __repr__(self) -> str:
        return f"<ApplicationReview(id={self.id}, user_id='{self.user_id}', decision='{self.decision}')>"


class ApplicationNote(Base):
    """Admin note row. Rows are only ever inserted."""
    
    __tablename__ = "application_notes"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("applications.user_id"), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    
    application = relationship("Application", back_populates="notes")
    
    def __repr__(self) -> str:
        return f"<ApplicationNote(id={self.id}, user_id='{self.user_id}', author='{self.author}')>"
