"""Assessment (exam / exercise) and Result ORM models."""
import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from lms.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentKind(str, enum.Enum):
    exam = "exam"
    exercise = "exercise"


class ResultType(str, enum.Enum):
    multiple_choice = "multiple_choice"
    written = "written"
    essay = "essay"


class GradingStatus(str, enum.Enum):
    pending = "pending"
    graded = "graded"


class Assessment(Base):
    __tablename__ = "assessments"

    assessment_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    channel_id = Column(String(36), ForeignKey("channels.channel_id"), nullable=False, index=True)
    kind = Column(SAEnum(AssessmentKind), nullable=False)
    name = Column(String(255), nullable=False)
    prompt = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    allow_references = Column(Boolean, nullable=False, default=False)
    shuffle_questions = Column(Boolean, nullable=False, default=False)
    deadline = Column(DateTime(timezone=True), nullable=True)
    question_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    channel = relationship("Channel", back_populates="assessments")
    results = relationship("Result", back_populates="assessment", cascade="all, delete-orphan")


class Result(Base):
    __tablename__ = "results"
    __table_args__ = (UniqueConstraint("assessment_id", "user_id", name="uq_result_assessment_user"),)

    result_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assessment_id = Column(String(36), ForeignKey("assessments.assessment_id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    result_type = Column(SAEnum(ResultType), nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    answers = Column(JSON, nullable=False)
    grading_status = Column(SAEnum(GradingStatus), nullable=False, default=GradingStatus.graded)
    feedback = Column(Text, nullable=True)
    graded_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    assessment = relationship("Assessment", back_populates="results")
    student = relationship("User", foreign_keys=[user_id])
