"""Pydantic schemas for Assessments, submissions and Results.

Submissions are a tagged variant on ``type``: each variant carries only the
fields relevant to it.
"""
from datetime import datetime
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, Field

from lms.models.assessment import AssessmentKind, GradingStatus, ResultType
from lms.schemas.user import UserOut


class AssessmentCreate(BaseModel):
    kind: AssessmentKind
    name: str
    prompt: Optional[str] = None
    allow_references: bool = False
    shuffle_questions: bool = False
    deadline: Optional[datetime] = None
    question_count: int = Field(0, ge=0)


class AssessmentOut(BaseModel):
    assessment_id: str
    channel_id: str
    kind: AssessmentKind
    name: str
    prompt: Optional[str] = None
    is_active: bool
    allow_references: bool
    shuffle_questions: bool
    deadline: Optional[datetime] = None
    question_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MultipleChoiceSubmission(BaseModel):
    type: Literal["multiple_choice"]
    answers: Any = None
    score: Any = None
    details: Any = None


class WrittenSubmission(BaseModel):
    type: Literal["written"]
    answers: Any = None
    score: Any = None
    details: Any = None


class EssaySubmission(BaseModel):
    type: Literal["essay"]
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    is_time_expired: bool = False


# Each variant pins its own ``type`` literal, so exactly one can match a payload.
Submission = Union[MultipleChoiceSubmission, WrittenSubmission, EssaySubmission]


class SubmissionOut(BaseModel):
    success: bool = True
    submission_id: str
    created: bool
    message: Optional[str] = None


class GradeUpdate(BaseModel):
    score: float
    feedback: Optional[str] = None


class EssayAIGradeRequest(BaseModel):
    essay_text: str


class ResultOut(BaseModel):
    result_id: str
    assessment_id: str
    user_id: str
    result_type: ResultType
    score: float
    answers: Any
    grading_status: GradingStatus
    feedback: Optional[str] = None
    graded_by: Optional[str] = None
    graded_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class GradeEntry(ResultOut):
    """A stored result with its assessment and student, as listed for staff."""

    assessment: AssessmentOut
    student: UserOut


class GradeBin(BaseModel):
    range: str
    min: float
    max: float
    count: int


class GradeStatistics(BaseModel):
    count: int
    mean: float
    min: float
    max: float
    pass_rate: float
    histogram: list[GradeBin]
