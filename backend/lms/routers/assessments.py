"""Assessment routes: channel listings, admin toggles and submissions."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.dependencies import get_current_user
from lms.errors import NotFound
from lms.models.assessment import AssessmentKind
from lms.models.user import User
from lms.schemas.assessment import AssessmentCreate, AssessmentOut, ResultOut, Submission, SubmissionOut
from lms.services import assessment_service, grading_service, membership_service, submission_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/channels/{channel_id}/assessments",
    response_model=AssessmentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_assessment(
    channel_id: str,
    payload: AssessmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Create an exam or exercise in a channel (admins and moderators)."""
    channel = assessment_service.get_channel(db, channel_id)
    return assessment_service.create_assessment(db, user, channel, **payload.model_dump())


@router.get("/channels/{channel_id}/assessments", response_model=list[AssessmentOut])
def list_channel_assessments(
    channel_id: str,
    kind: Optional[AssessmentKind] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    channel = assessment_service.get_channel(db, channel_id)
    return assessment_service.list_channel_assessments(db, user, channel, kind)


@router.get("/assessments/{assessment_id}", response_model=AssessmentOut)
def get_assessment(assessment_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    assessment = assessment_service.get_assessment(db, assessment_id)
    server = assessment_service.server_of(assessment)
    membership_service.require_active_member(db, user, server)
    if not assessment.is_active and not membership_service.is_staff(db, user, server):
        raise NotFound("Assessment not found")
    return assessment


@router.patch("/assessments/{assessment_id}/toggle-status", response_model=AssessmentOut)
def toggle_status(assessment_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    assessment = assessment_service.get_assessment(db, assessment_id)
    return assessment_service.toggle_active(db, user, assessment)


@router.patch("/assessments/{assessment_id}/toggle-shuffle", response_model=AssessmentOut)
def toggle_shuffle(assessment_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    assessment = assessment_service.get_assessment(db, assessment_id)
    return assessment_service.toggle_shuffle(db, user, assessment)


@router.get("/assessments/{assessment_id}/results", response_model=list[ResultOut])
def list_results(assessment_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """All stored results for an assessment (admins and moderators)."""
    assessment = assessment_service.get_assessment(db, assessment_id)
    return grading_service.list_results(db, user, assessment)


def _submit(db: Session, kind: AssessmentKind, assessment_id: str, user: User, payload) -> SubmissionOut:
    result, created = submission_service.submit(db, kind, assessment_id, user, payload)
    return SubmissionOut(
        submission_id=result.result_id,
        created=created,
        message=None if created else f"{kind.value.capitalize()} result already exists",
    )


@router.post("/exams/{exam_id}/submit", response_model=SubmissionOut)
def submit_exam(
    exam_id: str,
    payload: Submission,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Submit an exam. A repeat submission returns the stored result instead."""
    return _submit(db, AssessmentKind.exam, exam_id, user, payload)


@router.post("/exercises/{exercise_id}/submit", response_model=SubmissionOut)
def submit_exercise(
    exercise_id: str,
    payload: Submission,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Submit an exercise. A repeat submission returns the stored result instead."""
    return _submit(db, AssessmentKind.exercise, exercise_id, user, payload)
