"""Grade listing and statistics routes (admins and moderators)."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.dependencies import get_current_user
from lms.errors import InvalidInput
from lms.models.user import User
from lms.schemas.assessment import GradeEntry, GradeStatistics
from lms.services import assessment_service, grade_stats, membership_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _authorize_scope(db: Session, user: User, server_id: Optional[str], assessment_id: Optional[str]) -> None:
    """Caller must be staff of every classroom the filters name; at least one is required."""
    if not server_id and not assessment_id:
        raise InvalidInput("server_id or assessment_id is required")

    if server_id:
        membership_service.require_roles(db, user, membership_service.get_server(db, server_id))
    if assessment_id:
        assessment = assessment_service.get_assessment(db, assessment_id)
        membership_service.require_roles(db, user, assessment_service.server_of(assessment))


@router.get("/", response_model=list[GradeEntry])
def list_grades(
    server_id: Optional[str] = Query(None),
    assessment_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Stored results for a classroom or assessment, optionally for one student, newest first."""
    _authorize_scope(db, user, server_id, assessment_id)
    return grade_stats.list_grades(db, server_id=server_id, assessment_id=assessment_id, user_id=user_id)


@router.get("/statistics", response_model=GradeStatistics)
def get_statistics(
    server_id: Optional[str] = Query(None),
    assessment_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Score summary for a classroom, an assessment, or an assessment within a classroom."""
    _authorize_scope(db, user, server_id, assessment_id)
    scores = grade_stats.collect_scores(db, server_id=server_id, assessment_id=assessment_id)
    return grade_stats.aggregate(scores)
