"""Result viewing and grading routes."""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.dependencies import get_current_user
from lms.models.user import User
from lms.schemas.assessment import EssayAIGradeRequest, GradeUpdate, ResultOut
from lms.services import grading_service

logger = logging.getLogger(__name__)
router = APIRouter()


class GradeResponse(BaseModel):
    success: bool = True
    result: ResultOut
    has_late_penalty: bool
    penalty_info: Optional[dict[str, Any]] = None


@router.get("/{result_id}", response_model=ResultOut)
def get_result(result_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """A result is visible to its author and to the classroom's staff."""
    return grading_service.view_result(db, user, result_id)


@router.put("/{result_id}/grade", response_model=GradeResponse)
def grade_result(
    result_id: str,
    payload: GradeUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Set score and feedback on a stored result, applying any late penalty."""
    result = grading_service.get_result(db, result_id)
    result, penalty = grading_service.grade_result(db, user, result, payload.score, payload.feedback)
    return GradeResponse(result=ResultOut.model_validate(result), has_late_penalty=penalty is not None, penalty_info=penalty)


@router.post("/{result_id}/ai-grade", response_model=GradeResponse)
def ai_grade_result(
    result_id: str,
    payload: EssayAIGradeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Grade an essay submission with the configured LLM."""
    result = grading_service.get_result(db, result_id)
    result, penalty = grading_service.ai_grade_result(db, user, result, payload.essay_text)
    return GradeResponse(result=ResultOut.model_validate(result), has_late_penalty=penalty is not None, penalty_info=penalty)
