"""Assessment submissions: at most one stored Result per (assessment, user).

A repeated submission is not an error. The existing result is returned with
``created=False`` so the client can redirect to it. The unique constraint on
(assessment_id, user_id) settles concurrent duplicates: the losing insert is
rolled back and resolved to the winning row.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lms.config import settings
from lms.errors import InternalFailure, InvalidInput
from lms.models.assessment import Assessment, AssessmentKind, GradingStatus, Result, ResultType
from lms.models.user import User
from lms.schemas.assessment import EssaySubmission
from lms.services import assessment_service, membership_service

logger = logging.getLogger(__name__)

EXPIRED_FEEDBACK = "SCORE: 0/10\n\nREVIEW:\n\nTime expired before a file was submitted"


def find_existing_result(
    db: Session,
    assessment_id: str,
    user_id: str,
    kind: Optional[AssessmentKind] = None,
) -> Optional[Result]:
    """Stored result for (assessment, user), limited to assessments of ``kind`` when given."""
    query = db.query(Result).filter(Result.assessment_id == assessment_id, Result.user_id == user_id)
    if kind is not None:
        query = query.join(Assessment, Result.assessment_id == Assessment.assessment_id).filter(
            Assessment.kind == kind
        )
    return query.first()


def coerce_score(value: Any) -> float:
    """Numeric score, or 0 when missing or not a finite number."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(score) or math.isinf(score):
        return 0.0
    return score


def _is_empty(answers: Any) -> bool:
    if answers is None:
        return True
    if isinstance(answers, str):
        return not answers.strip()
    if isinstance(answers, (dict, list, tuple)):
        return len(answers) == 0
    return True


def _absolute_url(file_url: str) -> str:
    if file_url.startswith("/"):
        return settings.UPLOAD_BASE_URL.rstrip("/") + file_url
    return file_url


def _build_essay_result(assessment_id: str, user: User, payload: EssaySubmission) -> Result:
    submitted_at = datetime.now(timezone.utc).isoformat()
    if payload.file_url:
        entry = {
            "type": "essay",
            "status": "pending",
            "score": 0,
            "file_url": _absolute_url(payload.file_url),
            "file_name": payload.file_name,
            "mime_type": payload.mime_type,
            "file_size": payload.file_size,
            "submitted_at": submitted_at,
        }
        return Result(
            assessment_id=assessment_id,
            user_id=user.user_id,
            result_type=ResultType.essay,
            score=0.0,
            answers=[entry],
            grading_status=GradingStatus.pending,
        )

    if payload.is_time_expired:
        entry = {
            "type": "essay",
            "status": "graded",
            "score": 0,
            "file_url": None,
            "feedback": EXPIRED_FEEDBACK,
            "submitted_at": submitted_at,
        }
        return Result(
            assessment_id=assessment_id,
            user_id=user.user_id,
            result_type=ResultType.essay,
            score=0.0,
            answers=[entry],
            grading_status=GradingStatus.graded,
            feedback=EXPIRED_FEEDBACK,
        )

    raise InvalidInput("No file uploaded")


def _build_answer_result(assessment_id: str, user: User, payload) -> Result:
    if _is_empty(payload.answers):
        raise InvalidInput("No answers provided")
    stored = payload.answers if _is_empty(payload.details) else payload.details
    return Result(
        assessment_id=assessment_id,
        user_id=user.user_id,
        result_type=ResultType(payload.type),
        score=coerce_score(payload.score),
        answers=stored,
        grading_status=GradingStatus.graded,
    )


def submit(
    db: Session,
    kind: AssessmentKind,
    assessment_id: str,
    user: User,
    payload,
) -> tuple[Result, bool]:
    """Store a submission unless one already exists.

    Returns:
        (result, created) where ``created`` is False for an idempotent repeat.
    """
    existing = find_existing_result(db, assessment_id, user.user_id, kind)
    if existing:
        logger.info("Result already exists for %s %s by user %s", kind.value, assessment_id, user.user_id)
        return existing, False

    assessment = assessment_service.get_assessment(db, assessment_id, kind)
    membership_service.require_active_member(db, user, assessment_service.server_of(assessment))

    if isinstance(payload, EssaySubmission):
        result = _build_essay_result(assessment.assessment_id, user, payload)
    else:
        result = _build_answer_result(assessment.assessment_id, user, payload)

    db.add(result)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = find_existing_result(db, assessment_id, user.user_id)
        if winner is None:
            logger.exception("Result insert failed for %s %s by user %s", kind.value, assessment_id, user.user_id)
            raise InternalFailure("Failed to save results to database")
        logger.info("Concurrent duplicate submission for %s %s resolved to %s",
                    kind.value, assessment_id, winner.result_id)
        return winner, False
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error creating result for %s %s", kind.value, assessment_id)
        raise InternalFailure("Failed to save results to database")

    db.refresh(result)
    logger.info("Stored %s result %s for %s %s by user %s",
                result.result_type.value, result.result_id, kind.value, assessment_id, user.user_id)
    return result, True
