"""Grading of stored results: manual score updates, late penalties and the AI essay grader.

Grading always updates the existing Result in place.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from openai import OpenAI
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from lms.config import settings
from lms.database import commit_or_fail
from lms.errors import Forbidden, GradingUnavailable, InvalidInput, NotFound
from lms.models.assessment import Assessment, GradingStatus, Result, ResultType
from lms.models.user import User
from lms.services import assessment_service, membership_service

logger = logging.getLogger(__name__)

MAX_SCORE = 10.0

GRADER_PROMPT = """You are a teacher grading a student's essay on a scale from 0 to 10.

ASSIGNMENT: {name}
INSTRUCTIONS: {prompt}

Grade for correctness, completeness and clarity. Reply with a JSON object only:
{{"score": <number between 0 and 10>, "feedback": "<short review for the student>"}}
"""


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_late_penalty(
    score: float,
    submitted_at: Optional[datetime],
    deadline: Optional[datetime],
) -> tuple[float, Optional[dict[str, Any]]]:
    """Apply the late-submission rule.

    Up to 30 minutes late loses 0.5 points, up to 60 minutes loses 2 points,
    anything later loses half the score. The result never drops below 0.
    """
    if deadline is None or submitted_at is None or score <= 0:
        return score, None

    minutes_late = int((_as_utc(submitted_at) - _as_utc(deadline)).total_seconds() // 60)
    if minutes_late <= 0:
        return score, None

    if minutes_late <= 30:
        penalty = 0.5
    elif minutes_late <= 60:
        penalty = 2.0
    else:
        penalty = score / 2

    final = max(0.0, score - penalty)
    return final, {
        "original_score": score,
        "late_penalty": penalty,
        "minutes_late": minutes_late,
        "note": f"Submitted {minutes_late} minutes late, {penalty:g} points deducted.",
    }


def get_result(db: Session, result_id: str) -> Result:
    result = db.query(Result).filter(Result.result_id == result_id).first()
    if not result:
        raise NotFound("Result not found")
    return result


def view_result(db: Session, user: User, result_id: str) -> Result:
    """A result is visible to its author and to staff of its classroom."""
    result = get_result(db, result_id)
    if result.user_id != user.user_id:
        server = assessment_service.server_of(result.assessment)
        if not membership_service.is_staff(db, user, server):
            raise Forbidden("Permission denied")
    return result


def list_results(db: Session, caller: User, assessment: Assessment) -> list[Result]:
    membership_service.require_roles(db, caller, assessment_service.server_of(assessment))
    return (
        db.query(Result)
        .filter(Result.assessment_id == assessment.assessment_id)
        .order_by(Result.created_at)
        .all()
    )


def grade_result(
    db: Session,
    caller: User,
    result: Result,
    score: float,
    feedback: Optional[str] = None,
) -> tuple[Result, Optional[dict[str, Any]]]:
    """Set the score and feedback of a stored result; returns the result and any penalty applied."""
    membership_service.require_roles(db, caller, assessment_service.server_of(result.assessment))
    if not 0 <= score <= MAX_SCORE:
        raise InvalidInput("Score must be between 0 and 10")

    final, penalty = compute_late_penalty(score, result.created_at, result.assessment.deadline)

    if result.result_type == ResultType.essay and isinstance(result.answers, list) and result.answers:
        answers = list(result.answers)
        if isinstance(answers[0], dict):
            entry = dict(answers[0])
            entry.update({
                "status": GradingStatus.graded.value,
                "score": final,
                "original_score": score,
                "feedback": feedback,
                "late_penalty": penalty,
            })
            answers[0] = entry
            result.answers = answers
            flag_modified(result, "answers")

    result.score = final
    result.feedback = feedback
    result.grading_status = GradingStatus.graded
    result.graded_by = caller.user_id
    result.graded_at = datetime.now(timezone.utc)
    commit_or_fail(db, "grading result")
    db.refresh(result)
    logger.info("Result %s graded %.2f by %s (penalty=%s)", result.result_id, final, caller.user_id, bool(penalty))
    return result, penalty


def ai_grade_essay(assessment: Assessment, essay_text: str) -> dict[str, Any]:
    """Ask the configured LLM for a score and feedback."""
    if not settings.OPENAI_API_KEY or settings.OPENAI_API_KEY == "your-api-key-here":
        logger.warning("OpenAI API key not configured; AI grading unavailable")
        raise GradingUnavailable("AI grading is not configured")

    client = OpenAI(api_key=settings.OPENAI_API_KEY)
    system = GRADER_PROMPT.format(name=assessment.name, prompt=assessment.prompt or "none")
    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": essay_text},
            ],
            response_format={"type": "json_object"},
        )
    except Exception as e:
        logger.error("LLM API error: %s", e)
        raise GradingUnavailable("AI grading service is unavailable")

    content = response.choices[0].message.content or "{}"
    try:
        data = json.loads(content)
        score = float(data["score"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        logger.error("Unreadable grader response: %s", content)
        raise GradingUnavailable("AI grader returned an unreadable response")

    return {
        "score": min(max(score, 0.0), MAX_SCORE),
        "feedback": str(data.get("feedback", "")),
    }


def ai_grade_result(
    db: Session,
    caller: User,
    result: Result,
    essay_text: str,
) -> tuple[Result, Optional[dict[str, Any]]]:
    membership_service.require_roles(db, caller, assessment_service.server_of(result.assessment))
    if result.result_type != ResultType.essay:
        raise InvalidInput("Only essay submissions can be graded by the AI grader")
    if not essay_text.strip():
        raise InvalidInput("Essay text is empty")

    graded = ai_grade_essay(result.assessment, essay_text)
    return grade_result(db, caller, result, graded["score"], graded["feedback"])
