"""Grade listings and summary statistics over 0-10 scores."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Query, Session, joinedload

from lms.config import settings
from lms.models.assessment import Assessment, Result
from lms.models.server import Channel

logger = logging.getLogger(__name__)

# (label, low, high); every bin is [low, high) except the last, which is [8, 10].
BINS = [
    ("0-2", 0.0, 2.0),
    ("2-4", 2.0, 4.0),
    ("4-6", 4.0, 6.0),
    ("6-8", 6.0, 8.0),
    ("8-10", 8.0, 10.0),
]


def _round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _bin_index(score: float) -> Optional[int]:
    """Index of the single bin holding ``score``, or None when it is outside 0-10."""
    last = len(BINS) - 1
    for i, (_, low, high) in enumerate(BINS):
        if low <= score < high or (i == last and score == high):
            return i
    return None


def aggregate(scores: Iterable[float], pass_threshold: Optional[float] = None) -> dict[str, Any]:
    """Count, mean, min, max, pass rate and histogram for a set of scores.

    An empty input yields a zero-valued summary with an empty histogram.
    """
    if pass_threshold is None:
        pass_threshold = settings.PASS_THRESHOLD
    values = [float(s) for s in scores]
    if not values:
        return {"count": 0, "mean": 0, "min": 0, "max": 0, "pass_rate": 0, "histogram": []}

    counts = [0] * len(BINS)
    for score in values:
        idx = _bin_index(score)
        if idx is not None:
            counts[idx] += 1

    count = len(values)
    passed = sum(1 for s in values if s >= pass_threshold)
    return {
        "count": count,
        "mean": _round2(sum(values) / count),
        "min": min(values),
        "max": max(values),
        "pass_rate": _round2(passed / count * 100),
        "histogram": [
            {"range": label, "min": low, "max": high, "count": counts[i]}
            for i, (label, low, high) in enumerate(BINS)
        ],
    }


def _scoped(query: Query, server_id: Optional[str], assessment_id: Optional[str]) -> Query:
    query = query.join(Assessment, Result.assessment_id == Assessment.assessment_id)
    if assessment_id:
        query = query.filter(Result.assessment_id == assessment_id)
    if server_id:
        query = query.join(Channel, Assessment.channel_id == Channel.channel_id).filter(
            Channel.server_id == server_id
        )
    return query


def collect_scores(db: Session, server_id: Optional[str] = None, assessment_id: Optional[str] = None) -> list[float]:
    """Scores of stored results, filtered by classroom and/or assessment."""
    query = _scoped(db.query(Result.score), server_id, assessment_id)
    scores = [row[0] for row in query.all()]
    logger.info("Collected %d scores (server=%s, assessment=%s)", len(scores), server_id, assessment_id)
    return scores


def list_grades(
    db: Session,
    server_id: Optional[str] = None,
    assessment_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> list[Result]:
    """Stored results with their assessment and student loaded, newest first."""
    query = _scoped(db.query(Result), server_id, assessment_id)
    if user_id:
        query = query.filter(Result.user_id == user_id)
    results = (
        query.options(joinedload(Result.assessment), joinedload(Result.student))
        .order_by(Result.created_at.desc())
        .all()
    )
    logger.info("Listed %d grades (server=%s, assessment=%s, user=%s)",
                len(results), server_id, assessment_id, user_id)
    return results
