"""Channels and assessment configuration inside a classroom."""
import logging
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from lms.config import settings
from lms.database import commit_or_fail
from lms.errors import NotFound
from lms.models.assessment import Assessment, AssessmentKind
from lms.models.server import Channel, Server
from lms.models.user import User
from lms.services import membership_service

logger = logging.getLogger(__name__)


def localize_deadline(deadline: Optional[datetime]) -> Optional[datetime]:
    """Naive deadlines are wall-clock times in the configured zone; store them as UTC."""
    if deadline is None:
        return None
    if deadline.tzinfo is None:
        deadline = pytz.timezone(settings.DEFAULT_TIMEZONE).localize(deadline)
    return deadline.astimezone(pytz.utc)


def get_channel(db: Session, channel_id: str) -> Channel:
    channel = db.query(Channel).filter(Channel.channel_id == channel_id).first()
    if not channel:
        raise NotFound("Channel not found")
    return channel


def get_assessment(db: Session, assessment_id: str, kind: Optional[AssessmentKind] = None) -> Assessment:
    query = db.query(Assessment).filter(Assessment.assessment_id == assessment_id)
    if kind:
        query = query.filter(Assessment.kind == kind)
    assessment = query.first()
    if not assessment:
        label = kind.value.capitalize() if kind else "Assessment"
        raise NotFound(f"{label} not found")
    return assessment


def server_of(assessment: Assessment) -> Server:
    return assessment.channel.server


def create_channel(db: Session, caller: User, server: Server, name: str) -> Channel:
    membership_service.require_roles(db, caller, server)
    channel = Channel(server_id=server.server_id, name=name, created_by=caller.user_id)
    db.add(channel)
    commit_or_fail(db, "creating channel")
    db.refresh(channel)
    logger.info("Created channel '%s' (%s) in server %s", name, channel.channel_id, server.server_id)
    return channel


def create_assessment(db: Session, caller: User, channel: Channel, **fields) -> Assessment:
    membership_service.require_roles(db, caller, channel.server)
    fields["deadline"] = localize_deadline(fields.get("deadline"))
    assessment = Assessment(channel_id=channel.channel_id, **fields)
    db.add(assessment)
    commit_or_fail(db, "creating assessment")
    db.refresh(assessment)
    logger.info("Created %s '%s' (%s) in channel %s",
                assessment.kind.value, assessment.name, assessment.assessment_id, channel.channel_id)
    return assessment


def list_channel_assessments(
    db: Session,
    user: User,
    channel: Channel,
    kind: Optional[AssessmentKind] = None,
) -> list[Assessment]:
    """Assessments visible to ``user``; inactive ones are shown to staff only."""
    membership_service.require_active_member(db, user, channel.server)
    query = db.query(Assessment).filter(Assessment.channel_id == channel.channel_id)
    if kind:
        query = query.filter(Assessment.kind == kind)
    if not membership_service.is_staff(db, user, channel.server):
        query = query.filter(Assessment.is_active.is_(True))
    return query.order_by(Assessment.created_at).all()


def toggle_active(db: Session, caller: User, assessment: Assessment) -> Assessment:
    membership_service.require_roles(db, caller, server_of(assessment))
    assessment.is_active = not assessment.is_active
    commit_or_fail(db, "toggling assessment status")
    db.refresh(assessment)
    logger.info("Assessment %s is_active=%s", assessment.assessment_id, assessment.is_active)
    return assessment


def toggle_shuffle(db: Session, caller: User, assessment: Assessment) -> Assessment:
    membership_service.require_roles(db, caller, server_of(assessment))
    assessment.shuffle_questions = not assessment.shuffle_questions
    commit_or_fail(db, "toggling assessment shuffle")
    db.refresh(assessment)
    logger.info("Assessment %s shuffle_questions=%s", assessment.assessment_id, assessment.shuffle_questions)
    return assessment
