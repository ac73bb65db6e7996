"""Invite redemption route."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.dependencies import get_current_user
from lms.models.user import User
from lms.schemas.server import InviteRedemptionOut
from lms.services import membership_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{invite_code}", response_model=InviteRedemptionOut)
def redeem_invite(invite_code: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Join (or request to join) the classroom behind an invite code.

    Public classrooms admit immediately; private ones create a pending request.
    A user who already has a membership is only routed by its current status.
    """
    member, redirect_to = membership_service.redeem_invite(db, invite_code, user)
    return InviteRedemptionOut(
        status=member.status,
        server_id=member.server_id,
        member_id=member.member_id,
        redirect_to=redirect_to,
    )
