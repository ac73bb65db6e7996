"""Classroom (server) and membership management routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lms.database import get_db
from lms.dependencies import get_current_user
from lms.models.server import Member, MemberStatus, Server
from lms.models.user import User
from lms.schemas.server import (
    ChannelCreate, ChannelOut, ClassroomOut, MemberAdd, MemberOut, MemberReject, MemberRoleUpdate,
    ServerCreate, ServerOut,
)
from lms.services import assessment_service, membership_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ServerOut, status_code=status.HTTP_201_CREATED)
def create_server(payload: ServerCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Create a classroom. The creator becomes its admin."""
    return membership_service.create_server(db, user, payload.name, payload.is_public)


@router.get("/", response_model=list[ServerOut])
def list_my_servers(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Classrooms the caller has any membership record in."""
    return (
        db.query(Server)
        .join(Member, Member.server_id == Server.server_id)
        .filter(Member.user_id == user.user_id)
        .order_by(Server.name)
        .all()
    )


@router.get("/{server_id}", response_model=ClassroomOut)
def get_classroom(server_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Classroom page: only ACTIVE members get the channel list."""
    server = membership_service.get_server(db, server_id)
    membership_service.require_active_member(db, user, server)
    return server


@router.patch("/{server_id}/invite-code", response_model=ServerOut)
def regenerate_invite_code(server_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    server = membership_service.get_server(db, server_id)
    return membership_service.regenerate_invite_code(db, user, server)


@router.post("/{server_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_server(server_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    server = membership_service.get_server(db, server_id)
    membership_service.leave_server(db, user, server)


@router.post("/{server_id}/channels", response_model=ChannelOut, status_code=status.HTTP_201_CREATED)
def create_channel(
    server_id: str,
    payload: ChannelCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    return assessment_service.create_channel(db, user, server, payload.name)


@router.get("/{server_id}/members", response_model=list[MemberOut])
def list_members(
    server_id: str,
    status_filter: Optional[MemberStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Members of a classroom, optionally only the pending requests."""
    server = membership_service.get_server(db, server_id)
    return membership_service.list_members(db, user, server, status_filter)


@router.post("/{server_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(
    server_id: str,
    payload: MemberAdd,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    return membership_service.add_member(db, user, server, payload.user_id, payload.role)


@router.patch("/{server_id}/members/{member_id}/approve", response_model=MemberOut)
def approve_member(
    server_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    return membership_service.approve_member(db, user, server, member_id)


@router.patch("/{server_id}/members/{member_id}/reject", response_model=MemberOut)
def reject_member(
    server_id: str,
    member_id: str,
    payload: Optional[MemberReject] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    reason = payload.reason if payload else None
    return membership_service.reject_member(db, user, server, member_id, reason)


@router.patch("/{server_id}/members/{member_id}/role", response_model=MemberOut)
def update_member_role(
    server_id: str,
    member_id: str,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    return membership_service.update_member_role(db, user, server, member_id, payload.role)


@router.delete("/{server_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    server_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    server = membership_service.get_server(db, server_id)
    membership_service.remove_member(db, user, server, member_id)
