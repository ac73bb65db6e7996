"""Pydantic schemas for Servers, Members and Channels."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from lms.models.server import MemberRole, MemberStatus


class ServerCreate(BaseModel):
    name: str
    is_public: bool = True


class ServerOut(BaseModel):
    server_id: str
    name: str
    owner_id: str
    is_public: bool
    invite_code: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ChannelCreate(BaseModel):
    name: str


class ChannelOut(BaseModel):
    channel_id: str
    server_id: str
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ClassroomOut(ServerOut):
    """Classroom page payload: the server plus its channel list."""

    channels: list[ChannelOut] = []


class MemberAdd(BaseModel):
    user_id: str
    role: MemberRole = MemberRole.GUEST


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class MemberReject(BaseModel):
    reason: Optional[str] = None


class MemberOut(BaseModel):
    member_id: str
    server_id: str
    user_id: str
    role: MemberRole
    status: MemberStatus
    requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    reject_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class InviteRedemptionOut(BaseModel):
    status: MemberStatus
    server_id: str
    member_id: str
    redirect_to: str
