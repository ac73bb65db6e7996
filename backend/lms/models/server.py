"""Server (classroom), Member and Channel ORM models."""
import enum
import uuid
from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lms.database import Base


class MemberRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    GUEST = "GUEST"


class MemberStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    REJECTED = "REJECTED"


def new_invite_code() -> str:
    return str(uuid.uuid4())


class Server(Base):
    __tablename__ = "servers"

    server_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    is_public = Column(Boolean, nullable=False, default=True)
    invite_code = Column(String(36), nullable=False, unique=True, default=new_invite_code)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship("Member", back_populates="server", cascade="all, delete-orphan")
    channels = relationship(
        "Channel",
        back_populates="server",
        cascade="all, delete-orphan",
        order_by="Channel.created_at",
    )


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (UniqueConstraint("user_id", "server_id", name="uq_member_user_server"),)

    member_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    server_id = Column(String(36), ForeignKey("servers.server_id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    role = Column(SAEnum(MemberRole), nullable=False, default=MemberRole.GUEST)
    status = Column(SAEnum(MemberStatus), nullable=False, default=MemberStatus.ACTIVE)
    requested_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    reject_reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    server = relationship("Server", back_populates="members")


class Channel(Base):
    __tablename__ = "channels"

    channel_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    server_id = Column(String(36), ForeignKey("servers.server_id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_by = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    server = relationship("Server", back_populates="channels")
    assessments = relationship("Assessment", back_populates="channel", cascade="all, delete-orphan")
