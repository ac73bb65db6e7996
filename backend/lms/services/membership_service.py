"""Classroom membership lifecycle.

Responsibilities:
- Invite redemption: NONE -> ACTIVE (public) or NONE -> PENDING (private)
- Routing by current status when a membership already exists
- Single capability check for ADMIN/MODERATOR actions
- Approve / reject / remove / role edits, with owner protection
- Per-request ACTIVE check for classroom-scoped content
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lms.database import commit_or_fail
from lms.errors import Conflict, Forbidden, InternalFailure, NotFound
from lms.models.server import Channel, Member, MemberRole, MemberStatus, Server, new_invite_code
from lms.models.user import User

logger = logging.getLogger(__name__)

STAFF_ROLES = (MemberRole.ADMIN, MemberRole.MODERATOR)
DEFAULT_CHANNEL = "general"


def classroom_path(server_id: str) -> str:
    return f"/servers/{server_id}"


def pending_path(server_id: str) -> str:
    return f"/pending/{server_id}"


def rejected_path(server_id: str) -> str:
    return f"/rejected/{server_id}"


def route_for_member(member: Member) -> str:
    """Where a user with this membership should land."""
    if member.status == MemberStatus.ACTIVE:
        return classroom_path(member.server_id)
    if member.status == MemberStatus.PENDING:
        return pending_path(member.server_id)
    return rejected_path(member.server_id)


def get_server(db: Session, server_id: str) -> Server:
    server = db.query(Server).filter(Server.server_id == server_id).first()
    if not server:
        raise NotFound("Server not found")
    return server


def find_member(db: Session, server_id: str, user_id: str) -> Optional[Member]:
    return (
        db.query(Member)
        .filter(Member.server_id == server_id, Member.user_id == user_id)
        .first()
    )


def _get_member_in_server(db: Session, server: Server, member_id: str) -> Member:
    member = (
        db.query(Member)
        .filter(Member.member_id == member_id, Member.server_id == server.server_id)
        .first()
    )
    if not member:
        raise NotFound("Member not found")
    return member


def require_roles(
    db: Session,
    user: User,
    server: Server,
    roles: Iterable[MemberRole] = STAFF_ROLES,
) -> Member:
    """Capability check: caller must be an ACTIVE member of ``server`` holding one of ``roles``."""
    roles = tuple(roles)
    member = find_member(db, server.server_id, user.user_id)
    if not member or member.status != MemberStatus.ACTIVE or member.role not in roles:
        logger.warning("User %s lacks %s on server %s", user.user_id, [r.value for r in roles], server.server_id)
        raise Forbidden("Forbidden")
    return member


def require_active_member(db: Session, user: User, server: Server) -> Member:
    """Gate for classroom content; evaluated on every request, never cached."""
    member = find_member(db, server.server_id, user.user_id)
    if not member or member.status == MemberStatus.REJECTED:
        raise Forbidden("Access to this classroom was denied", redirect_to=rejected_path(server.server_id))
    if member.status == MemberStatus.PENDING:
        raise Forbidden("Membership is awaiting approval", redirect_to=pending_path(server.server_id))
    return member


def is_staff(db: Session, user: User, server: Server) -> bool:
    member = find_member(db, server.server_id, user.user_id)
    return bool(member and member.status == MemberStatus.ACTIVE and member.role in STAFF_ROLES)


def create_server(db: Session, owner: User, name: str, is_public: bool = True) -> Server:
    """Create a classroom. The owner becomes its first ACTIVE admin and a general channel is added."""
    server = Server(name=name, owner_id=owner.user_id, is_public=is_public, invite_code=new_invite_code())
    db.add(server)
    db.flush()

    db.add(Member(
        server_id=server.server_id,
        user_id=owner.user_id,
        role=MemberRole.ADMIN,
        status=MemberStatus.ACTIVE,
    ))
    db.add(Channel(server_id=server.server_id, name=DEFAULT_CHANNEL, created_by=owner.user_id))
    commit_or_fail(db, "creating server")
    db.refresh(server)
    logger.info("Created server '%s' (%s) by user %s", server.name, server.server_id, owner.user_id)
    return server


def redeem_invite(db: Session, invite_code: str, user: User) -> tuple[Member, str]:
    """Resolve an invite code for ``user``; returns the membership and its redirect target."""
    server = db.query(Server).filter(Server.invite_code == invite_code).first()
    if not server:
        raise NotFound("Invite code is invalid")

    existing = find_member(db, server.server_id, user.user_id)
    if existing:
        return existing, route_for_member(existing)

    if server.is_public:
        member = Member(
            server_id=server.server_id,
            user_id=user.user_id,
            role=MemberRole.GUEST,
            status=MemberStatus.ACTIVE,
        )
    else:
        member = Member(
            server_id=server.server_id,
            user_id=user.user_id,
            role=MemberRole.GUEST,
            status=MemberStatus.PENDING,
            requested_at=datetime.now(timezone.utc),
        )
    db.add(member)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent redemption inserted the row first; route by the winner.
        db.rollback()
        winner = find_member(db, server.server_id, user.user_id)
        if winner is None:
            logger.exception("Membership insert failed for user %s on server %s", user.user_id, server.server_id)
            raise InternalFailure("Internal Error")
        return winner, route_for_member(winner)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error while redeeming invite for server %s", server.server_id)
        raise InternalFailure("Internal Error")

    db.refresh(member)
    logger.info("User %s joined server %s as %s", user.user_id, server.server_id, member.status.value)
    return member, route_for_member(member)


def list_members(
    db: Session,
    caller: User,
    server: Server,
    status: Optional[MemberStatus] = None,
) -> list[Member]:
    require_roles(db, caller, server)
    query = db.query(Member).filter(Member.server_id == server.server_id)
    if status:
        query = query.filter(Member.status == status)
    return query.order_by(Member.role, Member.created_at).all()


def approve_member(db: Session, caller: User, server: Server, member_id: str) -> Member:
    """PENDING -> ACTIVE."""
    require_roles(db, caller, server)
    member = _get_member_in_server(db, server, member_id)
    if member.status != MemberStatus.PENDING:
        raise Conflict(f"Member is already {member.status.value}")

    member.status = MemberStatus.ACTIVE
    member.approved_at = datetime.now(timezone.utc)
    member.approved_by = caller.user_id
    commit_or_fail(db, "approving member")
    db.refresh(member)
    logger.info("Member %s approved on server %s by %s", member_id, server.server_id, caller.user_id)
    return member


def reject_member(
    db: Session,
    caller: User,
    server: Server,
    member_id: str,
    reason: Optional[str] = None,
) -> Member:
    """PENDING or ACTIVE -> REJECTED. The owner cannot be rejected."""
    require_roles(db, caller, server)
    member = _get_member_in_server(db, server, member_id)
    if member.user_id == server.owner_id:
        raise Forbidden("The classroom owner cannot be rejected")
    if member.status == MemberStatus.REJECTED:
        raise Conflict("Member is already REJECTED")

    member.status = MemberStatus.REJECTED
    member.rejected_at = datetime.now(timezone.utc)
    member.reject_reason = reason
    commit_or_fail(db, "rejecting member")
    db.refresh(member)
    logger.info("Member %s rejected on server %s by %s", member_id, server.server_id, caller.user_id)
    return member


def add_member(
    db: Session,
    caller: User,
    server: Server,
    user_id: str,
    role: MemberRole = MemberRole.GUEST,
) -> Member:
    """Explicit admin add; the new member is ACTIVE immediately."""
    require_roles(db, caller, server)
    if not db.query(User).filter(User.user_id == user_id).first():
        raise NotFound("User not found")
    if find_member(db, server.server_id, user_id):
        raise Conflict("User is already a member of this classroom")

    member = Member(
        server_id=server.server_id,
        user_id=user_id,
        role=role,
        status=MemberStatus.ACTIVE,
        approved_at=datetime.now(timezone.utc),
        approved_by=caller.user_id,
    )
    db.add(member)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User is already a member of this classroom")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error while adding member to server %s", server.server_id)
        raise InternalFailure("Internal Error")
    db.refresh(member)
    logger.info("Added user %s to server %s as %s", user_id, server.server_id, role.value)
    return member


def update_member_role(
    db: Session,
    caller: User,
    server: Server,
    member_id: str,
    role: MemberRole,
) -> Member:
    require_roles(db, caller, server)
    member = _get_member_in_server(db, server, member_id)
    member.role = role
    commit_or_fail(db, "updating member role")
    db.refresh(member)
    logger.info("Member %s on server %s is now %s", member_id, server.server_id, role.value)
    return member


def remove_member(db: Session, caller: User, server: Server, member_id: str) -> None:
    require_roles(db, caller, server)
    member = _get_member_in_server(db, server, member_id)
    if member.user_id == server.owner_id:
        raise Forbidden("The classroom owner cannot be removed")
    db.delete(member)
    commit_or_fail(db, "removing member")
    logger.info("Removed member %s from server %s", member_id, server.server_id)


def leave_server(db: Session, user: User, server: Server) -> None:
    if server.owner_id == user.user_id:
        raise Forbidden("The classroom owner cannot leave")
    member = find_member(db, server.server_id, user.user_id)
    if not member:
        raise NotFound("Member not found")
    db.delete(member)
    commit_or_fail(db, "leaving server")
    logger.info("User %s left server %s", user.user_id, server.server_id)


def regenerate_invite_code(db: Session, caller: User, server: Server) -> Server:
    require_roles(db, caller, server, roles=(MemberRole.ADMIN,))
    server.invite_code = new_invite_code()
    commit_or_fail(db, "regenerating invite code")
    db.refresh(server)
    logger.info("Regenerated invite code for server %s", server.server_id)
    return server
