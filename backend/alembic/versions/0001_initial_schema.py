"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the classroom service:
users, servers, members, channels, assessments, results.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

member_role = sa.Enum("ADMIN", "MODERATOR", "GUEST", name="memberrole")
member_status = sa.Enum("ACTIVE", "PENDING", "REJECTED", name="memberstatus")
assessment_kind = sa.Enum("exam", "exercise", name="assessmentkind")
result_type = sa.Enum("multiple_choice", "written", "essay", name="resulttype")
grading_status = sa.Enum("pending", "graded", name="gradingstatus")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- servers ---
    op.create_table(
        "servers",
        sa.Column("server_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("invite_code", sa.String(36), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- members ---
    op.create_table(
        "members",
        sa.Column("member_id", sa.String(36), primary_key=True),
        sa.Column("server_id", sa.String(36), sa.ForeignKey("servers.server_id"), nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("role", member_role, nullable=False, server_default="GUEST"),
        sa.Column("status", member_status, nullable=False, server_default="ACTIVE"),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reject_reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "server_id", name="uq_member_user_server"),
    )

    # --- channels ---
    op.create_table(
        "channels",
        sa.Column("channel_id", sa.String(36), primary_key=True),
        sa.Column("server_id", sa.String(36), sa.ForeignKey("servers.server_id"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- assessments ---
    op.create_table(
        "assessments",
        sa.Column("assessment_id", sa.String(36), primary_key=True),
        sa.Column("channel_id", sa.String(36), sa.ForeignKey("channels.channel_id"), nullable=False, index=True),
        sa.Column("kind", assessment_kind, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("prompt", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("allow_references", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("shuffle_questions", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("question_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- results ---
    op.create_table(
        "results",
        sa.Column("result_id", sa.String(36), primary_key=True),
        sa.Column("assessment_id", sa.String(36), sa.ForeignKey("assessments.assessment_id"),
                  nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, index=True),
        sa.Column("result_type", result_type, nullable=False),
        sa.Column("score", sa.Float, nullable=False, server_default="0"),
        sa.Column("answers", sa.JSON, nullable=False),
        sa.Column("grading_status", grading_status, nullable=False, server_default="graded"),
        sa.Column("feedback", sa.Text, nullable=True),
        sa.Column("graded_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("assessment_id", "user_id", name="uq_result_assessment_user"),
    )


def downgrade() -> None:
    op.drop_table("results")
    op.drop_table("assessments")
    op.drop_table("channels")
    op.drop_table("members")
    op.drop_table("servers")
    op.drop_table("users")
    for enum_type in (grading_status, result_type, assessment_kind, member_status, member_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
