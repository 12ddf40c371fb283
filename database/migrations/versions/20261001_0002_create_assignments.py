"""create assignments and activity logs

Revision ID: 20261001_0002
Revises: 20261001_0001
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261001_0002"
down_revision = "20261001_0001"
branch_labels = None
depends_on = None


day_of_week_enum = sa.Enum(
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday", name="day_of_week"
)
assignment_status_enum = sa.Enum("active", "inactive", name="assignment_status")

ACTIVE_ASSIGNMENT_CLAUSE = "status = 'active' AND deleted_at IS NULL"


def upgrade() -> None:
    op.create_table(
        "assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("group_id", sa.String(length=36), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("time_slot_id", sa.String(length=36), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("day_of_week", day_of_week_enum, nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), sa.ForeignKey("academic_years.id"), nullable=False),
        sa.Column("period_id", sa.String(length=36), sa.ForeignKey("periods.id"), nullable=True),
        sa.Column("status", assignment_status_enum, nullable=False, server_default="active"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "uq_assignments_active_teacher_moment",
        "assignments",
        ["academic_year_id", "day_of_week", "time_slot_id", "teacher_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_ASSIGNMENT_CLAUSE),
        sqlite_where=sa.text(ACTIVE_ASSIGNMENT_CLAUSE),
    )
    op.create_index(
        "uq_assignments_active_group_moment",
        "assignments",
        ["academic_year_id", "day_of_week", "time_slot_id", "group_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_ASSIGNMENT_CLAUSE),
        sqlite_where=sa.text(ACTIVE_ASSIGNMENT_CLAUSE),
    )
    op.create_index("ix_assignments_teacher_day_slot", "assignments", ["teacher_id", "day_of_week", "time_slot_id"])
    op.create_index("ix_assignments_group_day_slot", "assignments", ["group_id", "day_of_week", "time_slot_id"])
    op.create_index("ix_assignments_year_period", "assignments", ["academic_year_id", "period_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_assignments_year_period", table_name="assignments")
    op.drop_index("ix_assignments_group_day_slot", table_name="assignments")
    op.drop_index("ix_assignments_teacher_day_slot", table_name="assignments")
    op.drop_index("uq_assignments_active_group_moment", table_name="assignments")
    op.drop_index("uq_assignments_active_teacher_moment", table_name="assignments")
    op.drop_table("assignments")
    assignment_status_enum.drop(op.get_bind(), checkfirst=True)
    day_of_week_enum.drop(op.get_bind(), checkfirst=True)
