import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from kampus.db.base import Base
from kampus.models.academics import Group, Subject, Teacher
from kampus.models.calendar import AcademicYear, DayOfWeek, Period, TimeSlot


class AssignmentStatus(str, Enum):
    active = "active"
    inactive = "inactive"


# Rows that take part in exclusivity; inactive and soft-deleted rows are free.
ACTIVE_ASSIGNMENT_CLAUSE = "status = 'active' AND deleted_at IS NULL"

TEACHER_MOMENT_INDEX = "uq_assignments_active_teacher_moment"
GROUP_MOMENT_INDEX = "uq_assignments_active_group_moment"


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        Index(
            TEACHER_MOMENT_INDEX,
            "academic_year_id",
            "day_of_week",
            "time_slot_id",
            "teacher_id",
            unique=True,
            sqlite_where=text(ACTIVE_ASSIGNMENT_CLAUSE),
            postgresql_where=text(ACTIVE_ASSIGNMENT_CLAUSE),
        ),
        Index(
            GROUP_MOMENT_INDEX,
            "academic_year_id",
            "day_of_week",
            "time_slot_id",
            "group_id",
            unique=True,
            sqlite_where=text(ACTIVE_ASSIGNMENT_CLAUSE),
            postgresql_where=text(ACTIVE_ASSIGNMENT_CLAUSE),
        ),
        Index("ix_assignments_teacher_day_slot", "teacher_id", "day_of_week", "time_slot_id"),
        Index("ix_assignments_group_day_slot", "group_id", "day_of_week", "time_slot_id"),
        Index("ix_assignments_year_period", "academic_year_id", "period_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id"), nullable=False)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id"), nullable=False)
    group_id: Mapped[str] = mapped_column(ForeignKey("groups.id"), nullable=False)
    time_slot_id: Mapped[str] = mapped_column(ForeignKey("time_slots.id"), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(ForeignKey("academic_years.id"), nullable=False)
    period_id: Mapped[str | None] = mapped_column(ForeignKey("periods.id"), nullable=True)
    status: Mapped[AssignmentStatus] = mapped_column(
        SAEnum(AssignmentStatus, name="assignment_status"),
        nullable=False,
        default=AssignmentStatus.active,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    teacher: Mapped[Teacher] = relationship()
    subject: Mapped[Subject] = relationship()
    group: Mapped[Group] = relationship()
    time_slot: Mapped[TimeSlot] = relationship()
    academic_year: Mapped[AcademicYear] = relationship()
    period: Mapped[Period | None] = relationship()

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.active and self.deleted_at is None
