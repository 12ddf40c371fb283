from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator

from kampus.models.assignment import AssignmentStatus
from kampus.models.calendar import DayOfWeek
from kampus.schemas.academics import GroupOut, SubjectOut, TeacherOut
from kampus.schemas.calendar import AcademicYearOut, PeriodOut, TimeSlotOut

NULLABLE_PATCH_FIELDS = {"period_id"}


def _normalize_day(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class AssignmentCreate(BaseModel):
    teacher_id: str
    subject_id: str
    group_id: str
    time_slot_id: str
    day_of_week: DayOfWeek
    academic_year_id: str
    period_id: str | None = None
    status: AssignmentStatus = AssignmentStatus.active

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return _normalize_day(value)


class AssignmentUpdate(BaseModel):
    teacher_id: str | None = None
    subject_id: str | None = None
    group_id: str | None = None
    time_slot_id: str | None = None
    day_of_week: DayOfWeek | None = None
    academic_year_id: str | None = None
    period_id: str | None = None
    status: AssignmentStatus | None = None

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return _normalize_day(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "AssignmentUpdate":
        nulled = sorted(
            name
            for name in self.model_fields_set
            if name not in NULLABLE_PATCH_FIELDS and getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class AssignmentOut(BaseModel):
    id: str
    teacher_id: str
    subject_id: str
    group_id: str
    time_slot_id: str
    day_of_week: DayOfWeek
    academic_year_id: str
    period_id: str | None = None
    status: AssignmentStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    teacher: TeacherOut
    subject: SubjectOut
    group: GroupOut
    time_slot: TimeSlotOut
    academic_year: AcademicYearOut
    period: PeriodOut | None = None

    model_config = {"from_attributes": True}
