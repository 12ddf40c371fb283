from typing import Literal

from pydantic import BaseModel, computed_field

from kampus.models.calendar import DayOfWeek


class ConflictEntry(BaseModel):
    axis: Literal["teacher", "group"]
    assignment_id: str
    teacher_id: str
    group_id: str
    subject_id: str | None = None
    time_slot_id: str
    day_of_week: DayOfWeek
    academic_year_id: str
    period_id: str | None = None


class ConflictCheck(BaseModel):
    teacher_conflict: bool
    group_conflict: bool
    conflicts: list[ConflictEntry]


class ConflictClusterOut(BaseModel):
    axis: Literal["teacher", "group"]
    academic_year_id: str
    day_of_week: DayOfWeek
    time_slot_id: str
    resource_id: str
    assignment_ids: list[str]

    model_config = {"from_attributes": True}


class ConflictReport(BaseModel):
    academic_year_id: str | None = None
    institution_id: str | None = None
    scanned_assignments: int
    teacher_conflicts: list[ConflictClusterOut]
    group_conflicts: list[ConflictClusterOut]

    @computed_field
    @property
    def total_conflicts(self) -> int:
        return len(self.teacher_conflicts) + len(self.group_conflicts)
