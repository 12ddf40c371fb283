from __future__ import annotations

import re
from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from kampus.models.calendar import AcademicYearStatus

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _strip_name(value: str) -> str:
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("Name cannot be empty")
    return trimmed


class InstitutionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    acronym: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return _strip_name(value)


class InstitutionOut(InstitutionCreate):
    id: str

    model_config = {"from_attributes": True}


class AcademicYearCreate(BaseModel):
    institution_id: str
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    status: AcademicYearStatus = AcademicYearStatus.active

    @model_validator(mode="after")
    def validate_order(self) -> "AcademicYearCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicYearOut(BaseModel):
    id: str
    institution_id: str
    name: str
    start_date: date
    end_date: date
    status: AcademicYearStatus

    model_config = {"from_attributes": True}


class PeriodCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date


class PeriodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None


class PeriodOut(BaseModel):
    id: str
    academic_year_id: str
    name: str
    start_date: date
    end_date: date

    model_config = {"from_attributes": True}


class TimeSlotCreate(BaseModel):
    institution_id: str
    name: str = Field(min_length=1, max_length=100)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "TimeSlotCreate":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time) - parse_time_to_minutes(self.start_time)


class TimeSlotOut(BaseModel):
    id: str
    institution_id: str
    name: str
    start_time: str
    end_time: str
    duration_minutes: int

    model_config = {"from_attributes": True}
