"""Validation rules for academic years and their periods.

The assignment service relies on these rules without re-checking them: every
period lies inside its academic year and no two periods of a year overlap.
"""
from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from kampus.core.exceptions import NotFoundError, ValidationError
from kampus.models.calendar import AcademicYear, Period


def validate_academic_year_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError(
            "Invalid academic year dates",
            details={"errors": ["end_date must be after start_date"]},
        )


def validate_period(
    db: Session,
    *,
    academic_year_id: str,
    start_date: date,
    end_date: date,
    exclude_period_id: str | None = None,
) -> AcademicYear:
    year = db.get(AcademicYear, academic_year_id)
    if year is None:
        raise NotFoundError("AcademicYear", academic_year_id)

    errors: list[str] = []
    if end_date <= start_date:
        errors.append("end_date must be after start_date")
    if start_date < year.start_date:
        errors.append(f"Period cannot start before the academic year starts ({year.start_date.isoformat()})")
    if end_date > year.end_date:
        errors.append(f"Period cannot end after the academic year ends ({year.end_date.isoformat()})")

    statement = select(Period).where(Period.academic_year_id == academic_year_id)
    if exclude_period_id is not None:
        statement = statement.where(Period.id != exclude_period_id)
    for existing in db.execute(statement.order_by(Period.start_date)).scalars():
        # Bounds are inclusive: a period ending on the 15th blocks one starting on the 15th.
        if start_date <= existing.end_date and end_date >= existing.start_date:
            errors.append(
                f'Period overlaps existing period "{existing.name}" '
                f"({existing.start_date.isoformat()} to {existing.end_date.isoformat()})"
            )
            break

    if errors:
        raise ValidationError("Invalid period dates", details={"errors": errors})
    return year
