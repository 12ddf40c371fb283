"""Seed demo accounts, calendar reference data and a conflict-free weekly timetable.

Run:
  PYTHONPATH=backend python scripts/seed_demo_schedule.py

Re-running is safe: existing rows are reused and assignments that would
double-book a teacher or group are reported and skipped.
"""

from __future__ import annotations

from datetime import date
import os

from sqlalchemy import select

from kampus.core.exceptions import ConflictError
from kampus.core.logging import setup_logging
from kampus.core.security import get_password_hash
from kampus.db.bootstrap import ensure_runtime_schema_compatibility
from kampus.db.session import SessionLocal
from kampus.models.academics import Group, Subject, Teacher
from kampus.models.calendar import AcademicYear, DayOfWeek, Institution, Period, TimeSlot
from kampus.models.user import User, UserRole
from kampus.schemas.assignment import AssignmentCreate
from kampus.services.assignment_service import AssignmentService

DEFAULT_PASSWORD = os.getenv("DEMO_PASSWORD", "DemoPass123!")
INSTITUTION_NAME = "Kampus Demo School"

DEMO_ACCOUNTS = {
    "admin": ("Demo Admin", "admin.demo@kampus.test", UserRole.admin),
    "coordinator": ("Demo Coordinator", "coordinator.demo@kampus.test", UserRole.coordinator),
    "teacher": ("Demo Teacher", "teacher.demo@kampus.test", UserRole.teacher),
}

TIME_SLOTS = [("First hour", "07:00", "07:45"), ("Second hour", "07:45", "08:30"), ("Third hour", "08:45", "09:30")]
TEACHERS = [
    ("Ana", "Quispe", "ana.quispe@kampus.test", "Mathematics"),
    ("Luis", "Huaman", "luis.huaman@kampus.test", "Communication"),
]
SUBJECTS = [("Mathematics", "MAT"), ("Communication", "COM")]
GROUPS = [("1A", "1"), ("1B", "1")]

# (teacher index, subject index, group index, slot index, day)
WEEKLY_PLAN = [
    (0, 0, 0, 0, DayOfWeek.monday),
    (0, 0, 1, 1, DayOfWeek.monday),
    (1, 1, 1, 0, DayOfWeek.monday),
    (1, 1, 0, 1, DayOfWeek.monday),
    (0, 0, 0, 2, DayOfWeek.wednesday),
    (1, 1, 1, 2, DayOfWeek.wednesday),
]


def _get_or_create(session, model, lookup: dict, **values):
    statement = select(model)
    for key, value in lookup.items():
        statement = statement.where(getattr(model, key) == value)
    record = session.execute(statement).scalars().first()
    if record is None:
        record = model(**lookup, **values)
        session.add(record)
        session.flush()
    return record


def _seed_users(session) -> dict[str, User]:
    users = {}
    for key, (name, email, role) in DEMO_ACCOUNTS.items():
        users[key] = _get_or_create(
            session,
            User,
            {"email": email},
            name=name,
            role=role,
            hashed_password=get_password_hash(DEFAULT_PASSWORD),
        )
    return users


def main() -> None:
    setup_logging()
    ensure_runtime_schema_compatibility()

    with SessionLocal() as session:
        users = _seed_users(session)
        institution = _get_or_create(session, Institution, {"name": INSTITUTION_NAME}, acronym="KDS")
        year = _get_or_create(
            session,
            AcademicYear,
            {"institution_id": institution.id, "name": "2027"},
            start_date=date(2027, 3, 1),
            end_date=date(2027, 12, 17),
        )
        first_term = _get_or_create(
            session,
            Period,
            {"academic_year_id": year.id, "name": "First term"},
            start_date=date(2027, 3, 1),
            end_date=date(2027, 7, 16),
        )
        _get_or_create(
            session,
            Period,
            {"academic_year_id": year.id, "name": "Second term"},
            start_date=date(2027, 8, 2),
            end_date=date(2027, 12, 17),
        )
        slots = [
            _get_or_create(
                session,
                TimeSlot,
                {"institution_id": institution.id, "start_time": start, "end_time": end},
                name=name,
                duration_minutes=45,
            )
            for name, start, end in TIME_SLOTS
        ]
        teachers = [
            _get_or_create(
                session,
                Teacher,
                {"email": email},
                institution_id=institution.id,
                first_name=first,
                last_name=last,
                specialty=specialty,
            )
            for first, last, email, specialty in TEACHERS
        ]
        subjects = [_get_or_create(session, Subject, {"code": code}, name=name) for name, code in SUBJECTS]
        groups = [
            _get_or_create(session, Group, {"institution_id": institution.id, "name": name}, grade=grade)
            for name, grade in GROUPS
        ]
        session.commit()
        year_name = year.name

        service = AssignmentService(session, actor_id=users["admin"].id)
        created = 0
        for teacher_idx, subject_idx, group_idx, slot_idx, day in WEEKLY_PLAN:
            draft = AssignmentCreate(
                teacher_id=teachers[teacher_idx].id,
                subject_id=subjects[subject_idx].id,
                group_id=groups[group_idx].id,
                time_slot_id=slots[slot_idx].id,
                day_of_week=day,
                academic_year_id=year.id,
                period_id=first_term.id,
            )
            try:
                service.create(draft)
                created += 1
            except ConflictError as exc:
                print(f"  - skipped {day.value} {slots[slot_idx].start_time}: {exc.message}")

    print(f"\nDemo schedule ready: {created} new assignment(s) in academic year {year_name}.")
    print("Demo accounts:")
    for key, (_, email, role) in DEMO_ACCOUNTS.items():
        print(f"  - {key}: {email} | role={role.value}")
    print(f"Password for all demo accounts: {DEFAULT_PASSWORD}")


if __name__ == "__main__":
    main()
