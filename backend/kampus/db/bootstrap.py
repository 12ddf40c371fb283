from __future__ import annotations

import logging

from sqlalchemy import inspect, text

from kampus import models  # noqa: F401
from kampus.db.base import Base
from kampus.db.session import engine
from kampus.models.assignment import GROUP_MOMENT_INDEX, TEACHER_MOMENT_INDEX, Assignment

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "hashed_password"},
    "academic_years": {"id", "institution_id", "start_date", "end_date"},
    "periods": {"id", "academic_year_id", "start_date", "end_date"},
    "time_slots": {"id", "institution_id", "start_time", "end_time"},
    "assignments": {
        "id",
        "teacher_id",
        "subject_id",
        "group_id",
        "time_slot_id",
        "day_of_week",
        "academic_year_id",
        "period_id",
        "status",
        "deleted_at",
    },
}

REQUIRED_INDEXES = (TEACHER_MOMENT_INDEX, GROUP_MOMENT_INDEX)


def _ensure_assignments_deleted_at_column() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "assignments" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("assignments")}
        if "deleted_at" in column_names:
            return
        column_type = "TIMESTAMP WITH TIME ZONE" if connection.dialect.name == "postgresql" else "DATETIME"
        connection.execute(text(f"ALTER TABLE assignments ADD COLUMN deleted_at {column_type}"))


def _ensure_assignment_exclusivity_indexes() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "assignments" not in set(inspector.get_table_names()):
            return
        existing = {item["name"] for item in inspector.get_indexes("assignments")}
        for index in Assignment.__table__.indexes:
            if index.name in REQUIRED_INDEXES and index.name not in existing:
                # Fails on databases that already hold double bookings; run scripts/audit_conflicts.py first.
                logger.info("Creating missing index %s", index.name)
                index.create(connection)


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")

        index_names = {item["name"] for item in inspector.get_indexes("assignments")}
        missing_indexes = sorted(set(REQUIRED_INDEXES) - index_names)
        if missing_indexes:
            raise RuntimeError(f"Missing required indexes: {', '.join(missing_indexes)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Create missing tables before patching older ones in place.
        Base.metadata.create_all(bind=engine)
        _ensure_assignments_deleted_at_column()
        _ensure_assignment_exclusivity_indexes()
        _assert_required_columns()
    except Exception as exc:
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
