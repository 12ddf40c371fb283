"""Assignment lifecycle: the only code path that writes assignment rows.

Every create and update is checked against the active assignments of the same
academic year with :func:`detect_conflicts`. The check alone cannot stop two
concurrent writers that both validated against a snapshot missing the other's
row; the partial unique indexes on ``assignments`` close that window, and a
unique-index violation is translated back into the same ``ConflictError`` a
sequential caller would have received.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kampus.core.config import Settings, get_settings
from kampus.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from kampus.models.academics import Group, Subject, Teacher
from kampus.models.assignment import Assignment, AssignmentStatus
from kampus.models.calendar import AcademicYear, DayOfWeek, Period, TimeSlot
from kampus.schemas.assignment import AssignmentCreate, AssignmentUpdate
from kampus.schemas.conflict import ConflictClusterOut, ConflictReport
from kampus.services.audit import log_activity
from kampus.services.conflict_detector import (
    AssignmentSlot,
    ConflictResult,
    detect_conflicts,
    find_conflict_clusters,
)

logger = logging.getLogger(__name__)

SLOT_FIELDS = (
    "teacher_id",
    "subject_id",
    "group_id",
    "time_slot_id",
    "day_of_week",
    "academic_year_id",
    "period_id",
    "status",
)
# Fields that move an assignment to a different (moment, teacher, group) combination.
AXIS_FIELDS = frozenset({"teacher_id", "group_id", "time_slot_id", "day_of_week", "academic_year_id"})

REFERENCES = {
    "teacher_id": (Teacher, "Teacher"),
    "subject_id": (Subject, "Subject"),
    "group_id": (Group, "Group"),
    "time_slot_id": (TimeSlot, "Time slot"),
    "academic_year_id": (AcademicYear, "Academic year"),
    "period_id": (Period, "Period"),
}

TEACHER_BUSY_MESSAGE = "The teacher already has a class at this time."
GROUP_BUSY_MESSAGE = "The group already has a class at this time."


def conflict_error_from(result: ConflictResult) -> ConflictError:
    messages = []
    if result.teacher_conflict:
        messages.append(TEACHER_BUSY_MESSAGE)
    if result.group_conflict:
        messages.append(GROUP_BUSY_MESSAGE)
    return ConflictError(
        " ".join(messages),
        teacher_conflict=result.teacher_conflict,
        group_conflict=result.group_conflict,
        entries=result.entries(),
    )


def _plain(value):
    if isinstance(value, (DayOfWeek, AssignmentStatus)):
        return value.value
    return value


class AssignmentService:
    def __init__(self, db: Session, *, actor_id: str | None = None, settings: Settings | None = None) -> None:
        self.db = db
        self.actor_id = actor_id
        self.settings = settings or get_settings()

    # Reads

    def get(self, assignment_id: str) -> Assignment:
        with self._storage_errors("loading an assignment"):
            return self._get_live(assignment_id)

    def list_assignments(
        self,
        *,
        teacher_id: str | None = None,
        subject_id: str | None = None,
        group_id: str | None = None,
        academic_year_id: str | None = None,
        period_id: str | None = None,
        status: AssignmentStatus | None = None,
        institution_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Assignment]:
        statement = select(Assignment).where(Assignment.deleted_at.is_(None))
        filters = {
            Assignment.teacher_id: teacher_id,
            Assignment.subject_id: subject_id,
            Assignment.group_id: group_id,
            Assignment.academic_year_id: academic_year_id,
            Assignment.period_id: period_id,
            Assignment.status: status,
        }
        for column, value in filters.items():
            if value is not None:
                statement = statement.where(column == value)
        if institution_id is not None:
            statement = statement.join(AcademicYear, AcademicYear.id == Assignment.academic_year_id).where(
                AcademicYear.institution_id == institution_id
            )
        statement = statement.order_by(Assignment.created_at, Assignment.id).offset(offset).limit(limit)
        with self._storage_errors("listing assignments"):
            return list(self.db.execute(statement).scalars())

    def list_for_group(self, group_id: str) -> list[Assignment]:
        return self._weekly_schedule(Assignment.group_id == group_id)

    def list_for_teacher(self, teacher_id: str) -> list[Assignment]:
        return self._weekly_schedule(Assignment.teacher_id == teacher_id)

    def check(self, draft: AssignmentCreate, *, exclude_id: str | None = None) -> ConflictResult:
        """Run detection for ``draft`` without writing anything."""
        values = draft.model_dump()
        with self._storage_errors("checking an assignment"):
            self._validate(values, fields=set(values))
            candidate = AssignmentSlot(id=exclude_id, **values)
            if not candidate.is_active:
                return ConflictResult()
            return detect_conflicts(candidate, self._load_scope(candidate.academic_year_id))

    def list_system_conflicts(
        self,
        *,
        academic_year_id: str | None = None,
        institution_id: str | None = None,
    ) -> ConflictReport:
        statement = select(Assignment).where(
            Assignment.status == AssignmentStatus.active,
            Assignment.deleted_at.is_(None),
        )
        if academic_year_id is not None:
            statement = statement.where(Assignment.academic_year_id == academic_year_id)
        if institution_id is not None:
            statement = statement.join(AcademicYear, AcademicYear.id == Assignment.academic_year_id).where(
                AcademicYear.institution_id == institution_id
            )
        with self._storage_errors("building the conflict report"):
            slots = [AssignmentSlot.from_model(row) for row in self.db.execute(statement).scalars()]

        clusters = find_conflict_clusters(slots)
        report = ConflictReport(
            academic_year_id=academic_year_id,
            institution_id=institution_id,
            scanned_assignments=len(slots),
            teacher_conflicts=[ConflictClusterOut.model_validate(c) for c in clusters if c.axis == "teacher"],
            group_conflicts=[ConflictClusterOut.model_validate(c) for c in clusters if c.axis == "group"],
        )
        if report.total_conflicts:
            logger.warning(
                "Conflict audit found %d teacher and %d group clusters across %d active assignments",
                len(report.teacher_conflicts),
                len(report.group_conflicts),
                len(slots),
            )
        return report

    # Writes

    def create(self, draft: AssignmentCreate) -> Assignment:
        values = draft.model_dump()
        with self._storage_errors("creating an assignment"):
            self._validate(values, fields=set(values))
            assignment_id = str(uuid.uuid4())
            candidate = AssignmentSlot(id=assignment_id, **values)
            if candidate.is_active:
                self._ensure_no_conflict(candidate, self._load_scope(candidate.academic_year_id))

            assignment = Assignment(id=assignment_id, **values)
            self.db.add(assignment)
            log_activity(
                self.db,
                user_id=self.actor_id,
                action="assignment.created",
                entity_type="assignment",
                entity_id=assignment_id,
                details={key: _plain(value) for key, value in values.items()},
            )
            self._commit(candidate)
            self.db.refresh(assignment)

        logger.info(
            "Created assignment %s (teacher=%s group=%s %s slot=%s year=%s)",
            assignment.id,
            assignment.teacher_id,
            assignment.group_id,
            assignment.day_of_week.value,
            assignment.time_slot_id,
            assignment.academic_year_id,
        )
        return assignment

    def update(self, assignment_id: str, patch: AssignmentUpdate) -> Assignment:
        with self._storage_errors("updating an assignment"):
            assignment = self._get_live(assignment_id)
            changes = {
                key: value
                for key, value in patch.model_dump(exclude_unset=True).items()
                if getattr(assignment, key) != value
            }
            if not changes:
                return assignment

            merged = {field: getattr(assignment, field) for field in SLOT_FIELDS}
            merged.update(changes)
            self._validate(merged, fields=set(changes))
            candidate = AssignmentSlot(id=assignment.id, **merged)

            # Leaving the key alone (e.g. a subject swap) cannot create a new collision.
            if candidate.is_active and (AXIS_FIELDS & changes.keys() or "status" in changes):
                self._ensure_no_conflict(candidate, self._load_scope(candidate.academic_year_id))

            previous = {key: _plain(getattr(assignment, key)) for key in changes}
            for key, value in changes.items():
                setattr(assignment, key, value)
            log_activity(
                self.db,
                user_id=self.actor_id,
                action="assignment.updated",
                entity_type="assignment",
                entity_id=assignment.id,
                details={
                    "changes": {key: {"from": previous[key], "to": _plain(value)} for key, value in changes.items()}
                },
            )
            self._commit(candidate)
            self.db.refresh(assignment)

        logger.info("Updated assignment %s: %s", assignment.id, ", ".join(sorted(changes)))
        return assignment

    def delete(self, assignment_id: str) -> None:
        with self._storage_errors("deleting an assignment"):
            assignment = self._get_live(assignment_id)
            assignment.deleted_at = datetime.now(timezone.utc)
            log_activity(
                self.db,
                user_id=self.actor_id,
                action="assignment.deleted",
                entity_type="assignment",
                entity_id=assignment.id,
            )
            self.db.commit()
        logger.info("Deleted assignment %s", assignment_id)

    # Internals

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Storage failure while %s", action)
            raise PersistenceError(f"Storage failure while {action}") from exc

    def _get_live(self, assignment_id: str) -> Assignment:
        assignment = self.db.get(Assignment, assignment_id)
        if assignment is None or assignment.deleted_at is not None:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def _weekly_schedule(self, criterion) -> list[Assignment]:
        statement = (
            select(Assignment)
            .join(TimeSlot, TimeSlot.id == Assignment.time_slot_id)
            .where(
                criterion,
                Assignment.status == AssignmentStatus.active,
                Assignment.deleted_at.is_(None),
            )
            .order_by(TimeSlot.start_time, Assignment.id)
        )
        with self._storage_errors("loading a weekly schedule"):
            rows = list(self.db.execute(statement).scalars())
        # Enum columns sort alphabetically in SQL; weekday order is applied here.
        rows.sort(key=lambda row: row.day_of_week.order)
        return rows

    def _load_scope(self, academic_year_id: str) -> list[AssignmentSlot]:
        """Active, non-deleted assignments of one academic year."""
        statement = select(Assignment).where(
            Assignment.academic_year_id == academic_year_id,
            Assignment.status == AssignmentStatus.active,
            Assignment.deleted_at.is_(None),
        )
        return [AssignmentSlot.from_model(row) for row in self.db.execute(statement).scalars()]

    def _ensure_no_conflict(self, candidate: AssignmentSlot, others: list[AssignmentSlot]) -> None:
        result = detect_conflicts(candidate, others)
        if result.has_conflict:
            logger.warning(
                "Rejected assignment for teacher=%s group=%s %s slot=%s year=%s: teacher_conflict=%s group_conflict=%s",
                candidate.teacher_id,
                candidate.group_id,
                candidate.day_of_week.value,
                candidate.time_slot_id,
                candidate.academic_year_id,
                result.teacher_conflict,
                result.group_conflict,
            )
            raise conflict_error_from(result)

    def _commit(self, candidate: AssignmentSlot) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            # A concurrent writer committed first; describe the collision from committed state.
            result = detect_conflicts(candidate, self._load_scope(candidate.academic_year_id))
            if candidate.is_active and result.has_conflict:
                logger.warning("Assignment %s lost a concurrent write race", candidate.id)
                raise conflict_error_from(result) from exc
            raise

    def _validate(self, values: dict, *, fields: set[str]) -> None:
        errors: dict[str, str] = {}
        found = {}
        for field, (model, label) in REFERENCES.items():
            value = values.get(field)
            if value is None:
                continue
            needed = field in fields or (field in {"academic_year_id", "period_id"} and fields & {"academic_year_id", "period_id"})
            if not needed:
                continue
            record = self.db.get(model, value)
            if record is None:
                errors[field] = f"{label} {value} does not exist"
            else:
                found[field] = record

        period = found.get("period_id")
        if period is not None and period.academic_year_id != values.get("academic_year_id"):
            errors["period_id"] = "The selected period does not belong to the academic year"

        if "day_of_week" in fields:
            day = DayOfWeek(values["day_of_week"])
            if day.value not in self.settings.school_days:
                errors["day_of_week"] = (
                    f"{day.value} is not a school day (allowed: {', '.join(self.settings.school_days)})"
                )

        if errors:
            raise ValidationError("Invalid assignment data", details={"errors": errors})
