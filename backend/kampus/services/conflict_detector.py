"""Teacher and group double-booking detection.

Everything in this module is pure: it works on :class:`AssignmentSlot` value
objects and never touches the database, so it can be called from any number
of request threads at once and unit tested without a session.

Two assignments occupy the same *moment* when they share academic year, day
of week and time slot. Among active assignments, a moment may hold a given
teacher at most once and a given group at most once. The period is not part
of the moment: weekly schedules deliberately repeat a day/slot across the
periods of a year, and a teacher in two periods at the same day/slot is still
in two places at once.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from kampus.models.assignment import AssignmentStatus
from kampus.models.calendar import DayOfWeek

ConflictAxis = Literal["teacher", "group"]

MomentKey = tuple[str, DayOfWeek, str]


@dataclass(frozen=True)
class AssignmentSlot:
    """The conflict-relevant projection of an assignment."""

    id: str | None
    teacher_id: str
    subject_id: str | None
    group_id: str
    time_slot_id: str
    day_of_week: DayOfWeek
    academic_year_id: str
    period_id: str | None = None
    status: AssignmentStatus = AssignmentStatus.active

    def __post_init__(self) -> None:
        # Accept raw strings from drafts and fixtures.
        object.__setattr__(self, "day_of_week", DayOfWeek(self.day_of_week))
        object.__setattr__(self, "status", AssignmentStatus(self.status))

    @classmethod
    def from_model(cls, obj: Any) -> "AssignmentSlot":
        status = getattr(obj, "status", None) or AssignmentStatus.active
        # Soft-deleted rows are outside the conflict universe.
        if getattr(obj, "deleted_at", None) is not None:
            status = AssignmentStatus.inactive
        return cls(
            id=getattr(obj, "id", None),
            teacher_id=obj.teacher_id,
            subject_id=getattr(obj, "subject_id", None),
            group_id=obj.group_id,
            time_slot_id=obj.time_slot_id,
            day_of_week=obj.day_of_week,
            academic_year_id=obj.academic_year_id,
            period_id=getattr(obj, "period_id", None),
            status=status,
        )

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.active


def moment_key(slot: AssignmentSlot) -> MomentKey:
    return (slot.academic_year_id, slot.day_of_week, slot.time_slot_id)


def _sort_key(slot: AssignmentSlot) -> str:
    return str(slot.id)


@dataclass(frozen=True)
class ConflictResult:
    teacher_conflicts: tuple[AssignmentSlot, ...] = ()
    group_conflicts: tuple[AssignmentSlot, ...] = ()

    @property
    def teacher_conflict(self) -> bool:
        return bool(self.teacher_conflicts)

    @property
    def group_conflict(self) -> bool:
        return bool(self.group_conflicts)

    @property
    def has_conflict(self) -> bool:
        return self.teacher_conflict or self.group_conflict

    @property
    def teacher_conflict_ids(self) -> list[str]:
        return [str(slot.id) for slot in self.teacher_conflicts]

    @property
    def group_conflict_ids(self) -> list[str]:
        return [str(slot.id) for slot in self.group_conflicts]

    def entries(self) -> list[dict]:
        """Flatten both axes into the wire shape used by conflict responses."""
        rows: list[dict] = []
        for axis, slots in (("teacher", self.teacher_conflicts), ("group", self.group_conflicts)):
            for slot in slots:
                rows.append(
                    {
                        "axis": axis,
                        "assignment_id": slot.id,
                        "teacher_id": slot.teacher_id,
                        "group_id": slot.group_id,
                        "subject_id": slot.subject_id,
                        "time_slot_id": slot.time_slot_id,
                        "day_of_week": slot.day_of_week.value,
                        "academic_year_id": slot.academic_year_id,
                        "period_id": slot.period_id,
                    }
                )
        return rows


def detect_conflicts(candidate: AssignmentSlot, others: Iterable[AssignmentSlot]) -> ConflictResult:
    """Collect every active assignment in ``others`` that collides with ``candidate``.

    ``others`` is usually pre-scoped to the candidate's academic year by the
    caller, but the moment key is re-checked here for every row. The candidate
    itself (same id) is never reported, which is what makes updates safe. All
    matches are collected and returned sorted by id, so the result does not
    depend on the iteration order of ``others``.
    """
    key = moment_key(candidate)
    teacher_hits: dict[str, AssignmentSlot] = {}
    group_hits: dict[str, AssignmentSlot] = {}

    for other in others:
        if candidate.id is not None and other.id == candidate.id:
            continue
        if not other.is_active:
            continue
        if moment_key(other) != key:
            continue
        if other.teacher_id == candidate.teacher_id:
            teacher_hits[str(other.id)] = other
        if other.group_id == candidate.group_id:
            group_hits[str(other.id)] = other

    return ConflictResult(
        teacher_conflicts=tuple(sorted(teacher_hits.values(), key=_sort_key)),
        group_conflicts=tuple(sorted(group_hits.values(), key=_sort_key)),
    )


@dataclass(frozen=True)
class ConflictCluster:
    """Two or more active assignments sharing a moment and a teacher (or group)."""

    axis: ConflictAxis
    academic_year_id: str
    day_of_week: DayOfWeek
    time_slot_id: str
    resource_id: str
    assignment_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def size(self) -> int:
        return len(self.assignment_ids)


def find_conflict_clusters(assignments: Iterable[AssignmentSlot]) -> list[ConflictCluster]:
    """Group active assignments by moment+teacher and moment+group in one pass.

    Equivalent to running :func:`detect_conflicts` pairwise over the whole set,
    but linear in the number of assignments, which keeps the system-wide audit
    usable on large datasets.
    """
    by_teacher: dict[tuple[str, DayOfWeek, str, str], set[str]] = defaultdict(set)
    by_group: dict[tuple[str, DayOfWeek, str, str], set[str]] = defaultdict(set)

    for slot in assignments:
        if not slot.is_active:
            continue
        year_id, day, time_slot_id = moment_key(slot)
        by_teacher[(year_id, day, time_slot_id, slot.teacher_id)].add(str(slot.id))
        by_group[(year_id, day, time_slot_id, slot.group_id)].add(str(slot.id))

    clusters: list[ConflictCluster] = []
    for axis, buckets in (("teacher", by_teacher), ("group", by_group)):
        for (year_id, day, time_slot_id, resource_id), ids in buckets.items():
            if len(ids) < 2:
                continue
            clusters.append(
                ConflictCluster(
                    axis=axis,
                    academic_year_id=year_id,
                    day_of_week=day,
                    time_slot_id=time_slot_id,
                    resource_id=resource_id,
                    assignment_ids=tuple(sorted(ids)),
                )
            )

    clusters.sort(
        key=lambda c: (c.axis, c.academic_year_id, c.day_of_week.order, c.time_slot_id, c.resource_id)
    )
    return clusters
