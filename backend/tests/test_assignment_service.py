import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import OperationalError

from kampus.core.config import Settings
from kampus.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from kampus.models.activity_log import ActivityLog
from kampus.models.assignment import GROUP_MOMENT_INDEX, TEACHER_MOMENT_INDEX, Assignment, AssignmentStatus
from kampus.models.calendar import DayOfWeek
from kampus.schemas.assignment import AssignmentCreate, AssignmentUpdate
from kampus.services.assignment_service import AssignmentService


@pytest.fixture()
def service(db_session):
    return AssignmentService(db_session, actor_id="actor-1")


@pytest.fixture()
def draft(draft_values):
    def build(**overrides) -> AssignmentCreate:
        return AssignmentCreate(**draft_values(**overrides))

    return build


def _active_count(db_session, **criteria) -> int:
    statement = select(func.count(Assignment.id)).where(
        Assignment.status == AssignmentStatus.active,
        Assignment.deleted_at.is_(None),
    )
    for key, value in criteria.items():
        statement = statement.where(getattr(Assignment, key) == value)
    return db_session.execute(statement).scalar_one()


def test_create_persists_active_assignment_and_logs_activity(service, draft, db_session):
    assignment = service.create(draft())

    assert assignment.status == AssignmentStatus.active
    assert assignment.day_of_week == DayOfWeek.monday
    assert assignment.teacher.first_name == "Ana"
    log = db_session.execute(select(ActivityLog).where(ActivityLog.entity_id == assignment.id)).scalar_one()
    assert log.action == "assignment.created"
    assert log.user_id == "actor-1"
    assert log.details["day_of_week"] == "monday"


def test_teacher_double_booking_is_rejected(service, draft, reference, db_session):
    existing = service.create(draft(group_id=reference.group_a))

    with pytest.raises(ConflictError) as exc_info:
        service.create(draft(group_id=reference.group_b))

    error = exc_info.value
    assert error.teacher_conflict is True
    assert error.group_conflict is False
    assert error.message == "The teacher already has a class at this time."
    assert [entry["assignment_id"] for entry in error.entries] == [existing.id]
    assert _active_count(db_session, teacher_id=reference.teacher_1) == 1


def test_group_double_booking_is_rejected(service, draft, reference):
    service.create(draft(teacher_id=reference.teacher_1))

    with pytest.raises(ConflictError) as exc_info:
        service.create(draft(teacher_id=reference.teacher_2))

    assert exc_info.value.teacher_conflict is False
    assert exc_info.value.group_conflict is True
    assert exc_info.value.message == "The group already has a class at this time."


def test_both_axes_reported_in_one_error(service, draft, reference):
    service.create(draft())

    with pytest.raises(ConflictError) as exc_info:
        service.create(draft(subject_id=reference.language))

    error = exc_info.value
    assert error.teacher_conflict and error.group_conflict
    assert error.message == (
        "The teacher already has a class at this time. The group already has a class at this time."
    )
    assert error.to_payload()["details"] == {"teacher_conflict": True, "group_conflict": True}


def test_same_teacher_in_different_slot_or_year_is_allowed(service, draft, reference):
    service.create(draft())
    service.create(draft(group_id=reference.group_b, time_slot_id=reference.slot_2))
    service.create(draft(group_id=reference.group_c, day_of_week="tuesday"))
    service.create(draft(academic_year_id=reference.other_year_id, period_id=None))


def test_conflict_check_spans_periods_of_the_year(service, draft, reference):
    service.create(draft(period_id=reference.first_term_id))

    with pytest.raises(ConflictError):
        service.create(draft(group_id=reference.group_b, period_id=reference.second_term_id))


def test_inactive_draft_skips_detection(service, draft, db_session):
    service.create(draft())
    parked = service.create(draft(status="inactive"))

    assert parked.status == AssignmentStatus.inactive
    assert _active_count(db_session) == 1


def test_update_without_axis_change_does_not_self_conflict(service, draft, reference):
    assignment = service.create(draft())

    updated = service.update(assignment.id, AssignmentUpdate(subject_id=reference.language))

    assert updated.subject_id == reference.language


def test_update_moving_into_busy_slot_is_rejected(service, draft, reference, db_session):
    service.create(draft(time_slot_id=reference.slot_1))
    second = service.create(draft(time_slot_id=reference.slot_2, group_id=reference.group_b))

    with pytest.raises(ConflictError) as exc_info:
        service.update(second.id, AssignmentUpdate(time_slot_id=reference.slot_1))

    assert exc_info.value.teacher_conflict is True
    db_session.expire_all()
    assert db_session.get(Assignment, second.id).time_slot_id == reference.slot_2


def test_reactivating_into_busy_slot_is_rejected(service, draft, reference):
    service.create(draft())
    parked = service.create(draft(group_id=reference.group_b, status="inactive"))

    with pytest.raises(ConflictError):
        service.update(parked.id, AssignmentUpdate(status=AssignmentStatus.active))


def test_deactivating_frees_the_moment(service, draft, reference):
    first = service.create(draft())
    service.update(first.id, AssignmentUpdate(status=AssignmentStatus.inactive))

    replacement = service.create(draft(group_id=reference.group_b))

    assert replacement.status == AssignmentStatus.active


def test_update_logs_field_changes(service, draft, reference, db_session):
    assignment = service.create(draft())
    service.update(assignment.id, AssignmentUpdate(day_of_week="wednesday"))

    log = db_session.execute(
        select(ActivityLog).where(ActivityLog.action == "assignment.updated", ActivityLog.entity_id == assignment.id)
    ).scalar_one()
    assert log.details["changes"] == {"day_of_week": {"from": "monday", "to": "wednesday"}}


def test_update_with_no_changes_is_a_no_op(service, draft, db_session):
    assignment = service.create(draft())
    service.update(assignment.id, AssignmentUpdate(day_of_week="monday"))

    assert db_session.execute(
        select(func.count(ActivityLog.id)).where(ActivityLog.action == "assignment.updated")
    ).scalar_one() == 0


def test_delete_is_soft_and_frees_the_moment(service, draft, reference, db_session):
    assignment = service.create(draft())
    service.delete(assignment.id)

    db_session.expire_all()
    assert db_session.get(Assignment, assignment.id).deleted_at is not None
    with pytest.raises(NotFoundError):
        service.get(assignment.id)
    with pytest.raises(NotFoundError):
        service.delete(assignment.id)

    service.create(draft(group_id=reference.group_b))


def test_unknown_assignment_is_not_found(service):
    with pytest.raises(NotFoundError) as exc_info:
        service.update("missing", AssignmentUpdate(day_of_week="monday"))
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Assignment with id missing not found"


def test_missing_references_are_validation_errors(service, draft):
    with pytest.raises(ValidationError) as exc_info:
        service.create(draft(teacher_id="nope", group_id="nada"))

    errors = exc_info.value.details["errors"]
    assert set(errors) == {"teacher_id", "group_id"}


def test_period_must_belong_to_the_academic_year(service, draft, reference):
    with pytest.raises(ValidationError) as exc_info:
        service.create(draft(academic_year_id=reference.other_year_id, period_id=reference.first_term_id))

    assert "period_id" in exc_info.value.details["errors"]


def test_day_outside_school_week_is_rejected(db_session, draft):
    service = AssignmentService(db_session, settings=Settings(school_days=["monday", "tuesday"]))

    with pytest.raises(ValidationError) as exc_info:
        service.create(draft(day_of_week="friday"))

    assert "day_of_week" in exc_info.value.details["errors"]


def test_check_reports_without_writing(service, draft, reference, db_session):
    existing = service.create(draft())

    result = service.check(draft(group_id=reference.group_b))
    assert result.teacher_conflict_ids == [existing.id]
    assert _active_count(db_session) == 1

    assert not service.check(draft(), exclude_id=existing.id).has_conflict


def test_weekly_schedules_are_ordered_by_day_then_start_time(service, draft, reference):
    friday = service.create(draft(day_of_week="friday"))
    monday_late = service.create(draft(time_slot_id=reference.slot_2))
    tuesday_class = service.create(draft(teacher_id=reference.teacher_2, group_id=reference.group_a, day_of_week="tuesday"))
    service.create(draft(teacher_id=reference.teacher_3, group_id=reference.group_b))

    group_schedule = service.list_for_group(reference.group_a)
    assert [a.id for a in group_schedule] == [monday_late.id, tuesday_class.id, friday.id]

    teacher_schedule = service.list_for_teacher(reference.teacher_1)
    assert [a.id for a in teacher_schedule] == [monday_late.id, friday.id]


def test_list_filters(service, draft, reference):
    first = service.create(draft())
    service.create(draft(teacher_id=reference.teacher_2, group_id=reference.group_b))
    service.create(draft(academic_year_id=reference.other_year_id, period_id=None, group_id=reference.group_c))

    assert [a.id for a in service.list_assignments(teacher_id=reference.teacher_1, academic_year_id=reference.year_id)] == [first.id]
    assert len(service.list_assignments(institution_id=reference.institution_id)) == 2
    assert len(service.list_assignments(limit=1)) == 1


def test_system_conflict_report_finds_legacy_double_bookings(service, draft, reference, db_session):
    # Databases created before the exclusivity indexes can still hold double bookings.
    db_session.execute(text(f"DROP INDEX {TEACHER_MOMENT_INDEX}"))
    db_session.execute(text(f"DROP INDEX {GROUP_MOMENT_INDEX}"))
    db_session.commit()

    first = service.create(draft())
    legacy = Assignment(**draft_values_dict(reference, group_id=reference.group_b))
    parked = Assignment(**draft_values_dict(reference, group_id=reference.group_c), status=AssignmentStatus.inactive)
    db_session.add_all([legacy, parked])
    db_session.commit()

    report = service.list_system_conflicts(academic_year_id=reference.year_id)

    assert report.scanned_assignments == 2
    assert report.total_conflicts == 1
    assert report.group_conflicts == []
    cluster = report.teacher_conflicts[0]
    assert cluster.resource_id == reference.teacher_1
    assert cluster.day_of_week == DayOfWeek.monday
    assert cluster.assignment_ids == sorted([first.id, legacy.id])

    assert service.list_system_conflicts(institution_id=reference.other_institution_id).total_conflicts == 0



def draft_values_dict(reference, **overrides) -> dict:
    values = {
        "teacher_id": reference.teacher_1,
        "subject_id": reference.math,
        "group_id": reference.group_a,
        "time_slot_id": reference.slot_1,
        "day_of_week": DayOfWeek.monday,
        "academic_year_id": reference.year_id,
        "period_id": reference.first_term_id,
    }
    values.update(overrides)
    return values


def test_concurrent_writer_gets_the_same_conflict_error(session_factory, draft, reference):
    session_a = session_factory()
    session_b = session_factory()
    try:
        first = AssignmentService(session_a).create(draft())

        racing = AssignmentService(session_b)
        calls = {"count": 0}
        real_load_scope = racing._load_scope

        def stale_then_fresh(academic_year_id):
            # The first read happened before the other writer committed.
            calls["count"] += 1
            if calls["count"] == 1:
                return []
            return real_load_scope(academic_year_id)

        racing._load_scope = stale_then_fresh

        with pytest.raises(ConflictError) as exc_info:
            racing.create(draft(group_id=reference.group_b))

        assert exc_info.value.teacher_conflict is True
        assert [entry["assignment_id"] for entry in exc_info.value.entries] == [first.id]
        assert calls["count"] == 2
        assert _active_count(session_b, teacher_id=reference.teacher_1) == 1
    finally:
        session_a.close()
        session_b.close()


def test_storage_failures_become_persistence_errors(service, draft, db_session, monkeypatch):
    calls = {"count": 0}

    def failing_execute(*args, **kwargs):
        calls["count"] += 1
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", failing_execute)

    with pytest.raises(PersistenceError) as exc_info:
        service.create(draft())

    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert calls["count"] == 1
