import itertools
import random

from kampus.models.assignment import AssignmentStatus
from kampus.models.calendar import DayOfWeek
from kampus.services.conflict_detector import (
    AssignmentSlot,
    detect_conflicts,
    find_conflict_clusters,
    moment_key,
)


def slot(id, teacher="T1", group="G1", time_slot="S1", day="monday", year="Y1", status="active", subject="MAT"):
    return AssignmentSlot(
        id=id,
        teacher_id=teacher,
        subject_id=subject,
        group_id=group,
        time_slot_id=time_slot,
        day_of_week=day,
        academic_year_id=year,
        status=status,
    )


def test_teacher_double_booking_is_reported():
    existing = slot("x", teacher="T1", group="G1")
    candidate = slot(None, teacher="T1", group="G2")

    result = detect_conflicts(candidate, [existing])

    assert result.teacher_conflict is True
    assert result.group_conflict is False
    assert result.teacher_conflict_ids == ["x"]


def test_group_double_booking_is_reported():
    existing = slot("x", teacher="T1", group="G1")
    candidate = slot(None, teacher="T2", group="G1")

    result = detect_conflicts(candidate, [existing])

    assert result.teacher_conflict is False
    assert result.group_conflict is True
    assert result.group_conflict_ids == ["x"]


def test_both_axes_are_reported_independently():
    existing = slot("x", teacher="T1", group="G1")
    candidate = slot(None, teacher="T1", group="G1")

    result = detect_conflicts(candidate, [existing])

    assert result.teacher_conflict and result.group_conflict
    assert [entry["axis"] for entry in result.entries()] == ["teacher", "group"]


def test_different_slot_day_or_year_never_conflicts():
    candidate = slot(None)
    others = [
        slot("a", time_slot="S2"),
        slot("b", day="tuesday"),
        slot("c", year="Y2"),
    ]

    assert not detect_conflicts(candidate, others).has_conflict


def test_inactive_rows_are_ignored():
    candidate = slot(None)
    others = [slot("a", status="inactive")]

    assert not detect_conflicts(candidate, others).has_conflict


def test_candidate_never_conflicts_with_itself():
    stored = slot("x", teacher="T1", group="G1")
    moved = slot("x", teacher="T1", group="G1", subject="COM")

    assert not detect_conflicts(moved, [stored]).has_conflict


def test_draft_without_id_does_not_skip_rows():
    # A missing id must not be treated as matching rows that also lack one.
    result = detect_conflicts(slot(None), [slot(None)])
    assert result.teacher_conflict and result.group_conflict


def test_all_matches_are_collected_and_sorted():
    candidate = slot(None, teacher="T1", group="G1")
    others = [slot("c", teacher="T1", group="G9"), slot("a", teacher="T1", group="G8"), slot("b", teacher="T7", group="G1")]

    result = detect_conflicts(candidate, others)

    assert result.teacher_conflict_ids == ["a", "c"]
    assert result.group_conflict_ids == ["b"]


def test_duplicate_rows_are_reported_once():
    existing = slot("x")
    result = detect_conflicts(slot(None), [existing, existing])
    assert result.teacher_conflict_ids == ["x"]


def test_period_is_not_part_of_the_moment():
    first_term = AssignmentSlot(
        id="x", teacher_id="T1", subject_id="MAT", group_id="G1", time_slot_id="S1",
        day_of_week="monday", academic_year_id="Y1", period_id="P1",
    )
    second_term = AssignmentSlot(
        id=None, teacher_id="T1", subject_id="MAT", group_id="G2", time_slot_id="S1",
        day_of_week="monday", academic_year_id="Y1", period_id="P2",
    )

    assert detect_conflicts(second_term, [first_term]).teacher_conflict


def test_slot_coerces_raw_strings():
    value = slot("x", day="friday", status="inactive")
    assert value.day_of_week is DayOfWeek.friday
    assert value.status is AssignmentStatus.inactive
    assert moment_key(value) == ("Y1", DayOfWeek.friday, "S1")


def test_from_model_marks_soft_deleted_rows_inactive():
    class Row:
        id = "x"
        teacher_id = "T1"
        subject_id = "MAT"
        group_id = "G1"
        time_slot_id = "S1"
        day_of_week = DayOfWeek.monday
        academic_year_id = "Y1"
        period_id = None
        status = AssignmentStatus.active
        deleted_at = "2027-04-01T00:00:00Z"

    assert AssignmentSlot.from_model(Row()).is_active is False


def _random_universe(rng: random.Random, size: int) -> list[AssignmentSlot]:
    days = ["monday", "tuesday"]
    return [
        slot(
            f"a{index:03d}",
            teacher=rng.choice(["T1", "T2", "T3"]),
            group=rng.choice(["G1", "G2", "G3"]),
            time_slot=rng.choice(["S1", "S2"]),
            day=rng.choice(days),
            year=rng.choice(["Y1", "Y2"]),
            status=rng.choice(["active", "active", "inactive"]),
        )
        for index in range(size)
    ]


def test_reported_conflicts_really_share_a_moment_and_resource():
    rng = random.Random(20270301)
    for _ in range(50):
        universe = _random_universe(rng, 25)
        candidate = slot(
            None,
            teacher=rng.choice(["T1", "T2", "T3"]),
            group=rng.choice(["G1", "G2", "G3"]),
            time_slot=rng.choice(["S1", "S2"]),
            day=rng.choice(["monday", "tuesday"]),
            year=rng.choice(["Y1", "Y2"]),
        )
        result = detect_conflicts(candidate, universe)

        expected_teacher = sorted(
            s.id for s in universe
            if s.is_active and moment_key(s) == moment_key(candidate) and s.teacher_id == candidate.teacher_id
        )
        expected_group = sorted(
            s.id for s in universe
            if s.is_active and moment_key(s) == moment_key(candidate) and s.group_id == candidate.group_id
        )
        assert result.teacher_conflict_ids == expected_teacher
        assert result.group_conflict_ids == expected_group


def test_result_does_not_depend_on_iteration_order():
    rng = random.Random(7)
    universe = _random_universe(rng, 6)
    candidate = slot(None, teacher="T1", group="G1", time_slot="S1", day="monday", year="Y1")
    baseline = detect_conflicts(candidate, universe)

    for permutation in itertools.permutations(universe):
        assert detect_conflicts(candidate, list(permutation)) == baseline


def test_clusters_group_double_bookings_per_axis():
    assignments = [
        slot("a", teacher="T1", group="G1"),
        slot("b", teacher="T1", group="G2"),
        slot("c", teacher="T2", group="G2"),
        slot("d", teacher="T1", group="G3", status="inactive"),
        slot("e", teacher="T1", group="G1", day="tuesday"),
    ]

    clusters = find_conflict_clusters(assignments)

    assert [(c.axis, c.resource_id, c.assignment_ids) for c in clusters] == [
        ("group", "G2", ("b", "c")),
        ("teacher", "T1", ("a", "b")),
    ]
    assert clusters[0].size == 2


def test_clusters_agree_with_pairwise_detection():
    rng = random.Random(42)
    universe = _random_universe(rng, 40)
    clusters = find_conflict_clusters(universe)
    clustered = {(c.axis, assignment_id) for c in clusters for assignment_id in c.assignment_ids}

    pairwise = set()
    for candidate in universe:
        if not candidate.is_active:
            continue
        result = detect_conflicts(candidate, universe)
        if result.teacher_conflict:
            pairwise.add(("teacher", candidate.id))
        if result.group_conflict:
            pairwise.add(("group", candidate.id))

    assert clustered == pairwise
