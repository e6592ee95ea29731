"""Integration tests for the allocation engine."""

from __future__ import annotations

import logging

import pytest

from conftest import make_slots
from schedule_engine.data.models import (
    Classroom,
    ConflictType,
    RoomType,
    SchoolClass,
    SessionRequirement,
    Severity,
    Shift,
    Subject,
    Teacher,
    TeacherRestriction,
    UserRole,
)
from schedule_engine.engine import (
    AllocationEngine,
    CancellationToken,
    GenerationProgress,
    RunStatus,
    check_prerequisites,
    generate_schedule,
)
from schedule_engine.errors import ConfigurationError
from schedule_engine.output.conflicts import detect_conflicts
from schedule_engine.settings import ScheduleGenerationSettings


def assert_complete(result) -> None:
    """Every request ends up exactly once as a session or a conflict."""
    placed = {s.request_id for s in result.sessions}
    unplaced = {c.id.removeprefix("conflict-") for c in result.conflicts}
    assert not placed & unplaced
    assert len(placed) == len(result.sessions)
    assert len(placed) + len(unplaced) == result.statistics.total_schedules


@pytest.fixture
def busy_school(snapshot_factory):
    """Three classes, four subjects, shared teachers and a lab."""
    return snapshot_factory(
        teachers=[
            Teacher(id="t1", name="Ana Silva"),
            Teacher(id="t2", name="Bruno Costa"),
            Teacher(id="t3", name="Carla Dias"),
        ],
        subjects=[
            Subject(id="mat", name="Mathematics", weekly_hours=5),
            Subject(id="por", name="Portuguese", weekly_hours=4),
            Subject(id="sci", name="Science", weekly_hours=3,
                    requires_special_room=True, special_room_type=RoomType.LABORATORY),
            Subject(id="pe", name="Physical Education", weekly_hours=2),
        ],
        classes=[
            SchoolClass(id="c1", name="6A", students_count=30),
            SchoolClass(id="c2", name="6B", students_count=28),
            SchoolClass(id="c3", name="7A", students_count=32),
        ],
        classrooms=[
            Classroom(id="r1", name="Room 101", capacity=35),
            Classroom(id="r2", name="Room 102", capacity=35),
            Classroom(id="lab", name="Lab", capacity=35, type=RoomType.LABORATORY),
        ],
        session_requirements=[
            SessionRequirement(id=f"{c}-{s}", class_id=c, subject_id=s, teacher_id=t)
            for c in ("c1", "c2", "c3")
            for s, t in (("mat", "t1"), ("por", "t2"), ("sci", "t3"), ("pe", "t3"))
        ],
        teacher_restrictions=[
            TeacherRestriction(id="r1", teacher_id="t2", type="unavailable_day", day_of_week=5),
            TeacherRestriction(
                id="r2", teacher_id="t3", type="unavailable_time",
                day_of_week=1, start_minutes=450, end_minutes=600,
            ),
        ],
    )


class TestScenarios:
    """End-to-end runs over small, fully known schools."""

    def test_single_class_fully_allocated(self, snapshot):
        result = generate_schedule(snapshot, seed=1)

        assert result.status == RunStatus.COMPLETED
        assert len(result.sessions) == 2
        assert result.conflicts == []
        assert result.statistics.satisfaction_rate == 100
        assert result.is_fully_allocated
        assert result.message == "Generation completed: 2 sessions allocated"

    def test_first_fit_takes_earliest_slots(self, snapshot):
        result = generate_schedule(snapshot, seed=1)
        assert sorted(s.time_slot_id for s in result.sessions) == ["d1-0", "d1-1"]
        assert {s.classroom_id for s in result.sessions} == {"r1"}

    def test_teacher_unavailable_all_week(self, snapshot_factory, all_week_restrictions):
        data = snapshot_factory(teacher_restrictions=all_week_restrictions)
        result = generate_schedule(data, seed=1)

        assert result.status == RunStatus.COMPLETED
        assert result.sessions == []
        assert len(result.conflicts) == 2
        assert {c.type for c in result.conflicts} == {ConflictType.UNASSIGNED_CLASS}
        assert {c.severity for c in result.conflicts} == {Severity.HIGH}
        assert result.statistics.satisfaction_rate == 0
        assert "teacher_restricted=25" in result.conflicts[0].description

    def test_rangeless_time_restrictions_block_nothing(self, snapshot_factory):
        restrictions = [
            TeacherRestriction(id=f"rst{day}", teacher_id="t1", type="unavailable_time", day_of_week=day)
            for day in range(1, 6)
        ]
        result = generate_schedule(snapshot_factory(teacher_restrictions=restrictions), seed=1)

        assert len(result.sessions) == 2
        assert result.conflicts == []

    def test_restrictions_ignored_when_not_enforced(self, snapshot_factory, all_week_restrictions):
        data = snapshot_factory(teacher_restrictions=all_week_restrictions)
        settings = ScheduleGenerationSettings(enforce_teacher_availability=False)

        result = generate_schedule(data, settings, seed=1)
        assert len(result.sessions) == 2

    def test_teacher_oversubscribed(self, snapshot_factory):
        data = snapshot_factory(
            classes=[
                SchoolClass(id="c1", name="6A", students_count=25),
                SchoolClass(id="c2", name="6B", students_count=25),
            ],
            classrooms=[
                Classroom(id="r1", name="Room 101", capacity=30),
                Classroom(id="r2", name="Room 102", capacity=30),
            ],
            session_requirements=[
                SessionRequirement(id="q1", class_id="c1", subject_id="mat", teacher_id="t1", weekly_classes=15),
                SessionRequirement(id="q2", class_id="c2", subject_id="mat", teacher_id="t1", weekly_classes=15),
            ],
        )
        result = generate_schedule(data, seed=3)

        assert result.status == RunStatus.COMPLETED
        assert len(result.sessions) == 25
        assert len(result.conflicts) == 5
        assert result.statistics.satisfaction_rate == 83
        assert_complete(result)
        assert "Generation completed with conflicts" in result.message

    def test_class_larger_than_every_room(self, snapshot_factory):
        data = snapshot_factory(
            classes=[SchoolClass(id="c1", name="6A", students_count=35)],
        )
        result = generate_schedule(data, seed=1)

        assert result.sessions == []
        assert len(result.conflicts) == 2
        assert result.statistics.satisfaction_rate == 0
        assert "no_room=25" in result.conflicts[0].description

    def test_capacity_not_enforced(self, snapshot_factory):
        data = snapshot_factory(classes=[SchoolClass(id="c1", name="6A", students_count=35)])
        settings = ScheduleGenerationSettings(enforce_room_capacity=False)

        result = generate_schedule(data, settings, seed=1)
        assert len(result.sessions) == 2

    def test_afternoon_class_skips_morning_slots(self, snapshot_factory):
        slots = make_slots(days=1) + [
            s.model_copy(update={"id": f"pm-{s.order}"})
            for s in make_slots(days=1, shift=Shift.AFTERNOON, start=780)
        ]
        data = snapshot_factory(
            classes=[SchoolClass(id="c1", name="6A", shift=Shift.AFTERNOON, students_count=30)],
            time_slots=slots,
        )
        result = generate_schedule(data, seed=1)
        assert sorted(s.time_slot_id for s in result.sessions) == ["pm-0", "pm-1"]


class TestInvariants:
    """Properties every generated schedule must satisfy."""

    @pytest.mark.parametrize("seed", [1, 7, 42, 2024])
    def test_no_hard_constraint_violations(self, busy_school, seed):
        result = generate_schedule(busy_school, seed=seed)

        assert result.status == RunStatus.COMPLETED
        assert detect_conflicts(result.sessions, busy_school) == []
        assert_complete(result)

    def test_session_day_matches_slot(self, busy_school):
        result = generate_schedule(busy_school, seed=5)
        for session in result.sessions:
            assert session.day_of_week == busy_school.get_time_slot(session.time_slot_id).day_of_week

    def test_special_room_preferred(self, busy_school):
        result = generate_schedule(busy_school, seed=5)
        science = [s for s in result.sessions if s.subject_id == "sci"]
        assert science
        assert all(s.classroom_id == "lab" for s in science)
        assert result.statistics.special_room_fallbacks == 0

    def test_same_seed_same_result(self, busy_school):
        first = generate_schedule(busy_school, seed=99)
        second = generate_schedule(busy_school, seed=99)

        assert first.sessions == second.sessions
        assert [(c.id, c.description) for c in first.conflicts] == [
            (c.id, c.description) for c in second.conflicts
        ]
        assert first.id != second.id

    def test_generate_holds_no_state(self, snapshot):
        engine = AllocationEngine()
        first = engine.generate(snapshot, seed=1)
        second = engine.generate(snapshot, seed=1)
        assert len(first.sessions) == len(second.sessions) == 2


class TestSpecialRoomFallback:
    """Tests for the permissive special room policy."""

    def test_falls_back_to_regular_room(self, snapshot_factory, caplog):
        data = snapshot_factory(
            subjects=[Subject(id="mat", name="Chemistry", weekly_hours=2,
                              requires_special_room=True, special_room_type=RoomType.LABORATORY)],
        )
        caplog.set_level(logging.INFO, logger="schedule_engine.engine")

        result = generate_schedule(data, seed=1)

        assert len(result.sessions) == 2
        assert all(s.special_room_fallback for s in result.sessions)
        assert result.statistics.special_room_fallbacks == 2
        assert "No free laboratory" in caplog.text


class TestFailures:
    """Tests for configuration failures and error isolation."""

    @pytest.mark.parametrize("overrides,message", [
        ({"classes": []}, "No classes found"),
        ({"time_slots": []}, "No time slots configured"),
        ({"teachers": [Teacher(id="t1", name="Ana", role=UserRole.VIEWER)]}, "No teachers found"),
        ({"classrooms": []}, "No classrooms found"),
        ({"session_requirements": []}, "No sessions to schedule"),
    ])
    def test_prerequisites(self, snapshot_factory, overrides, message):
        result = generate_schedule(snapshot_factory(**overrides))

        assert result.status == RunStatus.FAILED
        assert message in result.message
        assert result.sessions == []
        assert not result.is_success

    def test_break_only_grid_fails(self, snapshot_factory):
        slots = [s.model_copy(update={"is_break": True}) for s in make_slots(days=1)]
        with pytest.raises(ConfigurationError, match="No time slots"):
            check_prerequisites(snapshot_factory(time_slots=slots))

    def test_selector_error_becomes_conflict(self, snapshot_factory):
        data = snapshot_factory(session_requirements=[
            SessionRequirement(id="q1", class_id="c1", subject_id="mat", teacher_id="t1", weekly_classes=3),
        ])
        calls = []

        def flaky_selector(request, slot, rooms):
            calls.append(request.id)
            if len(calls) == 2:
                raise RuntimeError("scorer crashed")
            return rooms[0]

        result = AllocationEngine(room_selector=flaky_selector).generate(data, seed=1)

        assert result.status == RunStatus.COMPLETED
        assert len(result.sessions) == 2
        assert len(result.conflicts) == 1
        assert "internal error: scorer crashed" in result.conflicts[0].description
        assert_complete(result)

    def test_ineligible_room_rejected(self, snapshot_factory):
        stray = Classroom(id="rx", name="Stray", capacity=99)
        engine = AllocationEngine(room_selector=lambda request, slot, rooms: stray)

        result = engine.generate(snapshot_factory(), seed=1)
        assert result.sessions == []
        assert all("ineligible room rx" in c.description for c in result.conflicts)

    def test_invalid_progress_interval(self):
        with pytest.raises(ValueError):
            AllocationEngine(progress_interval=0)


class TestProgressAndCancellation:
    """Tests for progress reporting and cooperative cancellation."""

    def test_progress_reported(self, snapshot_factory):
        data = snapshot_factory(session_requirements=[
            SessionRequirement(id="q1", class_id="c1", subject_id="mat", teacher_id="t1", weekly_classes=10),
        ])
        updates: list[GenerationProgress] = []

        result = AllocationEngine(progress_interval=5).generate(data, seed=1, progress=updates.append)

        assert [u.processed for u in updates] == [0, 5, 10]
        assert updates[-1].percent == 100
        assert updates[-1].allocated == 10
        assert updates[1].percent == 50
        assert result.progress == 100

    def test_cancel_keeps_committed_sessions(self, snapshot_factory):
        data = snapshot_factory(session_requirements=[
            SessionRequirement(id="q1", class_id="c1", subject_id="mat", teacher_id="t1", weekly_classes=10),
        ])
        token = CancellationToken()

        def on_progress(update: GenerationProgress) -> None:
            if update.processed == 3:
                token.cancel()

        engine = AllocationEngine(progress_interval=1)
        result = engine.generate(data, seed=1, progress=on_progress, cancel_token=token)

        assert result.status == RunStatus.CANCELLED
        assert len(result.sessions) == 4
        assert result.statistics.total_schedules == 10
        assert result.statistics.satisfaction_rate == 40
        assert result.message.startswith("Generation cancelled")
        assert not result.is_success

    def test_token(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()
        token.cancel()
        assert token.is_cancelled
