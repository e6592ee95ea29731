"""Tests for run statistics."""

from __future__ import annotations

import pytest

from schedule_engine.data.models import ScheduledSession, Teacher, TimeSlot
from schedule_engine.output.statistics import (
    ScheduleStatistics,
    calculate_satisfaction_rate,
    calculate_statistics,
    count_teacher_gaps,
    estimate_teacher_gaps,
    round_half_up,
)


def session_in(slot_id: str, day: int = 1, teacher_id: str = "t1", fallback: bool = False) -> ScheduledSession:
    return ScheduledSession(
        id=f"session-{teacher_id}-{slot_id}",
        request_id=f"{teacher_id}-{slot_id}",
        class_id="c1",
        subject_id="mat",
        teacher_id=teacher_id,
        time_slot_id=slot_id,
        classroom_id="r1",
        day_of_week=day,
        special_room_fallback=fallback,
    )


class TestRates:
    """Tests for rounding and satisfaction rate."""

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_satisfaction_rate(self):
        assert calculate_satisfaction_rate(2, 2) == 100
        assert calculate_satisfaction_rate(0, 2) == 0
        assert calculate_satisfaction_rate(1, 8) == 13
        assert calculate_satisfaction_rate(5, 6) == 83

    def test_zero_demand(self):
        assert calculate_satisfaction_rate(0, 0) == 0

    def test_gap_estimate(self):
        assert estimate_teacher_gaps(0) == 0
        assert estimate_teacher_gaps(19) == 0
        assert estimate_teacher_gaps(20) == 1
        assert estimate_teacher_gaps(250) == 12


class TestTeacherGaps:
    """Tests for the exact gap count."""

    def test_no_gaps_when_contiguous(self, snapshot):
        sessions = [session_in("d1-0"), session_in("d1-1"), session_in("d1-2")]
        assert count_teacher_gaps(sessions, snapshot) == 0

    def test_gaps_between_first_and_last(self, snapshot):
        sessions = [session_in("d1-0"), session_in("d1-1"), session_in("d1-4")]
        assert count_teacher_gaps(sessions, snapshot) == 2

    def test_days_and_teachers_counted_separately(self, snapshot):
        sessions = [
            session_in("d1-0"), session_in("d1-2"),
            session_in("d2-0", day=2), session_in("d2-4", day=2),
            session_in("d1-1", teacher_id="t2"), session_in("d1-3", teacher_id="t2"),
        ]
        assert count_teacher_gaps(sessions, snapshot) == 1 + 3 + 1

    def test_breaks_are_not_gaps(self, snapshot_factory):
        slots = [
            TimeSlot(id="p1", day_of_week=1, start_minutes=450, end_minutes=500, order=0),
            TimeSlot(id="brk", day_of_week=1, start_minutes=500, end_minutes=520, order=1, is_break=True),
            TimeSlot(id="p2", day_of_week=1, start_minutes=520, end_minutes=570, order=2),
        ]
        data = snapshot_factory(time_slots=slots)
        assert count_teacher_gaps([session_in("p1"), session_in("p2")], data) == 0


class TestCalculateStatistics:
    """Tests for calculate_statistics."""

    def test_aggregates(self, snapshot_factory):
        data = snapshot_factory(teachers=[Teacher(id="t1", name="Ana"), Teacher(id="t2", name="Bruno")])
        sessions = [session_in("d1-0"), session_in("d1-2", fallback=True), session_in("d1-1", teacher_id="t2")]

        stats = calculate_statistics(4, sessions, [object()], data)

        assert stats.total_schedules == 4
        assert stats.successful_allocations == 3
        assert stats.conflicts == 1
        assert stats.satisfaction_rate == 75
        assert stats.average_workload == 1.5
        assert stats.teacher_gaps == 1
        assert stats.teacher_gaps_estimate == 0
        assert stats.special_room_fallbacks == 1

    def test_average_workload_not_rounded(self, snapshot_factory):
        data = snapshot_factory(teachers=[Teacher(id=f"t{i}", name=f"T{i}") for i in range(1, 4)])

        stats = calculate_statistics(1, [session_in("d1-0")], [], data)

        assert stats.average_workload == 1 / 3

    def test_to_dict_uses_camel_case(self):
        payload = ScheduleStatistics(total_schedules=2, successful_allocations=2, satisfaction_rate=100).to_dict()
        assert payload["totalSchedules"] == 2
        assert payload["satisfactionRate"] == 100
        assert "teacherGapsEstimate" in payload
