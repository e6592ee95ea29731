"""Shared fixtures for schedule engine tests."""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from schedule_engine.data.models import (
    Classroom,
    GenerationInput,
    RoomType,
    SchoolClass,
    SessionRequirement,
    Shift,
    Subject,
    Teacher,
    TeacherRestriction,
    TimeSlot,
)


def make_slots(
    days: int = 5,
    per_day: int = 5,
    shift: Shift = Shift.MORNING,
    start: int = 450,
    duration: int = 50,
    academic_year: Optional[str] = "2025",
) -> list[TimeSlot]:
    """A regular weekly grid: ids like 'd1-0' (day 1, first slot)."""
    return [
        TimeSlot(
            id=f"d{day}-{order}",
            day_of_week=day,
            start_minutes=start + order * duration,
            end_minutes=start + (order + 1) * duration,
            shift=shift,
            order=order,
            academic_year=academic_year,
        )
        for day in range(1, days + 1)
        for order in range(per_day)
    ]


@pytest.fixture
def snapshot_factory() -> Callable[..., GenerationInput]:
    """
    Build a GenerationInput with one class, subject, teacher and room.

    Keyword arguments replace the matching entity lists wholesale.
    """
    def _build(**overrides) -> GenerationInput:
        data = {
            "academic_year": "2025",
            "teachers": [Teacher(id="t1", name="Ana Silva", subjects=["mat"])],
            "subjects": [Subject(id="mat", name="Mathematics", weekly_hours=2)],
            "classes": [
                SchoolClass(id="c1", name="6A", shift=Shift.MORNING, students_count=30, academic_year="2025"),
            ],
            "classrooms": [Classroom(id="r1", name="Room 101", capacity=30, type=RoomType.REGULAR)],
            "time_slots": make_slots(),
            "session_requirements": [
                SessionRequirement(id="req1", class_id="c1", subject_id="mat", teacher_id="t1", academic_year="2025"),
            ],
            "teacher_restrictions": [],
        }
        data.update(overrides)
        return GenerationInput(**data)

    return _build


@pytest.fixture
def snapshot(snapshot_factory) -> GenerationInput:
    return snapshot_factory()


@pytest.fixture
def all_week_restrictions() -> list[TeacherRestriction]:
    """Teacher t1 unavailable on every weekday."""
    return [
        TeacherRestriction(id=f"rst{day}", teacher_id="t1", type="unavailable_day", day_of_week=day)
        for day in range(1, 6)
    ]
