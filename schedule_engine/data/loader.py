"""Load and validate generation snapshots from JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..errors import ScheduleEngineError
from .models import GenerationInput, load_generation_input_from_json


class DataValidationError(ScheduleEngineError):
    """Raised when snapshot data fails validation."""
    pass


def load_school_data(path: Union[str, Path]) -> GenerationInput:
    """
    Load a generation snapshot from a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Validated GenerationInput

    Raises:
        FileNotFoundError: If the file doesn't exist
        DataValidationError: If the file isn't valid JSON or fails validation
    """
    path = Path(path)

    try:
        return load_generation_input_from_json(path)
    except json.JSONDecodeError as e:
        raise DataValidationError(f"Invalid JSON in {path}: {e}") from e
    except ValidationError as e:
        raise DataValidationError(str(e)) from e


def validate_school_data(data: GenerationInput) -> list[str]:
    """
    Check a snapshot for problems that will cost demand or cause conflicts.

    Nothing here is fatal: the engine tolerates all of it, but every warning
    is a likely source of unassigned sessions.

    Returns:
        List of human-readable warnings (empty when the data looks consistent)
    """
    warnings = data.find_reference_warnings()

    schedulable_slots = data.get_schedulable_slots()
    classes = data.get_scoped_classes()

    if not classes:
        warnings.append("No classes in the active academic year")
    if not schedulable_slots:
        warnings.append("No schedulable time slots in the active academic year")
    if not data.get_instructional_teachers():
        warnings.append("No teachers with the instructional role")
    if not data.classrooms:
        warnings.append("No classrooms")

    # Teacher load against the whole weekly grid
    teacher_load: dict[str, int] = {}
    for req in data.get_scoped_requirements():
        if req.teacher_id is None:
            continue
        count = req.resolve_weekly_count(data.get_subject(req.subject_id))
        teacher_load[req.teacher_id] = teacher_load.get(req.teacher_id, 0) + count

    for teacher_id, load in teacher_load.items():
        if load > len(schedulable_slots):
            teacher = data.get_teacher(teacher_id)
            name = teacher.name if teacher else teacher_id
            warnings.append(
                f"Teacher '{name}' has {load} sessions but only "
                f"{len(schedulable_slots)} time slots exist"
            )

    # Classes no room can hold
    largest_room = max((r.capacity for r in data.classrooms), default=0)
    for cls in classes:
        if data.classrooms and cls.students_count > largest_room:
            warnings.append(
                f"Class '{cls.name}' has {cls.students_count} students but the "
                f"largest classroom holds {largest_room}"
            )

    total_sessions = data.total_sessions_per_week
    total_room_slots = len(schedulable_slots) * len(data.classrooms)
    if total_sessions > total_room_slots:
        warnings.append(
            f"Total sessions ({total_sessions}) exceeds available room-slots ({total_room_slots})"
        )

    return warnings
