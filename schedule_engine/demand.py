"""
Demand expansion.

Turns each class's session requirements into one SessionRequest per weekly
occurrence. The expanded list is shuffled so that classes and subjects
declared first do not systematically get the best slots.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Optional

from .data.models import GenerationInput, RoomType, Shift
from .errors import EmptyDemandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionRequest:
    """One unit of demand: a single weekly occurrence of a class-subject-teacher tuple."""
    id: str
    requirement_id: str
    class_id: str
    subject_id: str
    teacher_id: str
    ordinal: int  # 0-based index within the weekly count

    # Resolved at expansion time so the allocation loop needs no lookups
    class_shift: Shift
    students_count: int
    requires_special_room: bool = False
    special_room_type: Optional[RoomType] = None
    priority: int = 1

    # Names for traceability in conflict descriptions
    class_name: str = ""
    subject_name: str = ""
    teacher_name: str = ""

    def __str__(self) -> str:
        return f"{self.subject_name or self.subject_id} - {self.class_name or self.class_id} ({self.teacher_name or self.teacher_id})"


def expand_demand(
    data: GenerationInput,
    rng: Optional[random.Random] = None,
) -> list[SessionRequest]:
    """
    Expand session requirements into shuffled session requests.

    Requirements whose subject or teacher cannot be resolved are skipped with
    a warning. Only instructional teachers count.

    Args:
        data: Generation snapshot
        rng: Random source for the shuffle (a fresh unseeded one if None)

    Returns:
        Uniformly shuffled list of SessionRequest

    Raises:
        EmptyDemandError: If no session request remains
    """
    rng = rng or random.Random()
    requests: list[SessionRequest] = []
    # Numbering per class+subject keeps ids unique when a pair has several requirements
    sequence: dict[tuple[str, str], int] = {}

    for school_class in data.get_scoped_classes():
        requirements = data.get_class_requirements(school_class.id)

        if not requirements:
            logger.warning("Class %s has no session requirements", school_class.name)
            continue

        for req in requirements:
            subject = data.get_subject(req.subject_id)
            teacher = data.get_instructional_teacher(req.teacher_id)

            if subject is None:
                logger.warning("Requirement %s: subject %s not found, skipping", req.id, req.subject_id)
                continue

            if teacher is None:
                logger.warning("Requirement %s: teacher %s not found, skipping", req.id, req.teacher_id)
                continue

            for ordinal in range(req.resolve_weekly_count(subject)):
                key = (school_class.id, subject.id)
                number = sequence.get(key, 0)
                sequence[key] = number + 1

                requests.append(SessionRequest(
                    id=f"{school_class.id}-{subject.id}-{number}",
                    requirement_id=req.id,
                    class_id=school_class.id,
                    subject_id=subject.id,
                    teacher_id=teacher.id,
                    ordinal=ordinal,
                    class_shift=school_class.shift,
                    students_count=school_class.students_count,
                    requires_special_room=subject.requires_special_room,
                    special_room_type=subject.special_room_type,
                    priority=req.priority,
                    class_name=school_class.name,
                    subject_name=subject.name,
                    teacher_name=teacher.name,
                ))

    if not requests:
        raise EmptyDemandError(
            "No sessions to schedule. Check that classes have subjects with assigned teachers."
        )

    rng.shuffle(requests)
    logger.info("Expanded %d session requests", len(requests))

    return requests
