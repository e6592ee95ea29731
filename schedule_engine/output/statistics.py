"""
Run statistics computed from the final sessions and conflicts.

The teacher gap figure comes in two flavours: the cheap fixed-multiplier
estimate the dashboard has always shown, and an exact count of idle slots
between a teacher's first and last session of each day.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from schedule_engine.data.models import GenerationInput, ScheduleConflict, ScheduledSession


# =============================================================================
# Constants
# =============================================================================

# Placeholder ratio of gaps per allocated session. Not a measurement.
GAP_ESTIMATE_FACTOR = 0.05


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class ScheduleStatistics:
    """Summary figures for one generation run."""
    total_schedules: int = 0
    successful_allocations: int = 0
    conflicts: int = 0
    satisfaction_rate: int = 0
    average_workload: float = 0.0
    teacher_gaps: int = 0
    teacher_gaps_estimate: int = 0
    special_room_fallbacks: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "totalSchedules": self.total_schedules,
            "successfulAllocations": self.successful_allocations,
            "conflicts": self.conflicts,
            "satisfactionRate": self.satisfaction_rate,
            "averageWorkload": self.average_workload,
            "teacherGaps": self.teacher_gaps,
            "teacherGapsEstimate": self.teacher_gaps_estimate,
            "specialRoomFallbacks": self.special_room_fallbacks,
        }


# =============================================================================
# Metric Functions
# =============================================================================

def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def calculate_satisfaction_rate(successful: int, total: int) -> int:
    """Percentage of demand allocated, rounded; 0 when there is no demand."""
    if total <= 0:
        return 0
    return round_half_up(successful / total * 100)


def estimate_teacher_gaps(successful: int) -> int:
    """Fixed-multiplier gap estimate. A placeholder, not an accurate metric."""
    return math.floor(successful * GAP_ESTIMATE_FACTOR)


def count_teacher_gaps(
    sessions: Iterable[ScheduledSession],
    data: GenerationInput,
) -> int:
    """
    Count idle slots inside each teacher's working day.

    For every teacher and day, positions are taken from the day's schedulable
    slots in order; each free position between the first and last occupied
    one is a gap.

    Example:
        Slots 1-5 on Monday, teacher busy in 1, 2 and 5 -> 2 gaps (3 and 4)
    """
    positions: dict[int, dict[str, int]] = {}
    for slot in data.get_schedulable_slots():
        day_positions = positions.setdefault(slot.day_of_week, {})
        day_positions[slot.id] = len(day_positions)

    occupied: dict[tuple[str, int], set[int]] = defaultdict(set)
    for session in sessions:
        day_positions = positions.get(session.day_of_week, {})
        if session.time_slot_id in day_positions:
            occupied[(session.teacher_id, session.day_of_week)].add(day_positions[session.time_slot_id])

    gaps = 0
    for taken in occupied.values():
        span = max(taken) - min(taken) + 1
        gaps += span - len(taken)

    return gaps


def calculate_statistics(
    total_demand: int,
    sessions: list[ScheduledSession],
    conflicts: list[ScheduleConflict],
    data: GenerationInput,
) -> ScheduleStatistics:
    """
    Aggregate run statistics.

    Args:
        total_demand: Number of expanded session requests
        sessions: Committed sessions
        conflicts: Conflicts raised during the run
        data: The snapshot the run used

    Returns:
        ScheduleStatistics
    """
    successful = len(sessions)
    active_teachers = len(data.get_instructional_teachers())

    return ScheduleStatistics(
        total_schedules=total_demand,
        successful_allocations=successful,
        conflicts=len(conflicts),
        satisfaction_rate=calculate_satisfaction_rate(successful, total_demand),
        average_workload=successful / max(active_teachers, 1),
        teacher_gaps=count_teacher_gaps(sessions, data),
        teacher_gaps_estimate=estimate_teacher_gaps(successful),
        special_room_fallbacks=sum(1 for s in sessions if s.special_room_fallback),
    )
