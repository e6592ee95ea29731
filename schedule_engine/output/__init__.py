"""Conflict reporting, statistics and the JSON output schema."""

from .conflicts import ConflictReporter, detect_conflicts
from .statistics import (
    GAP_ESTIMATE_FACTOR,
    ScheduleStatistics,
    calculate_satisfaction_rate,
    calculate_statistics,
    count_teacher_gaps,
    estimate_teacher_gaps,
)
from .schema import (
    OutputStatus,
    SessionOutput,
    ConflictOutput,
    StatisticsOutput,
    DaySchedule,
    EntitySchedule,
    ScheduleViews,
    GenerationOutput,
    create_generation_output,
    create_views,
    result_to_json,
    load_generation_output,
)

__all__ = [
    # Conflicts
    "ConflictReporter",
    "detect_conflicts",
    # Statistics
    "GAP_ESTIMATE_FACTOR",
    "ScheduleStatistics",
    "calculate_satisfaction_rate",
    "calculate_statistics",
    "count_teacher_gaps",
    "estimate_teacher_gaps",
    # Schema models
    "OutputStatus",
    "SessionOutput",
    "ConflictOutput",
    "StatisticsOutput",
    "DaySchedule",
    "EntitySchedule",
    "ScheduleViews",
    "GenerationOutput",
    # Schema conversion functions
    "create_generation_output",
    "create_views",
    "result_to_json",
    "load_generation_output",
]
