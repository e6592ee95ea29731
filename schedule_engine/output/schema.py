"""
Output schema for generated schedules.

This module defines the JSON-serializable output format for a generation run,
including pre-computed views for convenient access by different dimensions.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field

from schedule_engine.data.models import (
    AffectedEntities,
    ConflictType,
    GeneratedBy,
    ScheduleConflict,
    ScheduledSession,
    SessionStatus,
    Severity,
    day_name,
    minutes_to_time,
)

if TYPE_CHECKING:
    from schedule_engine.data.models import GenerationInput
    from schedule_engine.engine import GenerationResult
    from schedule_engine.output.statistics import ScheduleStatistics


# =============================================================================
# Enums
# =============================================================================

class OutputStatus(str, Enum):
    """Run status for output."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# =============================================================================
# Session Output
# =============================================================================

class SessionOutput(BaseModel):
    """A single scheduled session in the output."""
    id: str
    request_id: str = Field(alias="requestId")
    class_id: str = Field(alias="classId")
    subject_id: str = Field(alias="subjectId")
    teacher_id: str = Field(alias="teacherId")
    time_slot_id: str = Field(alias="timeSlotId")
    classroom_id: str = Field(alias="classroomId")
    day_of_week: int = Field(alias="dayOfWeek")
    academic_year: Optional[str] = Field(default=None, alias="academicYear")
    status: SessionStatus = SessionStatus.ACTIVE
    generated_by: GeneratedBy = Field(default=GeneratedBy.AUTOMATIC, alias="generatedBy")
    priority: int = 1
    special_room_fallback: bool = Field(default=False, alias="specialRoomFallback")

    # Optional enriched data
    start_time: Optional[str] = Field(default=None, alias="startTime")  # 'HH:MM'
    end_time: Optional[str] = Field(default=None, alias="endTime")  # 'HH:MM'
    slot_order: int = Field(default=0, alias="slotOrder")
    class_name: Optional[str] = Field(default=None, alias="className")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")
    teacher_name: Optional[str] = Field(default=None, alias="teacherName")
    classroom_name: Optional[str] = Field(default=None, alias="classroomName")
    time_slot_label: Optional[str] = Field(default=None, alias="timeSlotLabel")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_session(
        cls,
        session: ScheduledSession,
        data: Optional[GenerationInput] = None,
    ) -> SessionOutput:
        """Create from a ScheduledSession, enriched with names when data is given."""
        output = cls(
            id=session.id,
            requestId=session.request_id,
            classId=session.class_id,
            subjectId=session.subject_id,
            teacherId=session.teacher_id,
            timeSlotId=session.time_slot_id,
            classroomId=session.classroom_id,
            dayOfWeek=session.day_of_week,
            academicYear=session.academic_year,
            status=session.status,
            generatedBy=session.generated_by,
            priority=session.priority,
            specialRoomFallback=session.special_room_fallback,
        )

        if data is None:
            return output

        slot = data.get_time_slot(session.time_slot_id)
        school_class = data.get_class(session.class_id)
        subject = data.get_subject(session.subject_id)
        teacher = data.get_teacher(session.teacher_id)
        room = data.get_classroom(session.classroom_id)

        return output.model_copy(update={
            "start_time": minutes_to_time(slot.start_minutes) if slot else None,
            "end_time": minutes_to_time(slot.end_minutes) if slot else None,
            "slot_order": slot.order if slot else 0,
            "time_slot_label": slot.label if slot else None,
            "class_name": school_class.name if school_class else None,
            "subject_name": subject.name if subject else None,
            "teacher_name": teacher.name if teacher else None,
            "classroom_name": room.name if room else None,
        })

    def to_session(self) -> ScheduledSession:
        """Back to the domain model, e.g. to audit a saved schedule."""
        return ScheduledSession(
            id=self.id,
            request_id=self.request_id,
            class_id=self.class_id,
            subject_id=self.subject_id,
            teacher_id=self.teacher_id,
            time_slot_id=self.time_slot_id,
            classroom_id=self.classroom_id,
            day_of_week=self.day_of_week,
            academic_year=self.academic_year,
            status=self.status,
            generated_by=self.generated_by,
            priority=self.priority,
            special_room_fallback=self.special_room_fallback,
        )


# =============================================================================
# Conflict Output
# =============================================================================

class AffectedEntitiesOutput(BaseModel):
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds")
    class_ids: list[str] = Field(default_factory=list, alias="classIds")
    classroom_ids: list[str] = Field(default_factory=list, alias="classroomIds")
    subject_ids: list[str] = Field(default_factory=list, alias="subjectIds")

    model_config = {"populate_by_name": True}


class ConflictOutput(BaseModel):
    """A conflict in the output."""
    id: str
    type: ConflictType
    description: str
    severity: Severity
    affected_entities: AffectedEntitiesOutput = Field(
        default_factory=AffectedEntitiesOutput,
        alias="affectedEntities",
    )
    schedule_ids: list[str] = Field(default_factory=list, alias="scheduleIds")
    resolved: bool = False
    resolution_notes: Optional[str] = Field(default=None, alias="resolutionNotes")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    resolved_at: Optional[datetime] = Field(default=None, alias="resolvedAt")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_conflict(cls, conflict: ScheduleConflict) -> ConflictOutput:
        entities = conflict.affected_entities
        return cls(
            id=conflict.id,
            type=conflict.type,
            description=conflict.description,
            severity=conflict.severity,
            affectedEntities=AffectedEntitiesOutput(
                teacherIds=entities.teacher_ids,
                classIds=entities.class_ids,
                classroomIds=entities.classroom_ids,
                subjectIds=entities.subject_ids,
            ),
            scheduleIds=conflict.schedule_ids,
            resolved=conflict.resolved,
            resolutionNotes=conflict.resolution_notes,
            createdAt=conflict.created_at,
            resolvedAt=conflict.resolved_at,
        )

    def to_conflict(self) -> ScheduleConflict:
        entities = self.affected_entities
        return ScheduleConflict(
            id=self.id,
            type=self.type,
            description=self.description,
            severity=self.severity,
            affected_entities=AffectedEntities(
                teacher_ids=entities.teacher_ids,
                class_ids=entities.class_ids,
                classroom_ids=entities.classroom_ids,
                subject_ids=entities.subject_ids,
            ),
            schedule_ids=self.schedule_ids,
            resolved=self.resolved,
            resolution_notes=self.resolution_notes,
            created_at=self.created_at or datetime.now(),
            resolved_at=self.resolved_at,
        )


# =============================================================================
# Statistics
# =============================================================================

class StatisticsOutput(BaseModel):
    """Summary figures for the run."""
    total_schedules: int = Field(default=0, alias="totalSchedules")
    successful_allocations: int = Field(default=0, alias="successfulAllocations")
    conflicts: int = 0
    satisfaction_rate: int = Field(default=0, alias="satisfactionRate")
    average_workload: float = Field(default=0.0, alias="averageWorkload")
    teacher_gaps: int = Field(default=0, alias="teacherGaps")
    teacher_gaps_estimate: int = Field(default=0, alias="teacherGapsEstimate")
    special_room_fallbacks: int = Field(default=0, alias="specialRoomFallbacks")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_statistics(cls, stats: ScheduleStatistics) -> StatisticsOutput:
        return cls.model_validate(stats.to_dict())


# =============================================================================
# Views
# =============================================================================

class DaySchedule(BaseModel):
    """Schedule for a single day."""
    day: int
    day_name: str = Field(alias="dayName")
    sessions: list[SessionOutput]

    model_config = {"populate_by_name": True}


class EntitySchedule(BaseModel):
    """Schedule for an entity (teacher, class, or room)."""
    id: str
    name: str
    sessions: list[SessionOutput]
    by_day: dict[int, list[SessionOutput]] = Field(
        default_factory=dict,
        alias="byDay"
    )

    model_config = {"populate_by_name": True}


class ScheduleViews(BaseModel):
    """Pre-computed views of the schedule for convenience."""
    by_teacher: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byTeacher"
    )
    by_class: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byClass"
    )
    by_room: dict[str, EntitySchedule] = Field(
        default_factory=dict,
        alias="byRoom"
    )
    by_day: dict[int, DaySchedule] = Field(
        default_factory=dict,
        alias="byDay"
    )

    model_config = {"populate_by_name": True}


# =============================================================================
# Complete Output
# =============================================================================

class GenerationOutput(BaseModel):
    """Complete output for a generation run."""
    id: str
    status: OutputStatus
    progress: int = 0
    message: str = ""
    academic_year: Optional[str] = Field(default=None, alias="academicYear")
    seed: Optional[int] = None
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    solve_time_ms: int = Field(default=0, alias="solveTimeMs")
    settings: dict[str, Any] = Field(default_factory=dict)
    statistics: StatisticsOutput = Field(default_factory=StatisticsOutput)
    sessions: list[SessionOutput] = Field(default_factory=list)
    conflicts: list[ConflictOutput] = Field(default_factory=list)
    views: ScheduleViews = Field(default_factory=ScheduleViews)

    model_config = {"populate_by_name": True}

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(by_alias=True)

    def to_sessions(self) -> list[ScheduledSession]:
        return [s.to_session() for s in self.sessions]

    def to_conflicts(self) -> list[ScheduleConflict]:
        return [c.to_conflict() for c in self.conflicts]


# =============================================================================
# Conversion Functions
# =============================================================================

def create_generation_output(
    result: GenerationResult,
    data: Optional[GenerationInput] = None,
) -> GenerationOutput:
    """
    Create a GenerationOutput from a GenerationResult.

    Args:
        result: The engine result
        data: Snapshot the run used; enables names and times in the output

    Returns:
        GenerationOutput with all views populated
    """
    sessions = [SessionOutput.from_session(s, data) for s in result.sessions]

    return GenerationOutput(
        id=result.id,
        status=OutputStatus(result.status.value),
        progress=result.progress,
        message=result.message,
        academicYear=result.academic_year,
        seed=result.seed,
        startedAt=result.started_at,
        completedAt=result.completed_at,
        solveTimeMs=result.solve_time_ms,
        settings=result.settings.model_dump(mode="json"),
        statistics=StatisticsOutput.from_statistics(result.statistics),
        sessions=sessions,
        conflicts=[ConflictOutput.from_conflict(c) for c in result.conflicts],
        views=create_views(sessions),
    )


def _sort_key(session: SessionOutput) -> tuple:
    return (session.day_of_week, session.slot_order, session.start_time or "", session.id)


def create_views(sessions: list[SessionOutput]) -> ScheduleViews:
    """Create pre-computed views from sessions."""
    by_teacher: dict[str, list[SessionOutput]] = {}
    by_class: dict[str, list[SessionOutput]] = {}
    by_room: dict[str, list[SessionOutput]] = {}
    by_day: dict[int, list[SessionOutput]] = {}

    for session in sorted(sessions, key=_sort_key):
        by_teacher.setdefault(session.teacher_id, []).append(session)
        by_class.setdefault(session.class_id, []).append(session)
        by_room.setdefault(session.classroom_id, []).append(session)
        by_day.setdefault(session.day_of_week, []).append(session)

    def entity_schedules(groups: dict[str, list[SessionOutput]], name_attr: str) -> dict[str, EntitySchedule]:
        return {
            entity_id: EntitySchedule(
                id=entity_id,
                name=getattr(entity_sessions[0], name_attr) or entity_id,
                sessions=entity_sessions,
                byDay=_group_by_day(entity_sessions),
            )
            for entity_id, entity_sessions in groups.items()
        }

    return ScheduleViews(
        byTeacher=entity_schedules(by_teacher, "teacher_name"),
        byClass=entity_schedules(by_class, "class_name"),
        byRoom=entity_schedules(by_room, "classroom_name"),
        byDay={
            day: DaySchedule(day=day, dayName=day_name(day), sessions=day_sessions)
            for day, day_sessions in sorted(by_day.items())
        },
    )


def _group_by_day(sessions: list[SessionOutput]) -> dict[int, list[SessionOutput]]:
    """Group sessions by day."""
    by_day: dict[int, list[SessionOutput]] = {}
    for session in sessions:
        by_day.setdefault(session.day_of_week, []).append(session)
    return by_day


# =============================================================================
# Convenience Functions
# =============================================================================

def result_to_json(
    result: GenerationResult,
    data: Optional[GenerationInput] = None,
    indent: int = 2,
) -> str:
    """Convert a GenerationResult directly to a JSON string."""
    return create_generation_output(result, data).to_json(indent=indent)


def load_generation_output(path: str | Path) -> GenerationOutput:
    """Load a GenerationOutput previously written with to_json()."""
    with open(path, encoding="utf-8") as f:
        return GenerationOutput.model_validate_json(f.read())
