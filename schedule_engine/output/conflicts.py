"""
Conflict reporting.

ConflictReporter collects the unassigned sessions of one generation run.
detect_conflicts audits any set of sessions (generated or hand-edited)
against the hard constraints and reports every violation it finds.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from schedule_engine.constraints.availability import find_blocking_restriction
from schedule_engine.data.models import (
    AffectedEntities,
    ConflictType,
    ScheduleConflict,
    Severity,
)

if TYPE_CHECKING:
    from schedule_engine.data.models import GenerationInput, ScheduledSession
    from schedule_engine.demand import SessionRequest
    from schedule_engine.settings import ScheduleGenerationSettings


UNASSIGNED_HINT = (
    "Possible causes: no compatible time slots, not enough rooms "
    "or teacher restrictions."
)


# =============================================================================
# Conflict Reporter
# =============================================================================

class ConflictReporter:
    """
    Accumulates the conflicts raised during one generation run.

    Conflict ids are derived from the request id, so two runs with the same
    seed report identical conflicts.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self.conflicts: list[ScheduleConflict] = []

    def report_unassigned(
        self,
        request: SessionRequest,
        rejections: Optional[Counter] = None,
        error: Optional[BaseException] = None,
    ) -> ScheduleConflict:
        """
        Record a session request that could not be placed.

        Args:
            request: The request that exhausted every candidate
            rejections: Per-reason counts of the candidates ruled out
            error: Unexpected exception raised while placing, if any

        Returns:
            The recorded conflict
        """
        description = (
            f'Could not place "{request.subject_name or request.subject_id}" for class '
            f'"{request.class_name or request.class_id}" with teacher '
            f'"{request.teacher_name or request.teacher_id}" (session {request.id}).'
        )

        if error is not None:
            description += f" Placement failed with an internal error: {error}."
        else:
            description += f" {UNASSIGNED_HINT}"
            if rejections:
                breakdown = ", ".join(
                    f"{getattr(reason, 'value', reason)}={count}"
                    for reason, count in sorted(rejections.items(), key=lambda item: (-item[1], str(item[0])))
                )
                description += f" Rejected candidates: {breakdown}."

        conflict = ScheduleConflict(
            id=f"conflict-{request.id}",
            type=ConflictType.UNASSIGNED_CLASS,
            description=description,
            severity=Severity.HIGH,
            affected_entities=AffectedEntities(
                teacher_ids=[request.teacher_id],
                class_ids=[request.class_id],
                subject_ids=[request.subject_id],
            ),
            created_at=self._clock(),
        )
        self.conflicts.append(conflict)
        return conflict

    def count_by_severity(self) -> dict[Severity, int]:
        counts = {severity: 0 for severity in Severity}
        for conflict in self.conflicts:
            counts[conflict.severity] += 1
        return counts

    def __len__(self) -> int:
        return len(self.conflicts)

    def __iter__(self) -> Iterator[ScheduleConflict]:
        return iter(self.conflicts)


# =============================================================================
# Conflict Detection
# =============================================================================

def detect_conflicts(
    sessions: list[ScheduledSession],
    data: GenerationInput,
    settings: Optional[ScheduleGenerationSettings] = None,
) -> list[ScheduleConflict]:
    """
    Audit a set of sessions against the hard constraints.

    Checks double booking of teachers, classes and classrooms, room capacity,
    special room types (only when a matching room was free in that slot),
    active teacher restrictions and, when settings are given, the daily
    session limit per teacher.

    Args:
        sessions: Sessions to audit
        data: Snapshot the sessions refer to
        settings: Optional settings for the workload check

    Returns:
        List of conflicts; empty when the schedule is valid
    """
    conflicts: list[ScheduleConflict] = []
    counter = Counter()

    def add(conflict_type: ConflictType, severity: Severity, description: str,
            involved: list[ScheduledSession]) -> None:
        counter[conflict_type] += 1
        conflicts.append(ScheduleConflict(
            id=f"{conflict_type.value}-{counter[conflict_type]}",
            type=conflict_type,
            description=description,
            severity=severity,
            schedule_ids=[s.id for s in involved],
            affected_entities=AffectedEntities(
                teacher_ids=sorted({s.teacher_id for s in involved}),
                class_ids=sorted({s.class_id for s in involved}),
                classroom_ids=sorted({s.classroom_id for s in involved}),
                subject_ids=sorted({s.subject_id for s in involved}),
            ),
        ))

    # Double booking
    double_booking_checks = [
        (ConflictType.TEACHER_DOUBLE_BOOKING, "teacher_id", "Teacher"),
        (ConflictType.CLASSROOM_DOUBLE_BOOKING, "classroom_id", "Classroom"),
        (ConflictType.CLASS_DOUBLE_BOOKING, "class_id", "Class"),
    ]
    for conflict_type, attribute, label in double_booking_checks:
        groups: dict[tuple[str, str], list[ScheduledSession]] = defaultdict(list)
        for session in sessions:
            groups[(session.time_slot_id, getattr(session, attribute))].append(session)

        for (slot_id, entity_id), group in groups.items():
            if len(group) > 1:
                add(
                    conflict_type,
                    Severity.CRITICAL,
                    f"{label} {entity_id} has {len(group)} sessions in time slot {slot_id}",
                    group,
                )

    rooms_used: dict[str, set[str]] = defaultdict(set)
    for session in sessions:
        rooms_used[session.time_slot_id].add(session.classroom_id)

    for session in sessions:
        slot = data.get_time_slot(session.time_slot_id)
        room = data.get_classroom(session.classroom_id)
        school_class = data.get_class(session.class_id)
        subject = data.get_subject(session.subject_id)

        # Capacity
        if room and school_class and room.capacity < school_class.students_count:
            add(
                ConflictType.ROOM_MISMATCH,
                Severity.HIGH,
                f"Classroom {room.name} holds {room.capacity} but class {school_class.name} "
                f"has {school_class.students_count} students",
                [session],
            )

        # Special room type, only when a matching room sat free in that slot
        wanted = subject.preferred_room_type if subject else None
        if room and slot and wanted and room.type != wanted:
            free_matching = [
                r for r in data.classrooms
                if r.type == wanted and r.id not in rooms_used[slot.id]
                and (school_class is None or r.capacity >= school_class.students_count)
            ]
            if free_matching:
                add(
                    ConflictType.ROOM_MISMATCH,
                    Severity.MEDIUM,
                    f"Subject {subject.name} needs a {wanted.value} and {free_matching[0].name} "
                    f"was free, but it was placed in {room.name}",
                    [session],
                )

        # Teacher restrictions
        if slot:
            restriction = find_blocking_restriction(data.get_active_restrictions(session.teacher_id), slot)
            if restriction is not None:
                add(
                    ConflictType.TEACHER_RESTRICTION,
                    Severity.HIGH,
                    f"Teacher {session.teacher_id} is unavailable ({restriction}) "
                    f"but teaches in time slot {slot.id}",
                    [session],
                )

    # Daily workload
    if settings is not None and not settings.allow_overtime:
        per_day: dict[tuple[str, int], list[ScheduledSession]] = defaultdict(list)
        for session in sessions:
            per_day[(session.teacher_id, session.day_of_week)].append(session)

        for (teacher_id, day), group in per_day.items():
            if len(group) > settings.max_daily_hours:
                add(
                    ConflictType.WORKLOAD_EXCEEDED,
                    Severity.LOW,
                    f"Teacher {teacher_id} has {len(group)} sessions on day {day}, "
                    f"limit is {settings.max_daily_hours}",
                    group,
                )

    return conflicts
