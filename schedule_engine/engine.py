"""
Greedy allocation engine.

One pass over the shuffled demand, no backtracking. For each session request
the schedulable slots are tried in (day, order) sequence; the first slot that
passes the hard constraints and has an eligible room wins. Requests that fit
nowhere become ``unassigned_class`` conflicts.

Time handling:
- Slots are taken in the order day_of_week, order, start_minutes
- Break slots never enter the candidate list
"""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .constraints import (
    CheckerStats,
    ConstraintChecker,
    RoomSelector,
    first_fit,
    is_special_room_fallback,
)
from .data.models import (
    GenerationInput,
    ScheduleConflict,
    ScheduledSession,
    TimeSlot,
)
from .demand import SessionRequest, expand_demand
from .errors import CancelledRun, ConfigurationError
from .output.conflicts import ConflictReporter
from .output.statistics import ScheduleStatistics, calculate_statistics
from .settings import ScheduleGenerationSettings

logger = logging.getLogger(__name__)


# =============================================================================
# Run State
# =============================================================================

class RunStatus(str, Enum):
    """Lifecycle of a generation run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GenerationProgress:
    """Snapshot passed to the progress callback."""
    processed: int
    total: int
    allocated: int
    conflicts: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.processed / self.total * 100)


ProgressCallback = Callable[[GenerationProgress], None]


class CancellationToken:
    """
    Thread-safe stop flag checked between two session placements.

    Usage:
        token = CancellationToken()
        threading.Thread(target=engine.generate, args=(data,), kwargs={"cancel_token": token}).start()
        token.cancel()
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledRun("Generation cancelled by caller")


@dataclass
class GenerationResult:
    """Outcome of one generation run."""
    status: RunStatus
    settings: ScheduleGenerationSettings
    academic_year: Optional[str] = None
    seed: Optional[int] = None
    id: str = field(default_factory=lambda: f"generation-{uuid.uuid4().hex[:12]}")
    progress: int = 0
    sessions: list[ScheduledSession] = field(default_factory=list)
    conflicts: list[ScheduleConflict] = field(default_factory=list)
    statistics: ScheduleStatistics = field(default_factory=ScheduleStatistics)
    checker_stats: CheckerStats = field(default_factory=CheckerStats)
    message: str = ""
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    solve_time_ms: int = 0

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def is_fully_allocated(self) -> bool:
        """Completed with every session request placed."""
        return self.is_success and not self.conflicts


# =============================================================================
# Allocation Engine
# =============================================================================

class AllocationEngine:
    """
    Greedy first-fit timetable allocator.

    The engine holds no state between runs: each call to generate() builds a
    fresh booking index from the snapshot it receives.

    Usage:
        engine = AllocationEngine(settings)
        result = engine.generate(data, seed=42)
        if result.is_success:
            print(result.statistics.satisfaction_rate)
    """

    def __init__(
        self,
        settings: Optional[ScheduleGenerationSettings] = None,
        room_selector: RoomSelector = first_fit,
        progress_interval: int = 5,
    ):
        if progress_interval < 1:
            raise ValueError("progress_interval must be at least 1")

        self.settings = settings or ScheduleGenerationSettings()
        self.room_selector = room_selector
        self.progress_interval = progress_interval

    def generate(
        self,
        data: GenerationInput,
        seed: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """
        Run one generation over a snapshot.

        Args:
            data: Read-only snapshot of the academic year
            seed: Seed for the demand shuffle; same seed and snapshot give the same result
            progress: Called every progress_interval sessions and once at the end
            cancel_token: Checked before each session

        Returns:
            GenerationResult. Configuration problems give status FAILED with
            the message set; they are not raised.
        """
        start = time.perf_counter()
        result = GenerationResult(
            status=RunStatus.RUNNING,
            settings=self.settings,
            academic_year=data.academic_year,
            seed=seed,
        )

        logger.info("Starting schedule generation for academic year %s", data.academic_year or "(all)")

        try:
            check_prerequisites(data)
            requests = expand_demand(data, random.Random(seed))
        except ConfigurationError as exc:
            logger.error("Schedule generation failed: %s", exc)
            result.status = RunStatus.FAILED
            result.message = str(exc)
            result.completed_at = datetime.now()
            result.solve_time_ms = int((time.perf_counter() - start) * 1000)
            return result

        slots = data.get_schedulable_slots()
        checker = ConstraintChecker(data, self.settings)
        reporter = ConflictReporter()
        sessions: list[ScheduledSession] = []
        total = len(requests)

        logger.info(
            "Allocating %d sessions across %d time slots and %d classrooms",
            total, len(slots), len(data.classrooms),
        )

        def notify(processed: int) -> None:
            result.progress = round(processed / total * 100)
            if progress is not None:
                progress(GenerationProgress(
                    processed=processed,
                    total=total,
                    allocated=len(sessions),
                    conflicts=len(reporter),
                ))

        try:
            for index, request in enumerate(requests):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()

                if index % self.progress_interval == 0:
                    notify(index)

                logger.debug("[%d/%d] %s", index + 1, total, request)
                before = Counter(checker.stats.rejections)

                try:
                    session = self._place(request, slots, checker, data.academic_year)
                except Exception as exc:
                    logger.exception("Unexpected error while placing %s", request.id)
                    reporter.report_unassigned(request, error=exc)
                    continue

                if session is None:
                    logger.warning("Could not place %s", request)
                    reporter.report_unassigned(request, checker.stats.rejections - before)
                else:
                    sessions.append(session)

        except CancelledRun:
            logger.warning("Generation cancelled after %d of %d sessions", len(sessions) + len(reporter), total)
            result.status = RunStatus.CANCELLED
        else:
            result.status = RunStatus.COMPLETED
            notify(total)

        result.sessions = sessions
        result.conflicts = list(reporter)
        result.checker_stats = checker.stats
        result.statistics = calculate_statistics(total, sessions, result.conflicts, data)
        result.completed_at = datetime.now()
        result.solve_time_ms = int((time.perf_counter() - start) * 1000)
        result.message = _summary_message(result)

        logger.info(result.message)
        return result

    def _place(
        self,
        request: SessionRequest,
        slots: list[TimeSlot],
        checker: ConstraintChecker,
        academic_year: Optional[str],
    ) -> Optional[ScheduledSession]:
        """Commit the request to the first feasible slot and room, or return None."""
        for slot in slots:
            if checker.check_slot(request, slot) is not None:
                continue

            candidates = checker.find_rooms(request, slot)
            if not candidates:
                continue

            room = self.room_selector(request, slot, candidates.rooms)
            if room is None:
                continue
            if room not in candidates.rooms:
                raise ValueError(f"Room selector returned ineligible room {room.id} for slot {slot.id}")

            fallback = is_special_room_fallback(request, room)
            session = ScheduledSession(
                id=f"session-{request.id}",
                request_id=request.id,
                class_id=request.class_id,
                subject_id=request.subject_id,
                teacher_id=request.teacher_id,
                time_slot_id=slot.id,
                classroom_id=room.id,
                day_of_week=slot.day_of_week,
                academic_year=academic_year,
                priority=request.priority,
                special_room_fallback=fallback,
            )
            checker.commit(request, slot, room)

            if fallback:
                logger.info(
                    "No free %s for %s in %s, using %s",
                    request.special_room_type.value, request, slot, room,
                )
            logger.debug("Placed %s in %s, room %s", request.id, slot, room.name)
            return session

        return None


# =============================================================================
# Helpers
# =============================================================================

def check_prerequisites(data: GenerationInput) -> None:
    """
    Fail fast when the snapshot cannot produce a timetable.

    Raises:
        ConfigurationError: naming the first missing prerequisite
    """
    if not data.get_scoped_classes():
        raise ConfigurationError("No classes found for the active academic year. Add classes first.")

    if not data.get_schedulable_slots():
        raise ConfigurationError("No time slots configured for the active academic year. Configure time slots first.")

    if not data.get_instructional_teachers():
        raise ConfigurationError("No teachers found. Add teachers first.")

    if not data.classrooms:
        raise ConfigurationError("No classrooms found. Add classrooms first.")


def _summary_message(result: GenerationResult) -> str:
    stats = result.statistics
    if result.status == RunStatus.CANCELLED:
        return (
            f"Generation cancelled: {stats.successful_allocations} sessions allocated, "
            f"{stats.conflicts} conflicts before stopping"
        )
    if stats.conflicts == 0:
        return f"Generation completed: {stats.successful_allocations} sessions allocated"
    return (
        f"Generation completed with conflicts: {stats.successful_allocations} sessions allocated, "
        f"{stats.conflicts} conflicts, satisfaction rate {stats.satisfaction_rate}%"
    )


def generate_schedule(
    data: GenerationInput,
    settings: Optional[ScheduleGenerationSettings] = None,
    seed: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> GenerationResult:
    """
    Convenience function to run the engine once.

    Args:
        data: Snapshot to schedule
        settings: Generation settings (defaults if None)
        seed: Shuffle seed for reproducible runs
        progress: Optional progress callback
        cancel_token: Optional cancellation token

    Returns:
        GenerationResult
    """
    engine = AllocationEngine(settings)
    return engine.generate(data, seed=seed, progress=progress, cancel_token=cancel_token)
