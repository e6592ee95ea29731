"""
Generation service: runs the engine against a store.

Guarantees one in-flight run per academic year and swaps the stored
schedule only after a run has produced a usable result.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional

from .data.models import GenerationInput, ScheduleConflict, ScheduledSession
from .engine import (
    AllocationEngine,
    CancellationToken,
    GenerationResult,
    ProgressCallback,
    RunStatus,
)
from .errors import GenerationInProgressError
from .output.conflicts import detect_conflicts
from .settings import ScheduleGenerationSettings
from .store import ScheduleStore

logger = logging.getLogger(__name__)

# Run outcomes whose sessions replace the stored schedule
PERSISTED_STATUSES = (RunStatus.COMPLETED, RunStatus.CANCELLED)


class ScheduleGenerationService:
    """
    Orchestrates generation runs over an injected store.

    Usage:
        service = ScheduleGenerationService(InMemoryScheduleStore())
        result = service.generate(data, settings, seed=7)
        service.resolve_conflict(result.conflicts[0].id, notes="Moved to Friday")
    """

    def __init__(self, store: ScheduleStore, engine: Optional[AllocationEngine] = None):
        self.store = store
        self.engine = engine or AllocationEngine()
        self._locks: dict[Optional[str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _year_lock(self, academic_year: Optional[str]) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(academic_year, threading.Lock())

    def is_running(self, academic_year: Optional[str]) -> bool:
        return self._year_lock(academic_year).locked()

    def generate(
        self,
        data: GenerationInput,
        settings: Optional[ScheduleGenerationSettings] = None,
        seed: Optional[int] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """
        Generate and store the schedule of the snapshot's academic year.

        Completed and cancelled runs replace the year's sessions and
        conflicts; a failed run leaves them untouched. Every run is recorded.

        Raises:
            GenerationInProgressError: If the year already has a run in flight
        """
        academic_year = data.academic_year
        lock = self._year_lock(academic_year)

        if not lock.acquire(blocking=False):
            raise GenerationInProgressError(academic_year)

        try:
            engine = self.engine
            if settings is not None:
                engine = AllocationEngine(
                    settings,
                    room_selector=self.engine.room_selector,
                    progress_interval=self.engine.progress_interval,
                )

            result = engine.generate(data, seed=seed, progress=progress, cancel_token=cancel_token)

            if result.status in PERSISTED_STATUSES:
                self.store.replace_schedule(academic_year, result.sessions, result.conflicts)
                logger.info(
                    "Stored %d sessions and %d conflicts for academic year %s",
                    len(result.sessions), len(result.conflicts), academic_year,
                )
            else:
                logger.warning("Run %s failed, keeping the stored schedule: %s", result.id, result.message)

            self.store.save_run(result)
            return result
        finally:
            lock.release()

    def get_sessions(self, academic_year: Optional[str]) -> list[ScheduledSession]:
        return self.store.get_sessions(academic_year)

    def get_conflicts(
        self,
        academic_year: Optional[str],
        include_resolved: bool = True,
    ) -> list[ScheduleConflict]:
        conflicts = self.store.get_conflicts(academic_year)
        if include_resolved:
            return conflicts
        return [c for c in conflicts if not c.resolved]

    def get_last_run(self, academic_year: Optional[str]) -> Optional[GenerationResult]:
        return self.store.get_last_run(academic_year)

    def resolve_conflict(
        self,
        conflict_id: str,
        notes: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> ScheduleConflict:
        """
        Mark a stored conflict resolved.

        Raises:
            ConflictNotFoundError: If no stored conflict has that id
        """
        conflict = self.store.resolve_conflict(conflict_id, notes, when or datetime.now())
        logger.info("Resolved conflict %s", conflict_id)
        return conflict

    def audit(
        self,
        data: GenerationInput,
        settings: Optional[ScheduleGenerationSettings] = None,
    ) -> list[ScheduleConflict]:
        """Check the stored sessions of the snapshot's year against the hard constraints."""
        sessions = self.store.get_sessions(data.academic_year)
        return detect_conflicts(sessions, data, settings)
