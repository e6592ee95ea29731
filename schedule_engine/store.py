"""
Schedule storage.

The engine never touches storage; the service reads and writes through a
ScheduleStore. InMemoryScheduleStore backs tests and the CLI.
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol

from .errors import ConflictNotFoundError

if TYPE_CHECKING:
    from .data.models import ScheduleConflict, ScheduledSession
    from .engine import GenerationResult


class ScheduleStore(Protocol):
    """Persistence boundary for generated schedules."""

    def get_sessions(self, academic_year: Optional[str]) -> list[ScheduledSession]:
        ...

    def get_conflicts(self, academic_year: Optional[str]) -> list[ScheduleConflict]:
        ...

    def replace_schedule(
        self,
        academic_year: Optional[str],
        sessions: list[ScheduledSession],
        conflicts: list[ScheduleConflict],
    ) -> None:
        """Swap in the sessions and conflicts of a year in one step."""
        ...

    def save_run(self, result: GenerationResult) -> None:
        ...

    def get_last_run(self, academic_year: Optional[str]) -> Optional[GenerationResult]:
        ...

    def resolve_conflict(
        self,
        conflict_id: str,
        notes: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> ScheduleConflict:
        ...


class InMemoryScheduleStore:
    """
    Dict-backed ScheduleStore.

    Readers never see a half-replaced year: every access goes through one lock
    and replace_schedule swaps both lists under it. Only the last ``max_runs``
    results are kept per year.
    """

    def __init__(self, max_runs: int = 10):
        if max_runs < 1:
            raise ValueError("max_runs must be at least 1")
        self.max_runs = max_runs
        self._lock = threading.Lock()
        self._sessions: dict[Optional[str], list[ScheduledSession]] = {}
        self._conflicts: dict[Optional[str], list[ScheduleConflict]] = {}
        self._runs: dict[Optional[str], deque[GenerationResult]] = {}

    def get_sessions(self, academic_year: Optional[str]) -> list[ScheduledSession]:
        with self._lock:
            return list(self._sessions.get(academic_year, []))

    def get_conflicts(self, academic_year: Optional[str]) -> list[ScheduleConflict]:
        with self._lock:
            return list(self._conflicts.get(academic_year, []))

    def replace_schedule(
        self,
        academic_year: Optional[str],
        sessions: list[ScheduledSession],
        conflicts: list[ScheduleConflict],
    ) -> None:
        with self._lock:
            self._sessions[academic_year] = list(sessions)
            self._conflicts[academic_year] = list(conflicts)

    def save_run(self, result: GenerationResult) -> None:
        with self._lock:
            self._runs.setdefault(result.academic_year, deque(maxlen=self.max_runs)).append(result)

    def get_last_run(self, academic_year: Optional[str]) -> Optional[GenerationResult]:
        with self._lock:
            runs = self._runs.get(academic_year)
            return runs[-1] if runs else None

    def get_runs(self, academic_year: Optional[str]) -> list[GenerationResult]:
        with self._lock:
            return list(self._runs.get(academic_year, ()))

    def resolve_conflict(
        self,
        conflict_id: str,
        notes: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> ScheduleConflict:
        with self._lock:
            for conflicts in self._conflicts.values():
                for index, conflict in enumerate(conflicts):
                    if conflict.id == conflict_id:
                        resolved = conflict.resolve(notes, when)
                        conflicts[index] = resolved
                        return resolved

        raise ConflictNotFoundError(conflict_id)
