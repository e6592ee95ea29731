"""Exceptions raised by the schedule engine."""

from __future__ import annotations


class ScheduleEngineError(Exception):
    """Base class for schedule engine errors."""
    pass


class ConfigurationError(ScheduleEngineError):
    """
    A prerequisite for generation is missing.

    Raised before any allocation happens; the run is reported as failed and
    the previously stored schedule is left untouched.
    """
    pass


class EmptyDemandError(ConfigurationError):
    """No session requests remain after expanding the curriculum."""
    pass


class CancelledRun(ScheduleEngineError):
    """The caller asked the run to stop between two sessions."""
    pass


class GenerationInProgressError(ScheduleEngineError):
    """A run for the same academic year is already in flight."""

    def __init__(self, academic_year: str | None):
        self.academic_year = academic_year
        super().__init__(f"A generation run for academic year '{academic_year}' is already running")


class ConflictNotFoundError(ScheduleEngineError, KeyError):
    """No stored conflict has the given id."""
    pass
