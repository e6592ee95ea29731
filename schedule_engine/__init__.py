"""School schedule engine - greedy timetable generation."""

from .data.models import GenerationInput
from .settings import ScheduleGenerationSettings
from .engine import (
    AllocationEngine,
    CancellationToken,
    GenerationProgress,
    GenerationResult,
    RunStatus,
    generate_schedule,
)
from .service import ScheduleGenerationService
from .store import InMemoryScheduleStore, ScheduleStore
from .errors import (
    ScheduleEngineError,
    ConfigurationError,
    EmptyDemandError,
    GenerationInProgressError,
    ConflictNotFoundError,
)

__all__ = [
    # Input
    "GenerationInput",
    "ScheduleGenerationSettings",
    # Engine
    "AllocationEngine",
    "CancellationToken",
    "GenerationProgress",
    "GenerationResult",
    "RunStatus",
    "generate_schedule",
    # Service
    "ScheduleGenerationService",
    "ScheduleStore",
    "InMemoryScheduleStore",
    # Errors
    "ScheduleEngineError",
    "ConfigurationError",
    "EmptyDemandError",
    "GenerationInProgressError",
    "ConflictNotFoundError",
]
