"""
Generation settings.

Hard-constraint toggles switch a checker step off entirely. Preference
weights are validated and carried through to the run result, but the
first-fit allocator does not score candidates with them.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .data.models import convert_keys_to_snake_case


MIN_WEIGHT = 1
MAX_WEIGHT = 10


class PreferenceWeight(BaseModel):
    """A soft preference: whether it is on and how much it matters (1-10)."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True)
    weight: int = Field(default=5, ge=MIN_WEIGHT, le=MAX_WEIGHT)

    @field_validator("weight", mode="before")
    @classmethod
    def clamp_weight(cls, value: Any) -> Any:
        """Out-of-range weights are clamped rather than rejected."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(min(max(value, MIN_WEIGHT), MAX_WEIGHT))
        return value


def _weight(default: int) -> Any:
    return Field(default_factory=lambda: PreferenceWeight(weight=default))


class ScheduleGenerationSettings(BaseModel):
    """Settings for one generation run."""
    model_config = ConfigDict(extra="forbid")

    # Hard constraints
    enforce_teacher_availability: bool = Field(default=True, description="Honour teacher restrictions")
    enforce_room_capacity: bool = Field(default=True, description="Room capacity must fit the class")
    enforce_subject_requirements: bool = Field(default=True, description="Try special rooms first")

    # Soft preferences
    minimize_teacher_gaps: PreferenceWeight = _weight(8)
    respect_teacher_preferences: PreferenceWeight = _weight(7)
    distribute_cognitive_load: PreferenceWeight = _weight(6)
    avoid_consecutive_same_subject: PreferenceWeight = _weight(5)
    group_double_classes: PreferenceWeight = _weight(4)
    balance_workload: PreferenceWeight = _weight(3)

    # Specific limits
    max_consecutive_classes: int = Field(default=3, ge=1, le=12)
    max_daily_hours: int = Field(default=8, ge=1, le=24)
    preferred_break_duration: int = Field(default=20, ge=0, le=240, description="Minutes")
    allow_overtime: bool = Field(default=False)

    @property
    def preference_weights(self) -> dict[str, PreferenceWeight]:
        """All soft preferences by name."""
        return {
            "minimize_teacher_gaps": self.minimize_teacher_gaps,
            "respect_teacher_preferences": self.respect_teacher_preferences,
            "distribute_cognitive_load": self.distribute_cognitive_load,
            "avoid_consecutive_same_subject": self.avoid_consecutive_same_subject,
            "group_double_classes": self.group_double_classes,
            "balance_workload": self.balance_workload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleGenerationSettings":
        """Build from a camelCase or snake_case mapping."""
        return cls.model_validate(convert_keys_to_snake_case(data))


def load_settings_from_json(path: Union[str, Path]) -> ScheduleGenerationSettings:
    """Load settings from a JSON file."""
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)
    return ScheduleGenerationSettings.from_dict(data)
