"""
Pydantic models for the schedule engine data model.

These are the read-only snapshots the engine receives at run start.

Time conventions:
- Time of day is represented as minutes from midnight (0-1439)
- Inputs may also give times as 'HH:MM' strings
- Days are 1-7 (1=Monday); a school week normally uses 1-5

Example times:
- 7:30 AM = 450
- 12:30 PM = 750
- 1:15 PM = 795
"""

from __future__ import annotations

import json
from collections import defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Constants and Enums
# =============================================================================

class Shift(str, Enum):
    """School shift a class attends or a time slot belongs to."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FULL = "full"


class RoomType(str, Enum):
    """Type of classroom/facility."""
    REGULAR = "regular"
    LABORATORY = "laboratory"
    GYM = "gym"
    COMPUTER_LAB = "computer_lab"
    ART_ROOM = "art_room"
    MUSIC_ROOM = "music_room"
    AUDITORIUM = "auditorium"


class CognitiveLoad(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    VIEWER = "viewer"


class RestrictionType(str, Enum):
    """Kind of hard unavailability rule attached to a teacher."""
    UNAVAILABLE_DAY = "unavailable_day"
    UNAVAILABLE_TIME = "unavailable_time"
    UNAVAILABLE_PERIOD = "unavailable_period"


class PreferenceType(str, Enum):
    AVOID_FIRST_PERIOD = "avoid_first_period"
    AVOID_LAST_PERIOD = "avoid_last_period"
    PREFER_GROUPED_CLASSES = "prefer_grouped_classes"
    PREFER_SPECIFIC_DAYS = "prefer_specific_days"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Type aliases for documentation
MinutesFromMidnight = Annotated[int, Field(ge=0, le=1439, description="Time as minutes from midnight")]
DayOfWeek = Annotated[int, Field(ge=1, le=7, description="Day of week (1=Monday, 7=Sunday)")]

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# =============================================================================
# Helper Functions
# =============================================================================

def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format."""
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, time_str.split(":")[:2])
    return h * 60 + m


def day_name(day: int) -> str:
    """Get day name from a 1-based index."""
    return DAY_NAMES[day - 1] if 1 <= day <= 7 else f"Day {day}"


def _coerce_time(value: Any) -> Any:
    """Accept 'HH:MM' strings wherever minutes are expected; blank means unset."""
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, str) and ":" in value:
        return time_to_minutes(value)
    return value


# =============================================================================
# Core Entity Models
# =============================================================================

class Teacher(BaseModel):
    """Teacher (a user with the instructional role)."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Full name")
    role: UserRole = Field(default=UserRole.TEACHER, description="Only 'teacher' is instructional staff")
    email: Optional[str] = Field(default=None, description="Email address")
    registration_number: Optional[str] = Field(default=None, description="Staff registration number")
    subjects: list[str] = Field(default_factory=list, description="Subject IDs this teacher can teach")

    @property
    def is_instructional(self) -> bool:
        return self.role == UserRole.TEACHER

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class Subject(BaseModel):
    """Subject/discipline."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Subject name")
    code: Optional[str] = Field(default=None, max_length=10, description="Short code")
    weekly_hours: int = Field(default=1, ge=0, le=40, description="Default sessions per week")
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex color")
    requires_special_room: bool = Field(default=False, description="Needs a special room")
    special_room_type: Optional[RoomType] = Field(default=None, description="Preferred special room type")
    allows_double_classes: bool = Field(default=False, description="Can be taught back-to-back")
    cognitive_load: CognitiveLoad = Field(default=CognitiveLoad.MEDIUM, description="Soft distribution signal")

    @property
    def preferred_room_type(self) -> Optional[RoomType]:
        """Room type to try first, if any."""
        if self.requires_special_room:
            return self.special_room_type
        return None

    def __str__(self) -> str:
        return f"{self.name} ({self.code or self.id})"


class SchoolClass(BaseModel):
    """
    Student class/group.
    Named 'SchoolClass' to avoid collision with Python's 'class' keyword.
    """
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Class name (e.g., '9A')")
    grade: Optional[str] = Field(default=None, description="Grade label")
    shift: Shift = Field(default=Shift.MORNING, description="Shift the class attends")
    students_count: int = Field(default=0, ge=0, description="Number of students")
    academic_year: Optional[str] = Field(default=None, description="Academic year scope")

    def __str__(self) -> str:
        return self.name


class Classroom(BaseModel):
    """Classroom/facility."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Room name/number")
    capacity: int = Field(default=0, ge=0, description="Max capacity")
    type: RoomType = Field(default=RoomType.REGULAR, description="Type of room")
    equipment: list[str] = Field(default_factory=list, description="Available equipment")
    building: Optional[str] = Field(default=None, description="Building name")
    floor: Optional[str] = Field(default=None, description="Floor")

    def __str__(self) -> str:
        return f"{self.name} ({self.type.value})"


class TimeSlot(BaseModel):
    """A fixed day/time interval in the weekly grid."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    day_of_week: DayOfWeek = Field(description="Day of week (1-7)")
    start_minutes: MinutesFromMidnight = Field(
        validation_alias=AliasChoices("start_minutes", "start_time"), description="Start time"
    )
    end_minutes: MinutesFromMidnight = Field(
        validation_alias=AliasChoices("end_minutes", "end_time"), description="End time"
    )
    shift: Shift = Field(default=Shift.MORNING, description="Shift the slot belongs to")
    order: int = Field(default=0, ge=0, description="Ordering index within the day")
    label: Optional[str] = Field(default=None, description="Display label")
    is_break: bool = Field(default=False, description="Break slots are never allocable")
    academic_year: Optional[str] = Field(default=None, description="Academic year scope")

    @field_validator("start_minutes", "end_minutes", mode="before")
    @classmethod
    def parse_time_strings(cls, value: Any) -> Any:
        return _coerce_time(value)

    @model_validator(mode="after")
    def validate_time_range(self) -> "TimeSlot":
        """Ensure start time is before end time."""
        if self.start_minutes >= self.end_minutes:
            raise ValueError(
                f"start_minutes ({self.start_minutes}) must be less than "
                f"end_minutes ({self.end_minutes})"
            )
        return self

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def sort_key(self) -> tuple[int, int, int]:
        return (self.day_of_week, self.order, self.start_minutes)

    def __str__(self) -> str:
        time_range = f"{minutes_to_time(self.start_minutes)}-{minutes_to_time(self.end_minutes)}"
        return f"{self.label or self.id} ({day_name(self.day_of_week)} {time_range})"


class TeacherRestriction(BaseModel):
    """
    Hard unavailability rule for a teacher.

    ``unavailable_day`` blocks the whole day. The time-bounded types block the
    given [start, end) range; without a range they block nothing.
    """
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    teacher_id: str = Field(description="Teacher ID")
    type: RestrictionType = Field(description="Restriction kind")
    day_of_week: DayOfWeek = Field(description="Day the restriction applies to")
    start_minutes: Optional[MinutesFromMidnight] = Field(
        default=None, validation_alias=AliasChoices("start_minutes", "start_time"), description="Range start"
    )
    end_minutes: Optional[MinutesFromMidnight] = Field(
        default=None, validation_alias=AliasChoices("end_minutes", "end_time"), description="Range end"
    )
    reason: Optional[str] = Field(default=None, description="Reason for unavailability")
    is_active: bool = Field(default=True, description="Inactive restrictions are ignored")

    @field_validator("start_minutes", "end_minutes", mode="before")
    @classmethod
    def parse_time_strings(cls, value: Any) -> Any:
        return _coerce_time(value)

    @model_validator(mode="after")
    def validate_time_range(self) -> "TeacherRestriction":
        if (self.start_minutes is None) != (self.end_minutes is None):
            raise ValueError("start_minutes and end_minutes must be given together")
        if self.start_minutes is not None and self.start_minutes >= self.end_minutes:
            raise ValueError(
                f"start_minutes ({self.start_minutes}) must be less than "
                f"end_minutes ({self.end_minutes})"
            )
        return self

    @property
    def covers_whole_day(self) -> bool:
        return self.type == RestrictionType.UNAVAILABLE_DAY

    @property
    def has_range(self) -> bool:
        return self.start_minutes is not None

    def __str__(self) -> str:
        if self.covers_whole_day:
            window = "all day"
        elif not self.has_range:
            window = "no range"
        else:
            window = f"{minutes_to_time(self.start_minutes)}-{minutes_to_time(self.end_minutes)}"
        return f"{self.type.value} {day_name(self.day_of_week)} {window}"


class TeacherPreference(BaseModel):
    """Soft teacher preference. Informs scoring only; never eliminates a candidate."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    teacher_id: str = Field(description="Teacher ID")
    type: PreferenceType = Field(description="Preference kind")
    priority: Priority = Field(default=Priority.MEDIUM, description="Preference priority")
    value: Optional[str] = Field(default=None, description="Type-specific value")
    description: Optional[str] = Field(default=None)


class SessionRequirement(BaseModel):
    """A class-subject-teacher tuple with a weekly session count."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    class_id: str = Field(description="Class ID")
    subject_id: str = Field(description="Subject ID")
    teacher_id: Optional[str] = Field(default=None, description="Teacher ID")
    weekly_classes: Optional[int] = Field(default=None, ge=0, le=40, description="Sessions per week")
    weekly_hours: Optional[int] = Field(default=None, ge=0, le=40, description="Hours per week")
    priority: int = Field(default=1, ge=0, description="Allocation priority (informational)")
    academic_year: Optional[str] = Field(default=None, description="Academic year scope")

    def resolve_weekly_count(self, subject: Optional[Subject] = None) -> int:
        """weekly_classes, then weekly_hours, then the subject default; at least 1."""
        count = self.weekly_classes or self.weekly_hours or (subject.weekly_hours if subject else 0)
        return max(count or 0, 1)


# =============================================================================
# Generation Input Snapshot
# =============================================================================

class GenerationInput(BaseModel):
    """
    Read-only snapshot of everything a generation run needs.

    Lookup maps are built once after validation so the allocation loop never
    falls back to linear scans.
    """
    model_config = ConfigDict(extra="forbid")

    academic_year: Optional[str] = Field(default=None, description="Active academic year")

    teachers: list[Teacher] = Field(default_factory=list)
    subjects: list[Subject] = Field(default_factory=list)
    classes: list[SchoolClass] = Field(default_factory=list)
    classrooms: list[Classroom] = Field(default_factory=list)
    time_slots: list[TimeSlot] = Field(default_factory=list)
    session_requirements: list[SessionRequirement] = Field(default_factory=list)
    teacher_restrictions: list[TeacherRestriction] = Field(default_factory=list)
    teacher_preferences: list[TeacherPreference] = Field(default_factory=list)

    # Lookup caches (populated after validation)
    _teacher_map: dict[str, Teacher] = {}
    _subject_map: dict[str, Subject] = {}
    _class_map: dict[str, SchoolClass] = {}
    _classroom_map: dict[str, Classroom] = {}
    _slot_map: dict[str, TimeSlot] = {}
    _restrictions_by_teacher: dict[str, list[TeacherRestriction]] = {}
    _requirements_by_class: dict[str, list[SessionRequirement]] = {}

    def model_post_init(self, __context: Any) -> None:
        """Build lookup maps after model initialization."""
        self._teacher_map = {t.id: t for t in self.teachers}
        self._subject_map = {s.id: s for s in self.subjects}
        self._class_map = {c.id: c for c in self.classes}
        self._classroom_map = {r.id: r for r in self.classrooms}
        self._slot_map = {s.id: s for s in self.time_slots}

        by_teacher: dict[str, list[TeacherRestriction]] = defaultdict(list)
        for restriction in self.teacher_restrictions:
            if restriction.is_active:
                by_teacher[restriction.teacher_id].append(restriction)
        self._restrictions_by_teacher = dict(by_teacher)

        by_class: dict[str, list[SessionRequirement]] = defaultdict(list)
        for req in self.get_scoped_requirements():
            by_class[req.class_id].append(req)
        self._requirements_by_class = dict(by_class)

    @model_validator(mode="after")
    def validate_no_duplicate_ids(self) -> "GenerationInput":
        """Ensure no duplicate IDs within each entity type."""
        errors: list[str] = []

        def check_duplicates(items: list, entity_name: str) -> None:
            seen: set[str] = set()
            for item in items:
                if item.id in seen:
                    errors.append(f"Duplicate {entity_name} ID: '{item.id}'")
                seen.add(item.id)

        check_duplicates(self.teachers, "teacher")
        check_duplicates(self.subjects, "subject")
        check_duplicates(self.classes, "class")
        check_duplicates(self.classrooms, "classroom")
        check_duplicates(self.time_slots, "time slot")
        check_duplicates(self.session_requirements, "session requirement")
        check_duplicates(self.teacher_restrictions, "teacher restriction")
        check_duplicates(self.teacher_preferences, "teacher preference")

        if errors:
            raise ValueError("Duplicate ID validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        return self

    # -------------------------------------------------------------------------
    # Lookup Methods
    # -------------------------------------------------------------------------

    def get_teacher(self, teacher_id: Optional[str]) -> Optional[Teacher]:
        return self._teacher_map.get(teacher_id) if teacher_id else None

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self._subject_map.get(subject_id)

    def get_class(self, class_id: str) -> Optional[SchoolClass]:
        return self._class_map.get(class_id)

    def get_classroom(self, classroom_id: str) -> Optional[Classroom]:
        return self._classroom_map.get(classroom_id)

    def get_time_slot(self, slot_id: str) -> Optional[TimeSlot]:
        return self._slot_map.get(slot_id)

    def get_active_restrictions(self, teacher_id: str) -> list[TeacherRestriction]:
        """Active restrictions for a teacher."""
        return self._restrictions_by_teacher.get(teacher_id, [])

    # -------------------------------------------------------------------------
    # Scoped Queries
    # -------------------------------------------------------------------------

    def in_scope(self, academic_year: Optional[str]) -> bool:
        """Entities without a year belong to every year."""
        return self.academic_year is None or academic_year is None or academic_year == self.academic_year

    def get_scoped_classes(self) -> list[SchoolClass]:
        return [c for c in self.classes if self.in_scope(c.academic_year)]

    def get_schedulable_slots(self) -> list[TimeSlot]:
        """Non-break slots of the active year ordered by day, then slot order."""
        return sorted(
            [s for s in self.time_slots if not s.is_break and self.in_scope(s.academic_year)],
            key=lambda s: s.sort_key,
        )

    def get_scoped_requirements(self) -> list[SessionRequirement]:
        return [r for r in self.session_requirements if self.in_scope(r.academic_year)]

    def get_class_requirements(self, class_id: str) -> list[SessionRequirement]:
        return self._requirements_by_class.get(class_id, [])

    def get_instructional_teachers(self) -> list[Teacher]:
        return [t for t in self.teachers if t.is_instructional]

    def get_instructional_teacher(self, teacher_id: Optional[str]) -> Optional[Teacher]:
        teacher = self.get_teacher(teacher_id)
        if teacher is not None and teacher.is_instructional:
            return teacher
        return None

    def get_slots_by_day(self, day: int) -> list[TimeSlot]:
        return [s for s in self.get_schedulable_slots() if s.day_of_week == day]

    # -------------------------------------------------------------------------
    # Validation Helpers
    # -------------------------------------------------------------------------

    def find_reference_warnings(self) -> list[str]:
        """
        List dangling references.

        These are not errors: the demand expander skips requirements it cannot
        resolve. The CLI 'validate' command surfaces them.
        """
        warnings: list[str] = []

        for req in self.session_requirements:
            if req.class_id not in self._class_map:
                warnings.append(f"Requirement {req.id}: unknown class_id '{req.class_id}'")
            if req.subject_id not in self._subject_map:
                warnings.append(f"Requirement {req.id}: unknown subject_id '{req.subject_id}'")
            if req.teacher_id is None:
                warnings.append(f"Requirement {req.id}: no teacher assigned")
            elif self.get_instructional_teacher(req.teacher_id) is None:
                warnings.append(f"Requirement {req.id}: unknown or non-teaching teacher_id '{req.teacher_id}'")

        for restriction in self.teacher_restrictions:
            if restriction.teacher_id not in self._teacher_map:
                warnings.append(f"Restriction {restriction.id}: unknown teacher_id '{restriction.teacher_id}'")

        for subject in self.subjects:
            room_type = subject.preferred_room_type
            if room_type and not any(r.type == room_type for r in self.classrooms):
                warnings.append(
                    f"Subject '{subject.name}' prefers {room_type.value} but no such room exists"
                )

        return warnings

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    @property
    def total_sessions_per_week(self) -> int:
        """Upper bound on demand, before unresolvable requirements are skipped."""
        return sum(
            req.resolve_weekly_count(self.get_subject(req.subject_id))
            for req in self.get_scoped_requirements()
        )

    def summary(self) -> dict[str, Any]:
        return {
            "academic_year": self.academic_year,
            "teachers": len(self.get_instructional_teachers()),
            "subjects": len(self.subjects),
            "classes": len(self.get_scoped_classes()),
            "classrooms": len(self.classrooms),
            "time_slots": len(self.get_schedulable_slots()),
            "session_requirements": len(self.get_scoped_requirements()),
            "total_sessions_per_week": self.total_sessions_per_week,
        }


# =============================================================================
# Output Entity Models
# =============================================================================

class SessionStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    CONFLICT = "conflict"
    LOCKED = "locked"


class GeneratedBy(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class ConflictType(str, Enum):
    """Kinds of schedule conflict. Generation itself only emits UNASSIGNED_CLASS."""
    TEACHER_DOUBLE_BOOKING = "teacher_double_booking"
    CLASSROOM_DOUBLE_BOOKING = "classroom_double_booking"
    CLASS_DOUBLE_BOOKING = "class_double_booking"
    TEACHER_RESTRICTION = "teacher_restriction"
    ROOM_MISMATCH = "room_mismatch"
    WORKLOAD_EXCEEDED = "workload_exceeded"
    UNASSIGNED_CLASS = "unassigned_class"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ScheduledSession(BaseModel):
    """A session request placed in a time slot and classroom."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(description="Unique identifier")
    request_id: str = Field(description="SessionRequest this session fulfils")
    class_id: str
    subject_id: str
    teacher_id: str
    time_slot_id: str
    classroom_id: str
    day_of_week: DayOfWeek
    academic_year: Optional[str] = None
    status: SessionStatus = SessionStatus.ACTIVE
    generated_by: GeneratedBy = GeneratedBy.AUTOMATIC
    priority: int = 1
    special_room_fallback: bool = Field(
        default=False,
        description="Subject wanted a special room type but got a different room",
    )


class AffectedEntities(BaseModel):
    model_config = ConfigDict(extra="forbid")

    teacher_ids: list[str] = Field(default_factory=list)
    class_ids: list[str] = Field(default_factory=list)
    classroom_ids: list[str] = Field(default_factory=list)
    subject_ids: list[str] = Field(default_factory=list)


class ScheduleConflict(BaseModel):
    """
    A problem found during generation or an audit.

    The engine never resolves conflicts; ``resolved`` and ``resolved_at`` are
    set by the conflict resolution workflow.
    """
    model_config = ConfigDict(extra="forbid")

    id: str
    type: ConflictType
    description: str
    severity: Severity
    affected_entities: AffectedEntities = Field(default_factory=AffectedEntities)
    schedule_ids: list[str] = Field(default_factory=list)
    resolved: bool = False
    resolution_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    resolved_at: Optional[datetime] = None

    def resolve(self, notes: Optional[str] = None, when: Optional[datetime] = None) -> "ScheduleConflict":
        """Return a resolved copy."""
        return self.model_copy(update={
            "resolved": True,
            "resolution_notes": notes,
            "resolved_at": when or datetime.now(),
        })


# =============================================================================
# JSON Loading Helper
# =============================================================================

def load_generation_input_from_json(path: str | Path) -> GenerationInput:
    """
    Load and validate a generation snapshot from a JSON file.

    Keys may be camelCase or snake_case.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        pydantic.ValidationError: If validation fails
    """
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)

    return GenerationInput.model_validate(convert_keys_to_snake_case(data))


def convert_keys_to_snake_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from camelCase to snake_case."""
    import re

    def to_snake_case(name: str) -> str:
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
        return name.lower()

    if isinstance(obj, dict):
        return {to_snake_case(k): convert_keys_to_snake_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_keys_to_snake_case(item) for item in obj]
    else:
        return obj
