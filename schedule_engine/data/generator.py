"""
Sample data generator for testing the schedule engine.

This module generates realistic school data for testing purposes, with
configurable size and complexity.

Usage:
    from schedule_engine.data.generator import generate_sample_school, generate_small_school

    # Generate with custom config
    school = generate_sample_school(GeneratorConfig(num_teachers=30))

    # Quick test data
    small_school = generate_small_school(seed=1)

    # Stress test data
    large_school = generate_large_school()
"""

from __future__ import annotations

import json
import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .models import (
    Classroom,
    CognitiveLoad,
    GenerationInput,
    PreferenceType,
    Priority,
    RestrictionType,
    RoomType,
    SchoolClass,
    SessionRequirement,
    Shift,
    Subject,
    Teacher,
    TeacherPreference,
    TeacherRestriction,
    TimeSlot,
    UserRole,
    minutes_to_time,
)


# =============================================================================
# Name Data
# =============================================================================

FIRST_NAMES = [
    "Ana", "Bruno", "Carla", "Daniel", "Elisa", "Felipe", "Gabriela", "Hugo",
    "Isabel", "João", "Karina", "Lucas", "Marina", "Nicolas", "Olivia", "Paulo",
    "Renata", "Samuel", "Tatiana", "Vitor", "Beatriz", "Caio", "Denise", "Eduardo",
    "Fernanda", "Gustavo", "Helena", "Igor", "Juliana", "Leonardo", "Mariana", "Otavio",
]

LAST_NAMES = [
    "Silva", "Santos", "Oliveira", "Souza", "Rodrigues", "Ferreira", "Alves", "Pereira",
    "Lima", "Gomes", "Costa", "Ribeiro", "Martins", "Carvalho", "Almeida", "Lopes",
    "Soares", "Fernandes", "Vieira", "Barbosa", "Rocha", "Dias", "Nascimento", "Andrade",
    "Moreira", "Nunes", "Marques", "Machado", "Mendes", "Freitas", "Cardoso", "Ramos",
]


# =============================================================================
# Subject Definitions
# =============================================================================

CORE_SUBJECTS = [
    {"id": "por", "name": "Portuguese", "code": "POR", "color": "#3B82F6", "weekly_hours": 5,
     "cognitive_load": CognitiveLoad.HIGH},
    {"id": "mat", "name": "Mathematics", "code": "MAT", "color": "#10B981", "weekly_hours": 5,
     "cognitive_load": CognitiveLoad.HIGH},
    {"id": "sci", "name": "Science", "code": "SCI", "color": "#8B5CF6", "weekly_hours": 3,
     "cognitive_load": CognitiveLoad.HIGH, "special_room_type": RoomType.LABORATORY},
    {"id": "his", "name": "History", "code": "HIS", "color": "#F59E0B", "weekly_hours": 2},
    {"id": "geo", "name": "Geography", "code": "GEO", "color": "#06B6D4", "weekly_hours": 2},
]

SPECIAL_SUBJECTS = [
    {"id": "pe", "name": "Physical Education", "code": "PE", "color": "#EF4444", "weekly_hours": 2,
     "cognitive_load": CognitiveLoad.LOW, "special_room_type": RoomType.GYM, "allows_double_classes": True},
    {"id": "art", "name": "Art", "code": "ART", "color": "#EC4899", "weekly_hours": 1,
     "cognitive_load": CognitiveLoad.LOW, "special_room_type": RoomType.ART_ROOM},
    {"id": "mus", "name": "Music", "code": "MUS", "color": "#A855F7", "weekly_hours": 1,
     "cognitive_load": CognitiveLoad.LOW, "special_room_type": RoomType.MUSIC_ROOM},
    {"id": "cmp", "name": "Computing", "code": "CMP", "color": "#6366F1", "weekly_hours": 1,
     "special_room_type": RoomType.COMPUTER_LAB},
    {"id": "eng", "name": "English", "code": "ENG", "color": "#14B8A6", "weekly_hours": 2},
    {"id": "phi", "name": "Philosophy", "code": "PHI", "color": "#84CC16", "weekly_hours": 1},
]

SPECIAL_ROOM_NAMES = {
    RoomType.LABORATORY: ("lab", "Science Lab"),
    RoomType.GYM: ("gym", "Gymnasium"),
    RoomType.ART_ROOM: ("art", "Art Studio"),
    RoomType.MUSIC_ROOM: ("mus", "Music Room"),
    RoomType.COMPUTER_LAB: ("cmp", "Computer Lab"),
    RoomType.AUDITORIUM: ("aud", "Auditorium"),
}

ROOM_EQUIPMENT = {
    RoomType.LABORATORY: ["microscopes", "fume_hood", "safety_equipment"],
    RoomType.COMPUTER_LAB: ["computers", "projector"],
    RoomType.GYM: ["mats", "balls"],
    RoomType.ART_ROOM: ["easels", "sinks"],
    RoomType.MUSIC_ROOM: ["piano", "audio_equipment"],
}

RESTRICTION_REASONS = [
    "Works at another school",
    "Professional development",
    "Part-time contract",
    "Coordination meeting",
    "Medical appointment",
]


# =============================================================================
# Generator Configuration
# =============================================================================

@dataclass
class GeneratorConfig:
    """Configuration for data generation.

    The defaults produce a school the greedy engine can usually fill:
    - Sessions per class stay below the schedulable slots of its shift
    - No teacher is given more sessions than one shift's slots
    - Morning and afternoon classes each fit in the available rooms
    """
    academic_year: str = "2025"

    # Entity counts
    num_teachers: int = 16
    num_admins: int = 1
    num_classes: int = 8
    num_rooms: int = 10
    sessions_per_class_per_week: int = 20
    afternoon_class_ratio: float = 0.5

    # Teacher settings
    teacher_min_subjects: int = 1
    teacher_max_subjects: int = 3
    teacher_min_restrictions: int = 0
    teacher_max_restrictions: int = 2
    preference_probability: float = 0.3

    # Class settings
    min_students: int = 25
    max_students: int = 35
    grades: list[str] = field(default_factory=lambda: ["6", "7", "8", "9"])

    # Room settings
    classroom_capacity_min: int = 35
    classroom_capacity_max: int = 40
    special_capacity_min: int = 25
    special_capacity_max: int = 40

    # Time slot settings
    num_days: int = 5
    periods_per_shift: int = 5
    morning_start_minutes: int = 450  # 07:30
    afternoon_start_minutes: int = 780  # 13:00
    period_duration: int = 50
    break_after_period: int = 3
    break_duration: int = 20

    # Subject selection
    include_special_subjects: bool = True
    num_special_subjects: int = 4

    # Randomization
    seed: Optional[int] = None


# =============================================================================
# Generator Functions
# =============================================================================

def generate_sample_school(config: GeneratorConfig | None = None) -> GenerationInput:
    """
    Generate a sample school snapshot.

    Args:
        config: Generator configuration (uses defaults if None)

    Returns:
        GenerationInput with generated data
    """
    if config is None:
        config = GeneratorConfig()

    rng = random.Random(config.seed)

    subjects = _generate_subjects(config, rng)
    teachers = _generate_teachers(config, subjects, rng)
    classes = _generate_classes(config, rng)
    classrooms = _generate_classrooms(config, subjects, rng)
    time_slots = _generate_time_slots(config)
    requirements = _generate_requirements(config, teachers, classes, subjects)
    restrictions = _generate_restrictions(config, teachers, rng)
    preferences = _generate_preferences(config, teachers, rng)

    return GenerationInput(
        academic_year=config.academic_year,
        teachers=teachers,
        subjects=subjects,
        classes=classes,
        classrooms=classrooms,
        time_slots=time_slots,
        session_requirements=requirements,
        teacher_restrictions=restrictions,
        teacher_preferences=preferences,
    )


def generate_small_school(seed: int | None = None) -> GenerationInput:
    """
    Generate a small school for quick testing.

    - 8 teachers
    - 4 classes (2 morning, 2 afternoon)
    - 5 rooms
    - ~60 sessions

    Args:
        seed: Random seed for reproducibility

    Returns:
        GenerationInput with small school data
    """
    config = GeneratorConfig(
        num_teachers=8,
        num_classes=4,
        num_rooms=5,
        sessions_per_class_per_week=15,
        num_special_subjects=2,
        teacher_max_restrictions=1,
        seed=seed,
    )
    return generate_sample_school(config)


def generate_medium_school(seed: int | None = None) -> GenerationInput:
    """
    Generate a medium-sized school for standard testing.

    - 20 teachers
    - 12 classes
    - 12 rooms
    - ~240 sessions

    Args:
        seed: Random seed for reproducibility

    Returns:
        GenerationInput with medium school data
    """
    config = GeneratorConfig(
        num_teachers=20,
        num_classes=12,
        num_rooms=12,
        sessions_per_class_per_week=20,
        seed=seed,
    )
    return generate_sample_school(config)


def generate_large_school(seed: int | None = None) -> GenerationInput:
    """
    Generate a large school for stress testing.

    - 60 teachers
    - 40 classes
    - 30 rooms
    - ~880 sessions

    Args:
        seed: Random seed for reproducibility

    Returns:
        GenerationInput with large school data
    """
    config = GeneratorConfig(
        num_teachers=60,
        num_admins=3,
        num_classes=40,
        num_rooms=30,
        sessions_per_class_per_week=22,
        teacher_max_restrictions=1,
        num_special_subjects=6,
        seed=seed,
    )
    return generate_sample_school(config)


# =============================================================================
# Private Generator Helpers
# =============================================================================

def _generate_subjects(config: GeneratorConfig, rng: random.Random) -> list[Subject]:
    """Core subjects always, plus a random pick of special subjects."""
    chosen = list(CORE_SUBJECTS)

    if config.include_special_subjects:
        chosen += rng.sample(
            SPECIAL_SUBJECTS,
            min(config.num_special_subjects, len(SPECIAL_SUBJECTS)),
        )

    return [_create_subject(data) for data in chosen]


def _create_subject(data: dict) -> Subject:
    """Create a Subject from data dictionary."""
    room_type = data.get("special_room_type")
    return Subject(
        id=data["id"],
        name=data["name"],
        code=data.get("code"),
        color=data.get("color"),
        weekly_hours=data["weekly_hours"],
        requires_special_room=room_type is not None,
        special_room_type=room_type,
        allows_double_classes=data.get("allows_double_classes", False),
        cognitive_load=data.get("cognitive_load", CognitiveLoad.MEDIUM),
    )


def _generate_teachers(
    config: GeneratorConfig,
    subjects: list[Subject],
    rng: random.Random,
) -> list[Teacher]:
    """Generate teachers; every subject ends up with at least one teacher."""
    teachers: list[Teacher] = []
    used_names: set[str] = set()
    subject_ids = [s.id for s in subjects]

    def unique_name() -> str:
        while True:
            name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
            if name not in used_names or len(used_names) >= len(FIRST_NAMES) * len(LAST_NAMES):
                used_names.add(name)
                return name

    for i in range(config.num_teachers):
        num_subjects = rng.randint(config.teacher_min_subjects, config.teacher_max_subjects)
        teachers.append(Teacher(
            id=f"t{i + 1}",
            name=unique_name(),
            role=UserRole.TEACHER,
            email=f"t{i + 1}@school.example",
            registration_number=f"R{1000 + i}",
            subjects=rng.sample(subject_ids, min(num_subjects, len(subject_ids))),
        ))

    # Cover subjects nobody drew
    if teachers:
        for subject_id in subject_ids:
            if not any(subject_id in t.subjects for t in teachers):
                lightest = min(teachers, key=lambda t: len(t.subjects))
                lightest.subjects.append(subject_id)

    for i in range(config.num_admins):
        teachers.append(Teacher(
            id=f"a{i + 1}",
            name=unique_name(),
            role=UserRole.ADMIN,
            email=f"a{i + 1}@school.example",
        ))

    return teachers


def _generate_classes(config: GeneratorConfig, rng: random.Random) -> list[SchoolClass]:
    """Generate classes spread over grades, split between morning and afternoon."""
    classes = []
    num_afternoon = round(config.num_classes * config.afternoon_class_ratio)

    for i in range(config.num_classes):
        grade = config.grades[i % len(config.grades)]
        section = chr(ord("A") + i // len(config.grades))
        shift = Shift.AFTERNOON if i >= config.num_classes - num_afternoon else Shift.MORNING

        classes.append(SchoolClass(
            id=f"c{grade}{section.lower()}",
            name=f"{grade}{section}",
            grade=grade,
            shift=shift,
            students_count=rng.randint(config.min_students, config.max_students),
            academic_year=config.academic_year,
        ))

    return classes


def _generate_classrooms(
    config: GeneratorConfig,
    subjects: list[Subject],
    rng: random.Random,
) -> list[Classroom]:
    """Regular classrooms plus one special room per type the subjects need."""
    rooms = []

    special_types = []
    for subject in subjects:
        if subject.preferred_room_type and subject.preferred_room_type not in special_types:
            special_types.append(subject.preferred_room_type)

    regular_count = max(2, config.num_rooms - len(special_types))

    for i in range(regular_count):
        floor = i // 4 + 1
        number = floor * 100 + i % 4 + 1
        rooms.append(Classroom(
            id=f"r{number}",
            name=f"Room {number}",
            capacity=rng.randint(config.classroom_capacity_min, config.classroom_capacity_max),
            type=RoomType.REGULAR,
            building="Main Building",
            floor=str(floor),
        ))

    for room_type in special_types:
        prefix, name = SPECIAL_ROOM_NAMES.get(room_type, (room_type.value[:3], room_type.value.title()))
        rooms.append(Classroom(
            id=f"{prefix}1",
            name=name,
            capacity=rng.randint(config.special_capacity_min, config.special_capacity_max),
            type=room_type,
            equipment=ROOM_EQUIPMENT.get(room_type, []),
            building="Annex",
            floor="0",
        ))

    return rooms


def _generate_time_slots(config: GeneratorConfig) -> list[TimeSlot]:
    """Weekly grid: per day, a morning and an afternoon block, each with one break."""
    slots = []

    for day in range(1, config.num_days + 1):
        for shift, start in (
            (Shift.MORNING, config.morning_start_minutes),
            (Shift.AFTERNOON, config.afternoon_start_minutes),
        ):
            prefix = shift.value[0]
            current = start
            order = 0

            for period in range(1, config.periods_per_shift + 1):
                slots.append(TimeSlot(
                    id=f"{prefix}{day}-{period}",
                    day_of_week=day,
                    start_minutes=current,
                    end_minutes=current + config.period_duration,
                    shift=shift,
                    order=order,
                    label=f"{period}º {shift.value}",
                    academic_year=config.academic_year,
                ))
                current += config.period_duration
                order += 1

                if period == config.break_after_period and config.break_duration > 0:
                    slots.append(TimeSlot(
                        id=f"{prefix}{day}-break",
                        day_of_week=day,
                        start_minutes=current,
                        end_minutes=current + config.break_duration,
                        shift=shift,
                        order=order,
                        label=f"Break {minutes_to_time(current)}",
                        is_break=True,
                        academic_year=config.academic_year,
                    ))
                    current += config.break_duration
                    order += 1

    return slots


def _generate_requirements(
    config: GeneratorConfig,
    teachers: list[Teacher],
    classes: list[SchoolClass],
    subjects: list[Subject],
) -> list[SessionRequirement]:
    """Session requirements for every class.

    This function ensures:
    - No teacher gets more sessions in a shift than that shift has slots
    - Teacher loads are balanced across qualified teachers
    - Each class gets approximately sessions_per_class_per_week sessions
    """
    requirements = []
    max_per_shift = config.num_days * config.periods_per_shift

    load: dict[tuple[str, Shift], int] = {}
    teachers_by_subject: dict[str, list[Teacher]] = {}
    for teacher in teachers:
        if not teacher.is_instructional:
            continue
        for subject_id in teacher.subjects:
            teachers_by_subject.setdefault(subject_id, []).append(teacher)

    for school_class in classes:
        total = 0

        for subject in subjects:
            weekly = subject.weekly_hours
            if total + weekly > config.sessions_per_class_per_week:
                continue

            candidates = [
                t for t in teachers_by_subject.get(subject.id, [])
                if load.get((t.id, school_class.shift), 0) + weekly <= max_per_shift
            ]
            if not candidates:
                continue

            teacher = min(candidates, key=lambda t: load.get((t.id, school_class.shift), 0))
            load[(teacher.id, school_class.shift)] = load.get((teacher.id, school_class.shift), 0) + weekly

            requirements.append(SessionRequirement(
                id=f"req-{school_class.id}-{subject.id}",
                class_id=school_class.id,
                subject_id=subject.id,
                teacher_id=teacher.id,
                weekly_classes=weekly,
                academic_year=config.academic_year,
            ))
            total += weekly

    return requirements


def _generate_restrictions(
    config: GeneratorConfig,
    teachers: list[Teacher],
    rng: random.Random,
) -> list[TeacherRestriction]:
    """Random whole-day and time-range unavailability."""
    restrictions = []
    index = 1

    for teacher in teachers:
        if not teacher.is_instructional:
            continue

        for _ in range(rng.randint(config.teacher_min_restrictions, config.teacher_max_restrictions)):
            day = rng.randint(1, config.num_days)

            if rng.random() < 0.3:
                restriction = TeacherRestriction(
                    id=f"rst{index}",
                    teacher_id=teacher.id,
                    type=RestrictionType.UNAVAILABLE_DAY,
                    day_of_week=day,
                    reason=rng.choice(RESTRICTION_REASONS),
                )
            else:
                start = rng.choice([config.morning_start_minutes, config.afternoon_start_minutes])
                periods = rng.randint(1, 2)
                restriction = TeacherRestriction(
                    id=f"rst{index}",
                    teacher_id=teacher.id,
                    type=RestrictionType.UNAVAILABLE_TIME,
                    day_of_week=day,
                    start_minutes=start,
                    end_minutes=start + periods * config.period_duration,
                    reason=rng.choice(RESTRICTION_REASONS),
                )

            restrictions.append(restriction)
            index += 1

    return restrictions


def _generate_preferences(
    config: GeneratorConfig,
    teachers: list[Teacher],
    rng: random.Random,
) -> list[TeacherPreference]:
    preferences = []

    for teacher in teachers:
        if not teacher.is_instructional or rng.random() >= config.preference_probability:
            continue

        pref_type = rng.choice(list(PreferenceType))
        value = None
        if pref_type == PreferenceType.PREFER_SPECIFIC_DAYS:
            value = ",".join(str(d) for d in sorted(rng.sample(range(1, config.num_days + 1), 2)))

        preferences.append(TeacherPreference(
            id=f"pref{len(preferences) + 1}",
            teacher_id=teacher.id,
            type=pref_type,
            priority=rng.choice(list(Priority)),
            value=value,
        ))

    return preferences


# =============================================================================
# Utility Functions
# =============================================================================

def save_generated_school(school: GenerationInput, filepath: str | Path) -> None:
    """
    Save generated school data to a JSON file with camelCase keys.

    Args:
        school: Generated GenerationInput
        filepath: Path to save JSON file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = _keys_to_camel_case(school.model_dump(mode="json", exclude_none=True))

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _keys_to_camel_case(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {
            re.sub(r"_([a-z0-9])", lambda m: m.group(1).upper(), k): _keys_to_camel_case(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_keys_to_camel_case(item) for item in obj]
    return obj


def get_generation_stats(school: GenerationInput) -> dict:
    """
    Get statistics about generated school data.

    Args:
        school: Generated GenerationInput

    Returns:
        Dictionary with statistics
    """
    total_sessions = school.total_sessions_per_week
    schedulable_slots = len(school.get_schedulable_slots())
    total_room_slots = schedulable_slots * len(school.classrooms)

    teacher_workloads: dict[str, int] = {}
    for req in school.get_scoped_requirements():
        if req.teacher_id is None:
            continue
        weekly = req.resolve_weekly_count(school.get_subject(req.subject_id))
        teacher_workloads[req.teacher_id] = teacher_workloads.get(req.teacher_id, 0) + weekly

    avg_workload = sum(teacher_workloads.values()) / len(teacher_workloads) if teacher_workloads else 0
    max_workload = max(teacher_workloads.values()) if teacher_workloads else 0

    utilization = total_sessions / total_room_slots * 100 if total_room_slots > 0 else 0
    is_feasible = utilization <= 100 and max_workload <= schedulable_slots

    return {
        "teachers": len(school.get_instructional_teachers()),
        "classes": len(school.get_scoped_classes()),
        "subjects": len(school.subjects),
        "classrooms": len(school.classrooms),
        "session_requirements": len(school.get_scoped_requirements()),
        "total_sessions": total_sessions,
        "time_slots": len(school.time_slots),
        "schedulable_slots": schedulable_slots,
        "total_room_slots": total_room_slots,
        "utilization_percent": round(utilization, 1),
        "subjects_with_special_rooms": sum(1 for s in school.subjects if s.preferred_room_type),
        "restrictions": len(school.teacher_restrictions),
        "average_teacher_workload": round(avg_workload, 1),
        "max_teacher_workload": max_workload,
        "is_feasible": is_feasible,
    }
