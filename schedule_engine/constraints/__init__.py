"""
Constraint checking for the allocation engine.

This package contains the hard-constraint predicates evaluated against the
partial schedule, plus the ConstraintChecker that applies them in order and
keeps per-reason rejection counts.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from schedule_engine.settings import ScheduleGenerationSettings

from .booking import BookingIndex
from .availability import (
    is_shift_compatible,
    ranges_overlap,
    restriction_blocks_slot,
    find_blocking_restriction,
)
from .rooms import (
    RoomCandidates,
    RoomSelector,
    first_fit,
    get_candidate_rooms,
    is_special_room_fallback,
)

if TYPE_CHECKING:
    from schedule_engine.data.models import Classroom, GenerationInput, TimeSlot
    from schedule_engine.demand import SessionRequest


# =============================================================================
# Rejection Reasons
# =============================================================================

class Rejection(str, Enum):
    """Why a candidate slot (or slot + room) was ruled out."""
    SHIFT_MISMATCH = "shift_mismatch"
    TEACHER_BOOKED = "teacher_booked"
    CLASS_BOOKED = "class_booked"
    BREAK_SLOT = "break_slot"
    TEACHER_RESTRICTED = "teacher_restricted"
    CLASSROOM_BOOKED = "classroom_booked"
    ROOM_TOO_SMALL = "room_too_small"
    NO_ROOM = "no_room"


# =============================================================================
# Statistics
# =============================================================================

@dataclass
class CheckerStats:
    """Statistics about checks performed during a run."""
    slot_checks: int = 0
    room_searches: int = 0
    rejections: Counter = field(default_factory=Counter)

    def record(self, reason: Rejection) -> None:
        self.rejections[reason] += 1

    @property
    def total_rejections(self) -> int:
        return sum(self.rejections.values())


# =============================================================================
# Constraint Checker
# =============================================================================

class ConstraintChecker:
    """
    Applies the hard constraints to candidate allocations.

    Checks run cheapest and most selective first and stop at the first
    failure:

        1. shift compatibility
        2. teacher free in slot
        3. class free in slot
        4. slot is not a break
        5. no active teacher restriction covers the slot
        6. classroom free in slot
        7. classroom capacity >= class size
        8. special room type (ordering only, never rejects)

    Steps 5, 7 and 8 are skipped when the matching enforce_* setting is off.

    Usage:
        checker = ConstraintChecker(data, settings)
        if checker.check_slot(request, slot) is None:
            candidates = checker.find_rooms(request, slot)
    """

    def __init__(
        self,
        data: GenerationInput,
        settings: Optional[ScheduleGenerationSettings] = None,
        booking: Optional[BookingIndex] = None,
    ):
        self.data = data
        self.settings = settings or ScheduleGenerationSettings()
        self.booking = booking if booking is not None else BookingIndex()
        self.stats = CheckerStats()

    def check_slot(self, request: SessionRequest, slot: TimeSlot) -> Optional[Rejection]:
        """
        Run steps 1-5 for a request and slot, independent of room.

        Returns:
            The first failing Rejection, or None if the slot is usable
        """
        self.stats.slot_checks += 1
        reason = self._check_slot(request, slot)
        if reason is not None:
            self.stats.record(reason)
        return reason

    def _check_slot(self, request: SessionRequest, slot: TimeSlot) -> Optional[Rejection]:
        if not is_shift_compatible(request.class_shift, slot.shift):
            return Rejection.SHIFT_MISMATCH

        if self.booking.is_teacher_booked(slot.id, request.teacher_id):
            return Rejection.TEACHER_BOOKED

        if self.booking.is_class_booked(slot.id, request.class_id):
            return Rejection.CLASS_BOOKED

        if slot.is_break:
            return Rejection.BREAK_SLOT

        if self.settings.enforce_teacher_availability:
            restrictions = self.data.get_active_restrictions(request.teacher_id)
            if find_blocking_restriction(restrictions, slot) is not None:
                return Rejection.TEACHER_RESTRICTED

        return None

    def find_rooms(self, request: SessionRequest, slot: TimeSlot) -> RoomCandidates:
        """Run steps 6-8: free, large-enough rooms with special rooms first."""
        self.stats.room_searches += 1
        candidates = get_candidate_rooms(
            request,
            slot,
            self.data.classrooms,
            self.booking,
            enforce_capacity=self.settings.enforce_room_capacity,
            enforce_room_type=self.settings.enforce_subject_requirements,
        )
        if not candidates:
            self.stats.record(Rejection.NO_ROOM)
        return candidates

    def check(
        self,
        request: SessionRequest,
        slot: TimeSlot,
        room: Classroom,
    ) -> Optional[Rejection]:
        """
        Check a full (request, slot, room) triple against steps 1-7.

        Step 8 never rejects, so a room of the wrong type still passes.
        """
        reason = self.check_slot(request, slot)
        if reason is not None:
            return reason

        if self.booking.is_classroom_booked(slot.id, room.id):
            reason = Rejection.CLASSROOM_BOOKED
        elif self.settings.enforce_room_capacity and room.capacity < request.students_count:
            reason = Rejection.ROOM_TOO_SMALL

        if reason is not None:
            self.stats.record(reason)
        return reason

    def commit(self, request: SessionRequest, slot: TimeSlot, room: Classroom) -> None:
        """Book teacher, class and room for the slot."""
        self.booking.commit(slot.id, request.teacher_id, request.class_id, room.id)


__all__ = [
    # Booking
    "BookingIndex",
    # Availability
    "is_shift_compatible",
    "ranges_overlap",
    "restriction_blocks_slot",
    "find_blocking_restriction",
    # Rooms
    "RoomCandidates",
    "RoomSelector",
    "first_fit",
    "get_candidate_rooms",
    "is_special_room_fallback",
    # Checker
    "Rejection",
    "CheckerStats",
    "ConstraintChecker",
]
