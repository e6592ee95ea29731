"""
Room selection for session requests.

Room eligibility is a hard constraint on booking and capacity. The subject's
special room type only orders the candidates: matching rooms come first, and
when none is free any capacity-eligible room is used instead (a "fallback").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from schedule_engine.data.models import Classroom, TimeSlot
    from schedule_engine.demand import SessionRequest
    from .booking import BookingIndex


# Picks a room from the ordered candidate list. Replace to plug in a scorer.
RoomSelector = Callable[["SessionRequest", "TimeSlot", "list[Classroom]"], "Optional[Classroom]"]


@dataclass
class RoomCandidates:
    """Eligible rooms for one request in one slot, in preference order."""
    rooms: list[Classroom] = field(default_factory=list)
    preferred_count: int = 0  # Leading rooms that match the special room type
    booked_count: int = 0
    too_small_count: int = 0

    def __bool__(self) -> bool:
        return bool(self.rooms)

    @property
    def has_preferred(self) -> bool:
        return self.preferred_count > 0


def first_fit(request: SessionRequest, slot: TimeSlot, rooms: list[Classroom]) -> Optional[Classroom]:
    """Deterministic first-fit: take the first candidate."""
    return rooms[0] if rooms else None


def get_candidate_rooms(
    request: SessionRequest,
    slot: TimeSlot,
    classrooms: list[Classroom],
    booking: BookingIndex,
    enforce_capacity: bool = True,
    enforce_room_type: bool = True,
) -> RoomCandidates:
    """
    Build the ordered candidate list for a request in a slot.

    Args:
        request: The session request being placed
        slot: Candidate time slot
        classrooms: All classrooms in stable input order
        booking: Current booking index
        enforce_capacity: Drop rooms smaller than the class
        enforce_room_type: Put rooms of the special room type first

    Returns:
        RoomCandidates with matching rooms first, then the rest
    """
    candidates = RoomCandidates()
    preferred: list[Classroom] = []
    others: list[Classroom] = []

    wanted_type = request.special_room_type if request.requires_special_room else None

    for room in classrooms:
        if booking.is_classroom_booked(slot.id, room.id):
            candidates.booked_count += 1
            continue

        if enforce_capacity and room.capacity < request.students_count:
            candidates.too_small_count += 1
            continue

        if enforce_room_type and wanted_type is not None and room.type == wanted_type:
            preferred.append(room)
        else:
            others.append(room)

    candidates.rooms = preferred + others
    candidates.preferred_count = len(preferred)
    return candidates


def is_special_room_fallback(request: SessionRequest, room: Classroom) -> bool:
    """The request wanted a special room type and got a different one."""
    return (
        request.requires_special_room
        and request.special_room_type is not None
        and room.type != request.special_room_type
    )
