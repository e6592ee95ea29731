"""
Booking index for the schedule under construction.

Three membership sets keyed by (time slot, entity) give O(1) double-booking
checks. The index belongs to exactly one run and is discarded at run end.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BookingIndex:
    """Which teachers, classes and classrooms are taken in each time slot."""
    teacher_bookings: set[tuple[str, str]] = field(default_factory=set)
    class_bookings: set[tuple[str, str]] = field(default_factory=set)
    classroom_bookings: set[tuple[str, str]] = field(default_factory=set)

    def is_teacher_booked(self, slot_id: str, teacher_id: str) -> bool:
        return (slot_id, teacher_id) in self.teacher_bookings

    def is_class_booked(self, slot_id: str, class_id: str) -> bool:
        return (slot_id, class_id) in self.class_bookings

    def is_classroom_booked(self, slot_id: str, classroom_id: str) -> bool:
        return (slot_id, classroom_id) in self.classroom_bookings

    def commit(self, slot_id: str, teacher_id: str, class_id: str, classroom_id: str) -> None:
        """
        Book all three resources for a slot.

        Either all three bookings are added or, if any is already taken,
        none is and ValueError is raised.
        """
        if self.is_teacher_booked(slot_id, teacher_id):
            raise ValueError(f"Teacher {teacher_id} already booked in slot {slot_id}")
        if self.is_class_booked(slot_id, class_id):
            raise ValueError(f"Class {class_id} already booked in slot {slot_id}")
        if self.is_classroom_booked(slot_id, classroom_id):
            raise ValueError(f"Classroom {classroom_id} already booked in slot {slot_id}")

        self.teacher_bookings.add((slot_id, teacher_id))
        self.class_bookings.add((slot_id, class_id))
        self.classroom_bookings.add((slot_id, classroom_id))

    def __len__(self) -> int:
        return len(self.class_bookings)
