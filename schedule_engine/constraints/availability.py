"""
Availability predicates.

This module provides the time-based checks:
- Shift compatibility between a class and a time slot
- Teacher restrictions (whole-day and time-range unavailability)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from schedule_engine.data.models import Shift

if TYPE_CHECKING:
    from schedule_engine.data.models import TeacherRestriction, TimeSlot


def is_shift_compatible(class_shift: Shift, slot_shift: Shift) -> bool:
    """
    A class may use a slot when the shifts match or either side is 'full'.

    Example:
        >>> is_shift_compatible(Shift.MORNING, Shift.FULL)
        True
        >>> is_shift_compatible(Shift.MORNING, Shift.AFTERNOON)
        False
    """
    return class_shift == slot_shift or Shift.FULL in (class_shift, slot_shift)


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open [start, end) intervals overlap."""
    return start_a < end_b and start_b < end_a


def restriction_blocks_slot(restriction: TeacherRestriction, slot: TimeSlot) -> bool:
    """
    Check whether an active restriction makes a slot unusable.

    The day must match. Whole-day restrictions block every slot that day;
    time-bounded ones block slots whose [start, end) overlaps the
    restriction's [start, end), and block nothing without a range.
    """
    if not restriction.is_active:
        return False

    if restriction.day_of_week != slot.day_of_week:
        return False

    if restriction.covers_whole_day:
        return True

    if not restriction.has_range:
        return False

    return ranges_overlap(
        slot.start_minutes, slot.end_minutes,
        restriction.start_minutes, restriction.end_minutes,
    )


def find_blocking_restriction(
    restrictions: Iterable[TeacherRestriction],
    slot: TimeSlot,
) -> TeacherRestriction | None:
    """First restriction that blocks the slot, or None."""
    for restriction in restrictions:
        if restriction_blocks_slot(restriction, slot):
            return restriction
    return None
