"""
Overstay Guard.

Policy predicates consulted by the reconciliation runner before it commits
a transition. They keep an automatic sync from freeing a room whose guest
was never checked out by reception, and identify reservations that lapsed
without the guest ever arriving.
"""
from dataclasses import replace
from datetime import date

import room_status
from room_status import Booking, ResolvedState, Room

SYSTEM_ACTOR = "system"

# Room statuses a buggy automatic checkout leaves behind
ADVANCED_ROOM_STATUSES = frozenset({room_status.AVAILABLE, room_status.CLEANING})


def is_overstay(booking: Booking, today: date) -> bool:
    return booking.status == room_status.CHECKED_IN and today >= booking.check_out_date


def overstay_nights(booking: Booking, today: date) -> int:
    """Nights the guest has stayed past the booked checkout date."""
    return max((today - booking.check_out_date).days, 0)


def is_no_show(booking: Booking, today: date) -> bool:
    """A reservation whose whole stay has passed without a check-in."""
    return booking.status in room_status.RESERVED_STATUSES and today >= booking.check_out_date


def is_auto_checked_out(booking: Booking) -> bool:
    """
    True when the booking was checked out by an automatic job.

    Reception records the staff member performing a checkout. Legacy rows
    without an actor are treated as explicit checkouts.
    """
    return booking.status == room_status.CHECKED_OUT and booking.checked_out_by == SYSTEM_ACTOR


def select_revert_candidate(active_bookings, auto_checked_out, today: date) -> Booking | None:
    """
    Pick the automatically checked-out booking whose guest is still in the room.

    Only considered when nobody else is checked in; the most recent lapsed
    stay wins.
    """
    if any(b.status == room_status.CHECKED_IN for b in active_bookings):
        return None

    lapsed = [
        b for b in auto_checked_out
        if is_auto_checked_out(b) and today >= b.check_out_date
    ]
    if not lapsed:
        return None
    return max(lapsed, key=lambda b: (b.check_out_date, b.id))


def as_checked_in(booking: Booking) -> Booking:
    return replace(booking, status=room_status.CHECKED_IN, checked_out_by=None)


def effective_bookings(active, auto_checked_out, today: date) -> tuple[list[Booking], Booking | None]:
    """
    Bookings the resolver should see for a room, plus the revert candidate.

    A lapsed automatic checkout is viewed as still checked in, so every
    caller (sync, status board, availability search) derives the same state.
    """
    candidate = select_revert_candidate(active, auto_checked_out, today)
    effective = list(active)
    if candidate is not None:
        effective.append(as_checked_in(candidate))
    return effective, candidate


def requires_overstay_revert(room: Room, resolved: ResolvedState, candidate: Booking | None) -> bool:
    """
    Decide whether the overstay revert takes precedence for this room.

    It applies when the guest is overstaying and a previous run already
    advanced the booking to checked_out or the room to available/cleaning.
    A room under maintenance keeps its operator status.
    """
    if resolved.reason != room_status.REASON_OVERSTAY:
        return False
    if room.status == room_status.MAINTENANCE:
        return False
    if candidate is not None and candidate.id == resolved.conflicting_booking_id:
        return True
    return room.status in ADVANCED_ROOM_STATUSES
