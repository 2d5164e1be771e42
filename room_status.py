"""
Room Status Resolver.

Derives a room's availability state from its bookings and the business
date. This is the one place the derivation lives: the nightly sync, the
manual sync endpoint and the availability read all call resolve().

The resolver performs no I/O and never mutates its inputs.
"""
from dataclasses import dataclass, asdict
from datetime import date, timedelta

# Room statuses
AVAILABLE = "available"
BOOKED = "booked"
PREBOOKED = "prebooked"
OCCUPIED = "occupied"
MAINTENANCE = "maintenance"
CLEANING = "cleaning"

ROOM_STATUSES = (AVAILABLE, BOOKED, PREBOOKED, OCCUPIED, MAINTENANCE, CLEANING)

# Operator-set statuses; automatic reconciliation never produces these.
MANUAL_STATUSES = frozenset({MAINTENANCE, CLEANING})

# Booking statuses
PENDING = "pending"
CONFIRMED = "confirmed"
CHECKED_IN = "checked_in"
CHECKED_OUT = "checked_out"
CANCELLED = "cancelled"
NO_SHOW = "no_show"

BOOKING_STATUSES = (PENDING, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED, NO_SHOW)
RESERVED_STATUSES = frozenset({PENDING, CONFIRMED})
ACTIVE_BOOKING_STATUSES = frozenset({PENDING, CONFIRMED, CHECKED_IN})

# Reasons reported with a derived status
REASON_OCCUPIED = "occupied"
REASON_OVERSTAY = "occupied_overstay"
REASON_BOOKED = "booked"
REASON_PREBOOKED = "prebooked"
REASON_AVAILABLE = "available"


class DataIntegrityError(Exception):
    """More than one checked-in booking exists for a single room."""

    def __init__(self, room_number, booking_ids):
        self.room_number = room_number
        self.booking_ids = sorted(booking_ids)
        ids = ", ".join(str(booking_id) for booking_id in self.booking_ids)
        super().__init__(
            f"Room {room_number} has {len(self.booking_ids)} checked-in bookings ({ids})"
        )


@dataclass(frozen=True)
class Room:
    room_number: str
    status: str
    price: float | None = None
    floor: int | None = None
    room_type_id: int | None = None


@dataclass(frozen=True)
class Booking:
    id: int
    room_number: str
    check_in_date: date
    check_out_date: date
    status: str
    guest_id: int | None = None
    checked_out_by: str | None = None
    notes: str | None = None

    def covers(self, day: date) -> bool:
        """True when the night of `day` falls inside [check_in, check_out)."""
        return self.check_in_date <= day < self.check_out_date


@dataclass(frozen=True)
class ResolvedState:
    derived_status: str
    reason: str
    conflicting_booking_id: int | None = None
    check_in_date: date | None = None
    check_out_date: date | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("check_in_date", "check_out_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


def booking_order(booking: Booking):
    return (booking.check_in_date, booking.check_out_date, booking.id)


def _state_for(status: str, reason: str, booking: Booking | None = None) -> ResolvedState:
    if booking is None:
        return ResolvedState(status, reason)
    return ResolvedState(
        derived_status=status,
        reason=reason,
        conflicting_booking_id=booking.id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
    )


def checked_in_booking(room_number: str, bookings) -> Booking | None:
    """
    Return the room's single checked-in booking, if any.

    Raises:
        DataIntegrityError: if more than one booking is checked in.
    """
    checked_in = [b for b in bookings if b.status == CHECKED_IN]
    if len(checked_in) > 1:
        raise DataIntegrityError(room_number, [b.id for b in checked_in])
    return checked_in[0] if checked_in else None


def resolve(today: date, room: Room, bookings) -> ResolvedState:
    """
    Compute the canonical availability state of a room.

    Rules are evaluated in priority order and the first match wins:

    1. A checked-in guest makes the room occupied. If the stay window has
       lapsed without a checkout the reason is ``occupied_overstay``.
    2. A pending/confirmed booking covering today makes it booked.
    3. A pending/confirmed booking starting after today makes it prebooked;
       the earliest such booking's dates are reported.
    4. Otherwise the room is available.

    Args:
        today (date): Business date to evaluate against.
        room (Room): The room being resolved.
        bookings (iterable[Booking]): Candidate bookings. Bookings for other
            rooms and non-active statuses are ignored.

    Returns:
        ResolvedState

    Raises:
        DataIntegrityError: if more than one booking is checked in.
    """
    candidates = sorted(
        (
            b for b in bookings
            if b.room_number == room.room_number and b.status in ACTIVE_BOOKING_STATUSES
        ),
        key=booking_order,
    )

    guest = checked_in_booking(room.room_number, candidates)
    if guest is not None:
        # A checked-in guest holds the room even if the check-in date was
        # never amended after an early arrival.
        if today >= guest.check_out_date:
            return _state_for(OCCUPIED, REASON_OVERSTAY, guest)
        return _state_for(OCCUPIED, REASON_OCCUPIED, guest)

    reserved = [b for b in candidates if b.status in RESERVED_STATUSES]

    for booking in reserved:
        if booking.covers(today):
            return _state_for(BOOKED, REASON_BOOKED, booking)

    for booking in reserved:
        if booking.check_in_date > today:
            return _state_for(PREBOOKED, REASON_PREBOOKED, booking)

    return _state_for(AVAILABLE, REASON_AVAILABLE)


def blocked_interval(booking: Booking, today: date) -> tuple[date, date]:
    """
    The date range a booking keeps the room unavailable for.

    An overstaying guest blocks the room through tonight, since nobody can
    check in until they are checked out.
    """
    end = booking.check_out_date
    if booking.status == CHECKED_IN and today >= end:
        end = today + timedelta(days=1)
    return booking.check_in_date, end


def is_bookable(today: date, bookings, check_in: date, check_out: date) -> bool:
    """
    Check whether a new stay [check_in, check_out) fits around existing bookings.

    Same-day turnover is allowed because intervals are half-open, but only
    behind guests who are no longer checked in.
    """
    if check_in >= check_out:
        raise ValueError("check_in must be before check_out")

    for booking in bookings:
        if booking.status not in ACTIVE_BOOKING_STATUSES:
            continue
        start, end = blocked_interval(booking, today)
        if start < check_out and check_in < end:
            return False
    return True
