"""
Read-only availability views built on the room status resolver.

Nothing here writes to the database; the status board shows what the
reconciliation runner would derive so front desk screens and the sync agree.
"""
import logging

import database
import date_utils
import overstay_guard
import room_status
from repositories import BookingRepository, RoomRepository

logger = logging.getLogger(__name__)


def _load_rooms_with_bookings(as_of, db_path=None):
    """Each room with the same effective booking set the runner resolves."""
    conn = database.connect_db(db_path)
    try:
        rooms = RoomRepository(conn)
        bookings = BookingRepository(conn)
        loaded = []
        for room in rooms.list_all():
            effective, candidate = overstay_guard.effective_bookings(
                bookings.find_active_bookings_for_room(room.room_number),
                bookings.find_auto_checked_out_bookings_for_room(room.room_number),
                as_of,
            )
            loaded.append((room, effective, candidate))
        return loaded
    finally:
        conn.close()


def room_status_board(as_of=None, db_path=None) -> list[dict]:
    """
    Persisted and derived status for every room.

    derived_status == available does not mean bookable: the maintenance and
    same-day cleaning exclusions are applied only by find_bookable_rooms().
    """
    as_of = as_of or date_utils.get_today()
    board = []
    for room, effective, candidate in _load_rooms_with_bookings(as_of, db_path):
        entry = {
            "room_number": room.room_number,
            "floor": room.floor,
            "room_type_id": room.room_type_id,
            "status": room.status,
            "manual_override": room.status in room_status.MANUAL_STATUSES,
        }
        try:
            resolved = room_status.resolve(as_of, room, effective)
        except room_status.DataIntegrityError as e:
            logger.error(f"Status board: {e}")
            entry.update({
                "derived_status": None,
                "reason": "data_integrity_error",
                "conflicting_booking_id": None,
                "check_in_date": None,
                "check_out_date": None,
                "in_sync": False,
            })
        else:
            entry.update(resolved.to_dict())
            if overstay_guard.requires_overstay_revert(room, resolved, candidate):
                entry["in_sync"] = False
            else:
                entry["in_sync"] = entry["manual_override"] or resolved.derived_status == room.status
        board.append(entry)
    return board


def find_bookable_rooms(check_in, check_out, as_of=None, db_path=None) -> list[dict]:
    """
    Rooms that can take a new stay [check_in, check_out).

    Rooms under maintenance are never offered. A room being cleaned can be
    booked for later dates but not for a same-day arrival.

    Raises:
        ValueError: if check_in is not before check_out.
    """
    as_of = as_of or date_utils.get_today()
    if check_in >= check_out:
        raise ValueError("check_in must be before check_out")

    available = []
    for room, effective, _ in _load_rooms_with_bookings(as_of, db_path):
        if room.status == room_status.MAINTENANCE:
            continue
        if room.status == room_status.CLEANING and check_in <= as_of:
            continue
        if not room_status.is_bookable(as_of, effective, check_in, check_out):
            continue
        available.append({
            "room_number": room.room_number,
            "floor": room.floor,
            "room_type_id": room.room_type_id,
            "price": room.price,
            "status": room.status,
        })
    return available
