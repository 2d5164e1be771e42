"""
SQLite-backed collaborators for the reconciliation runner.

Each repository works on a connection owned by the caller, so all reads and
writes for one room happen inside the runner's transaction.
"""
import json
import logging
import sqlite3
from functools import wraps

import date_utils
import room_status
from overstay_guard import SYSTEM_ACTOR
from room_status import Booking, Room

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Reading or writing room/booking state failed."""


class RoomNotFoundError(RepositoryError):
    def __init__(self, room_number):
        self.room_number = room_number
        super().__init__(f"Room {room_number} not found")


def wrap_db_errors(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except sqlite3.Error as e:
            raise RepositoryError(f"{f.__name__} failed: {e}") from e
    return decorated_function


def row_to_room(row: dict) -> Room:
    return Room(
        room_number=str(row["room_number"]),
        status=row["status"],
        price=row.get("price"),
        floor=row.get("floor"),
        room_type_id=row.get("room_type_id"),
    )


def row_to_booking(row: dict) -> Booking:
    check_in = date_utils.parse_date_input(row["check_in_date"])
    check_out = date_utils.parse_date_input(row["check_out_date"])
    if check_in is None or check_out is None:
        raise RepositoryError(f"Booking {row['id']} has unreadable stay dates")
    return Booking(
        id=row["id"],
        room_number=str(row["room_number"]),
        check_in_date=check_in,
        check_out_date=check_out,
        status=row["status"],
        guest_id=row.get("guest_id"),
        checked_out_by=row.get("checked_out_by"),
        notes=row.get("notes"),
    )


class RoomRepository:
    def __init__(self, conn):
        self.conn = conn

    @wrap_db_errors
    def get(self, room_number) -> Room:
        row = self.conn.execute(
            "SELECT * FROM rooms WHERE room_number = ?", (str(room_number),)
        ).fetchone()
        if not row:
            raise RoomNotFoundError(room_number)
        return row_to_room(row)

    @wrap_db_errors
    def list_all(self) -> list[Room]:
        rows = self.conn.execute("SELECT * FROM rooms").fetchall()
        rooms = [row_to_room(row) for row in rows]
        rooms.sort(key=lambda room: date_utils.room_sort_key(room.room_number))
        return rooms

    @wrap_db_errors
    def update_status(self, room_number, status: str):
        if status not in room_status.ROOM_STATUSES:
            raise ValueError(f"Unknown room status: {status}")
        cursor = self.conn.execute("""
            UPDATE rooms
            SET status = ?, updated_at = ?
            WHERE room_number = ?
        """, (status, date_utils.local_timestamp(), str(room_number)))
        if cursor.rowcount == 0:
            raise RoomNotFoundError(room_number)


class BookingRepository:
    def __init__(self, conn):
        self.conn = conn

    @wrap_db_errors
    def find_active_bookings_for_room(self, room_number) -> list[Booking]:
        """Pending, confirmed and checked-in bookings for the room, any date."""
        rows = self.conn.execute("""
            SELECT * FROM bookings
            WHERE room_number = ?
            AND status IN ('pending', 'confirmed', 'checked_in')
            ORDER BY check_in_date ASC, id ASC
        """, (str(room_number),)).fetchall()
        return [row_to_booking(row) for row in rows]

    @wrap_db_errors
    def find_auto_checked_out_bookings_for_room(self, room_number) -> list[Booking]:
        """
        Bookings checked out by an automatic job with no later stay in the room.

        A later check-in on the same room proves the earlier guest left, so
        those bookings are never candidates for an overstay revert.
        """
        rows = self.conn.execute("""
            SELECT b.* FROM bookings b
            WHERE b.room_number = ?
            AND b.status = 'checked_out'
            AND b.checked_out_by = ?
            AND NOT EXISTS (
                SELECT 1 FROM bookings later
                WHERE later.room_number = b.room_number
                AND later.id != b.id
                AND later.status IN ('checked_in', 'checked_out')
                AND date(later.check_in_date) >= date(b.check_out_date)
            )
            ORDER BY b.check_out_date DESC, b.id DESC
        """, (str(room_number), SYSTEM_ACTOR)).fetchall()
        return [row_to_booking(row) for row in rows]

    @wrap_db_errors
    def update_booking_status(self, booking_id, status: str, note: str | None = None):
        if status not in room_status.BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {status}")

        now = date_utils.local_timestamp()
        note_line = f"{note} {now}" if note else None
        checked_out_by_clause = ", checked_out_by = NULL" if status != room_status.CHECKED_OUT else ""
        cursor = self.conn.execute(f"""
            UPDATE bookings
            SET status = ?,
                notes = CASE
                    WHEN ? IS NULL THEN notes
                    WHEN notes IS NULL OR notes = '' THEN ?
                    ELSE notes || char(10) || ?
                END,
                updated_at = ?{checked_out_by_clause}
            WHERE id = ?
        """, (status, note_line, note_line, note_line, now, booking_id))
        if cursor.rowcount == 0:
            raise RepositoryError(f"Booking {booking_id} not found")


class ActivityLog:
    """Append-only audit trail stored in activity_logs."""

    def __init__(self, conn):
        self.conn = conn

    @wrap_db_errors
    def record(self, action: str, table_name: str, record_id, details: dict, actor=SYSTEM_ACTOR, user_id=None):
        self.conn.execute("""
            INSERT INTO activity_logs (user_id, action, table_name, record_id, details, actor, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            user_id,
            action,
            table_name,
            str(record_id),
            json.dumps(details, default=str, sort_keys=True),
            str(actor),
            date_utils.local_timestamp(),
        ))
        logger.debug(f"Audit {action} on {table_name} {record_id}")
