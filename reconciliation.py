"""
Reconciliation Runner.

Applies the room status resolver to one room or to every room and keeps
rooms.status consistent with it. Each room is reconciled in its own
transaction:

- R1  derived status equals persisted status: nothing is written.
- R2  they differ: the room status is updated and audited.
- R3  the room is under maintenance/cleaning: operator status is kept.
- R4  the guest is overstaying but a previous run advanced the booking to
      checked_out or the room to available/cleaning: both are reverted.

Bookings whose whole stay passed without a check-in are marked no_show
along the way.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, asdict, field

import config
import database
import date_utils
import overstay_guard
import room_status
from repositories import ActivityLog, BookingRepository, RoomRepository

logger = logging.getLogger(__name__)

ACTION_UNCHANGED = "unchanged"
ACTION_UPDATED = "updated"
ACTION_SKIPPED = "skipped_manual_override"
ACTION_OVERSTAY = "overstay_corrected"
ACTION_CRITICAL = "critical"
ACTION_ERROR = "error"

REASON_DATA_INTEGRITY = "data_integrity_error"
REASON_FAILED = "reconciliation_failed"

OVERSTAY_NOTE = "Overstay detected - guest still in room. Auto-reverted to checked_in."
NO_SHOW_NOTE = "No-show detected - guest never checked in."


@dataclass
class ReconciliationResult:
    room_number: str
    old_status: str | None
    new_status: str | None
    reason: str | None
    action: str
    message: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BatchReconciliationResult:
    results: list = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "results": [result.to_dict() for result in self.results],
            "summary": dict(self.summary),
        }


def summarize(results) -> dict:
    summary = {"updated": 0, "unchanged": 0, "skipped": 0, "errors": 0, "critical": 0, "total": len(results)}
    for result in results:
        if result.action in (ACTION_UPDATED, ACTION_OVERSTAY):
            summary["updated"] += 1
        elif result.action == ACTION_UNCHANGED:
            summary["unchanged"] += 1
        elif result.action == ACTION_SKIPPED:
            summary["skipped"] += 1
        else:
            summary["errors"] += 1
            if result.action == ACTION_CRITICAL:
                summary["critical"] += 1
    return summary


class Reconciler:
    def __init__(self, db_path=None, max_workers=None, mark_no_shows=None):
        self.db_path = db_path or config.DB_PATH
        self.max_workers = max_workers or config.RECONCILE_MAX_WORKERS
        if mark_no_shows is None:
            mark_no_shows = config.RECONCILE_MARK_NO_SHOWS
        self.mark_no_shows = mark_no_shows

    def reconcile_room(self, room_number, as_of=None) -> ReconciliationResult:
        """
        Reconcile a single room.

        Args:
            room_number: Room to reconcile.
            as_of (date, optional): Business date. Defaults to the hotel-local today.

        Returns:
            ReconciliationResult. Multiple checked-in bookings come back as a
            ``critical`` result with the room untouched.

        Raises:
            RepositoryError: if room or booking state cannot be read or written.
        """
        as_of = as_of or date_utils.get_today()
        room_number = str(room_number).strip()
        return database.run_transaction(
            lambda conn: self._reconcile_in_transaction(conn, room_number, as_of),
            db_path=self.db_path,
        )

    def reconcile_all(self, as_of=None) -> BatchReconciliationResult:
        """
        Reconcile every room, one transaction per room.

        A failure on one room is captured as an ``error`` result and never
        aborts the rest of the batch.
        """
        as_of = as_of or date_utils.get_today()
        room_numbers = self.list_room_numbers()
        logger.info(f"Reconciling {len(room_numbers)} rooms as of {as_of.isoformat()}")

        results = []
        if room_numbers:
            workers = min(self.max_workers, len(room_numbers))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as executor:
                results = list(executor.map(lambda number: self._reconcile_isolated(number, as_of), room_numbers))

        results.sort(key=lambda result: date_utils.room_sort_key(result.room_number))
        summary = summarize(results)
        logger.info(
            f"Reconciliation finished: {summary['updated']} updated, {summary['unchanged']} unchanged, "
            f"{summary['skipped']} skipped, {summary['errors']} errors"
        )
        return BatchReconciliationResult(results=results, summary=summary)

    def list_room_numbers(self) -> list[str]:
        conn = database.connect_db(self.db_path)
        try:
            return [room.room_number for room in RoomRepository(conn).list_all()]
        finally:
            conn.close()

    def _reconcile_isolated(self, room_number, as_of) -> ReconciliationResult:
        try:
            return self.reconcile_room(room_number, as_of)
        except Exception as e:
            logger.exception(f"Reconciliation failed for room {room_number}")
            self._record_failure(room_number, as_of, e)
            return ReconciliationResult(
                room_number=str(room_number),
                old_status=None,
                new_status=None,
                reason=REASON_FAILED,
                action=ACTION_ERROR,
                message=str(e),
            )

    def _record_failure(self, room_number, as_of, error):
        """Audit a failed room in its own transaction; the room's own one was rolled back."""
        def record(conn):
            ActivityLog(conn).record(REASON_FAILED, "rooms", str(room_number), {
                "error": str(error),
                "error_type": type(error).__name__,
                "as_of": as_of.isoformat(),
            })

        try:
            database.run_transaction(record, db_path=self.db_path)
        except Exception:
            logger.exception(f"Could not audit failed reconciliation for room {room_number}")

    def _reconcile_in_transaction(self, conn, room_number, today) -> ReconciliationResult:
        rooms = RoomRepository(conn)
        bookings = BookingRepository(conn)
        audit = ActivityLog(conn)

        room = rooms.get(room_number)
        active = bookings.find_active_bookings_for_room(room.room_number)
        auto_checked_out = bookings.find_auto_checked_out_bookings_for_room(room.room_number)

        effective, candidate = overstay_guard.effective_bookings(active, auto_checked_out, today)

        try:
            resolved = room_status.resolve(today, room, effective)
        except room_status.DataIntegrityError as e:
            logger.error(f"Data integrity error: {e}")
            audit.record("data_integrity_error", "rooms", room.room_number, {
                "room_status": room.status,
                "checked_in_booking_ids": e.booking_ids,
                "as_of": today.isoformat(),
            })
            return ReconciliationResult(
                room_number=room.room_number,
                old_status=room.status,
                new_status=room.status,
                reason=REASON_DATA_INTEGRITY,
                action=ACTION_CRITICAL,
                message=str(e),
            )

        if self.mark_no_shows:
            self._mark_no_shows(bookings, audit, active, today)

        if overstay_guard.requires_overstay_revert(room, resolved, candidate):
            return self._revert_overstay(rooms, bookings, audit, room, resolved, candidate, effective, today)

        if room.status in room_status.MANUAL_STATUSES:
            logger.info(
                f"Room {room.room_number}: {room.status} is an operator status, "
                f"skipping (derived {resolved.derived_status})"
            )
            return ReconciliationResult(
                room_number=room.room_number,
                old_status=room.status,
                new_status=room.status,
                reason=resolved.reason,
                action=ACTION_SKIPPED,
            )

        if resolved.derived_status == room.status:
            return ReconciliationResult(
                room_number=room.room_number,
                old_status=room.status,
                new_status=room.status,
                reason=resolved.reason,
                action=ACTION_UNCHANGED,
            )

        rooms.update_status(room.room_number, resolved.derived_status)
        audit.record("room_status_updated", "rooms", room.room_number, {
            "old_status": room.status,
            "new_status": resolved.derived_status,
            "reason": resolved.reason,
            "booking_id": resolved.conflicting_booking_id,
            "as_of": today.isoformat(),
        })
        logger.info(f"Room {room.room_number}: {room.status} -> {resolved.derived_status} ({resolved.reason})")
        return ReconciliationResult(
            room_number=room.room_number,
            old_status=room.status,
            new_status=resolved.derived_status,
            reason=resolved.reason,
            action=ACTION_UPDATED,
        )

    def _mark_no_shows(self, bookings, audit, active, today):
        for booking in active:
            if not overstay_guard.is_no_show(booking, today):
                continue
            bookings.update_booking_status(booking.id, room_status.NO_SHOW, NO_SHOW_NOTE)
            audit.record("no_show_detected", "bookings", booking.id, {
                "room_number": booking.room_number,
                "old_status": booking.status,
                "new_status": room_status.NO_SHOW,
                "check_in_date": booking.check_in_date.isoformat(),
                "check_out_date": booking.check_out_date.isoformat(),
                "as_of": today.isoformat(),
            })
            logger.info(f"Booking {booking.id} in room {booking.room_number} marked no_show")

    def _revert_overstay(self, rooms, bookings, audit, room, resolved, candidate, effective, today):
        guest = next(b for b in effective if b.id == resolved.conflicting_booking_id)
        old_booking_status = room_status.CHECKED_IN

        if candidate is not None and candidate.id == guest.id:
            old_booking_status = candidate.status
            bookings.update_booking_status(candidate.id, room_status.CHECKED_IN, OVERSTAY_NOTE)

        if room.status != room_status.OCCUPIED:
            rooms.update_status(room.room_number, room_status.OCCUPIED)

        audit.record("overstay_detected", "bookings", guest.id, {
            "room_number": room.room_number,
            "old_room_status": room.status,
            "new_room_status": room_status.OCCUPIED,
            "old_booking_status": old_booking_status,
            "new_booking_status": room_status.CHECKED_IN,
            "check_out_date": guest.check_out_date.isoformat(),
            "overstay_nights": overstay_guard.overstay_nights(guest, today),
            "as_of": today.isoformat(),
        })
        logger.warning(
            f"Overstay in room {room.room_number}: booking {guest.id} kept checked_in, "
            f"room {room.status} -> {room_status.OCCUPIED}"
        )
        return ReconciliationResult(
            room_number=room.room_number,
            old_status=room.status,
            new_status=room_status.OCCUPIED,
            reason=resolved.reason,
            action=ACTION_OVERSTAY,
        )


def reconcile_room(room_number, as_of=None) -> ReconciliationResult:
    return Reconciler().reconcile_room(room_number, as_of)


def reconcile_all(as_of=None) -> BatchReconciliationResult:
    return Reconciler().reconcile_all(as_of)
