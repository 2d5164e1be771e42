"""
Insert demo rooms and bookings covering each reconciliation case.
Run after init_db.py; dates are relative to the hotel-local today.
"""
import sqlite3
from datetime import timedelta

import config
import date_utils


def main(db_path=None):
    db_path = db_path or config.DB_PATH
    conn = sqlite3.connect(db_path)

    today = date_utils.get_today()
    yesterday = today - timedelta(days=1)
    tomorrow = today + timedelta(days=1)

    rooms = [
        ("101", 1, 1, 2500.0, "available"),
        ("102", 1, 1, 2500.0, "occupied"),     # stale: only a future reservation
        ("103", 2, 1, 3200.0, "available"),
        ("104", 2, 1, 3200.0, "maintenance"),  # operator override
        ("105", 2, 1, 3200.0, "cleaning"),     # auto-checked-out guest still in room
        ("201", 3, 2, 4500.0, "available"),
    ]
    conn.executemany("""
        INSERT INTO rooms (room_number, room_type_id, floor, price, status)
        VALUES (?, ?, ?, ?, ?);
    """, rooms)

    bookings = [
        ("102", 11, str(today + timedelta(days=4)), str(today + timedelta(days=5)), "confirmed", None),
        ("103", 12, str(yesterday), str(tomorrow), "checked_in", None),
        ("104", 13, str(today), str(tomorrow), "confirmed", None),
        ("105", 14, str(today - timedelta(days=2)), str(yesterday), "checked_out", "system"),
        ("201", 15, str(today - timedelta(days=3)), str(yesterday), "confirmed", None),  # never arrived
        ("201", 16, str(today), str(today + timedelta(days=2)), "pending", None),
    ]
    conn.executemany("""
        INSERT INTO bookings (room_number, guest_id, check_in_date, check_out_date, status, checked_out_by)
        VALUES (?, ?, ?, ?, ?, ?);
    """, bookings)

    conn.commit()
    conn.close()
    print("OK: inserted sample rooms and bookings")


if __name__ == "__main__":
    main()
