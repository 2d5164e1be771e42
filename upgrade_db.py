"""
Unified, idempotent migration for the room status schema.
Run with:  python upgrade_db.py [path/to/hotel.db]

Creates missing tables and adds the columns reconciliation relies on
(bookings.checked_out_by, bookings.notes, activity_logs.actor) to databases
created before they existed.
"""

import sqlite3
import sys

import config

DB_PATH = config.DB_PATH


# --- helpers ---------------------------------------------------------------

def connect(db_path=None):
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def table_exists(cur, name: str) -> bool:
    row = cur.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (name,),
    ).fetchone()
    return row is not None


def column_exists(cur, table: str, column: str) -> bool:
    cur.execute(f"PRAGMA table_info({table})")
    return column in [row[1] for row in cur.fetchall()]


# --- core schema pieces ----------------------------------------------------

def ensure_rooms(cur):
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS rooms (
            room_number TEXT PRIMARY KEY,
            room_type_id INTEGER,
            floor INTEGER,
            price REAL,
            status TEXT NOT NULL DEFAULT 'available'
                CHECK(status IN ('available','booked','prebooked','occupied','maintenance','cleaning')),
            created_at TIMESTAMP DEFAULT (datetime('now','localtime')),
            updated_at TIMESTAMP
        )
        """
    )
    if not column_exists(cur, "rooms", "updated_at"):
        cur.execute("ALTER TABLE rooms ADD COLUMN updated_at TIMESTAMP")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_rooms_status ON rooms(status)")


def ensure_bookings(cur):
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_number TEXT NOT NULL,
            guest_id INTEGER,
            check_in_date TEXT NOT NULL,
            check_out_date TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending','confirmed','checked_in','checked_out','cancelled','no_show')),
            checked_out_by TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT (datetime('now','localtime')),
            updated_at TIMESTAMP,
            FOREIGN KEY (room_number) REFERENCES rooms(room_number)
        )
        """
    )

    for col, ddl in [
        ("checked_out_by", "ALTER TABLE bookings ADD COLUMN checked_out_by TEXT"),
        ("notes", "ALTER TABLE bookings ADD COLUMN notes TEXT"),
        ("updated_at", "ALTER TABLE bookings ADD COLUMN updated_at TIMESTAMP"),
    ]:
        if not column_exists(cur, "bookings", col):
            cur.execute(ddl)

    cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_room_status ON bookings(room_number, status)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_bookings_dates ON bookings(check_in_date, check_out_date)")


def ensure_activity_logs(cur):
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            table_name TEXT NOT NULL,
            record_id TEXT NOT NULL,
            details TEXT,
            actor TEXT NOT NULL DEFAULT 'system',
            created_at TIMESTAMP DEFAULT (datetime('now','localtime'))
        )
        """
    )
    if not column_exists(cur, "activity_logs", "actor"):
        cur.execute("ALTER TABLE activity_logs ADD COLUMN actor TEXT NOT NULL DEFAULT 'system'")
    if not column_exists(cur, "activity_logs", "created_at"):
        cur.execute("ALTER TABLE activity_logs ADD COLUMN created_at TIMESTAMP")

    cur.execute("CREATE INDEX IF NOT EXISTS idx_activity_logs_action ON activity_logs(action)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_activity_logs_record ON activity_logs(table_name, record_id)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_activity_logs_created_at ON activity_logs(created_at)")


def upgrade(cur):
    ensure_rooms(cur)
    ensure_bookings(cur)
    ensure_activity_logs(cur)


# --- runner ---------------------------------------------------------------

def main(db_path=None):
    db_path = db_path or DB_PATH
    conn = connect(db_path)
    cur = conn.cursor()

    upgrade(cur)

    conn.commit()
    conn.close()
    print(f"Database upgraded/verified at {db_path}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
