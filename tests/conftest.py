"""
Pytest configuration and fixtures for room status reconciliation tests.
"""
import os
import sys
import json
import shutil
import sqlite3
import tempfile

# Set test environment BEFORE importing project modules
os.environ['FLASK_ENV'] = 'testing'
os.environ['SECRET_KEY'] = 'test-secret-key-not-for-production'
os.environ['HOTEL_TIMEZONE'] = 'Asia/Kolkata'
os.environ['LOG_FILE'] = os.path.join(tempfile.gettempdir(), 'room_status_tests.log')

# Add parent directory to path to import project modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

import init_db


@pytest.fixture(scope="function")
def test_db_path():
    """Create a temporary test database with the full schema."""
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, "test_hotel.db")

    init_db.init_db(db_path)

    yield db_path

    # Cleanup
    shutil.rmtree(temp_dir)


def _connect(db_path):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@pytest.fixture
def add_room(test_db_path):
    """Insert a room and return its room number."""
    def _add_room(room_number, status="available", price=2500.0, floor=1, room_type_id=1):
        conn = _connect(test_db_path)
        conn.execute("""
            INSERT INTO rooms (room_number, room_type_id, floor, price, status)
            VALUES (?, ?, ?, ?, ?)
        """, (room_number, room_type_id, floor, price, status))
        conn.commit()
        conn.close()
        return room_number
    return _add_room


@pytest.fixture
def add_booking(test_db_path):
    """Insert a booking and return its id."""
    def _add_booking(room_number, check_in, check_out, status="confirmed", checked_out_by=None, guest_id=1):
        conn = _connect(test_db_path)
        cursor = conn.execute("""
            INSERT INTO bookings (room_number, guest_id, check_in_date, check_out_date, status, checked_out_by)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (room_number, guest_id, str(check_in), str(check_out), status, checked_out_by))
        booking_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return booking_id
    return _add_booking


@pytest.fixture
def room_status_of(test_db_path):
    def _room_status_of(room_number):
        conn = _connect(test_db_path)
        row = conn.execute("SELECT status FROM rooms WHERE room_number = ?", (room_number,)).fetchone()
        conn.close()
        return row["status"] if row else None
    return _room_status_of


@pytest.fixture
def booking_row(test_db_path):
    def _booking_row(booking_id):
        conn = _connect(test_db_path)
        row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        conn.close()
        return dict(row) if row else None
    return _booking_row


@pytest.fixture
def audit_entries(test_db_path):
    """Return activity log rows (details decoded), optionally filtered by action."""
    def _audit_entries(action=None):
        conn = _connect(test_db_path)
        if action:
            rows = conn.execute(
                "SELECT * FROM activity_logs WHERE action = ? ORDER BY id", (action,)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM activity_logs ORDER BY id").fetchall()
        conn.close()
        entries = []
        for row in rows:
            entry = dict(row)
            entry["details"] = json.loads(entry["details"]) if entry["details"] else None
            entries.append(entry)
        return entries
    return _audit_entries


@pytest.fixture
def client(test_db_path):
    """Flask test client bound to the temporary database."""
    from app import app

    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    original_db_path = app.config['DB_PATH']
    app.config['DB_PATH'] = test_db_path

    with app.test_client() as test_client:
        yield test_client

    app.config['DB_PATH'] = original_db_path
    app.config['WTF_CSRF_ENABLED'] = True
