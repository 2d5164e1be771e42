"""
This script is for local development only. Do not run in production.
Database initialization script for room status reconciliation.
Run this once to create/reset the database schema.
"""
import sqlite3

import config
import upgrade_db

DB_PATH = config.DB_PATH


def init_db(db_path=None):
    db_path = db_path or DB_PATH
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    # Drop existing tables if they exist (for clean reset)
    cursor.execute("DROP TABLE IF EXISTS activity_logs")
    cursor.execute("DROP TABLE IF EXISTS bookings")
    cursor.execute("DROP TABLE IF EXISTS rooms")

    upgrade_db.upgrade(cursor)

    conn.commit()
    conn.close()
    print(f"Database initialized at: {db_path}")


if __name__ == "__main__":
    init_db()
