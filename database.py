"""
SQLite connection helpers.
"""
import sqlite3

import config


def dict_factory(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect_db(db_path=None):
    conn = sqlite3.connect(db_path or config.DB_PATH, timeout=config.SQLITE_BUSY_TIMEOUT)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def run_transaction(ops, db_path=None, immediate=True):
    """
    Execute database operations within a transaction with rollback on error.

    With immediate=True the write lock is taken before the first read, so two
    concurrent reconciliation passes over the same room serialize instead of
    acting on the same snapshot.
    """
    conn = connect_db(db_path)
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        result = ops(conn)
        conn.commit()
        return result
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
