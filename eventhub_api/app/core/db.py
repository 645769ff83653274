"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), an autocommitting cursor (``get_cursor``), a
serialized write transaction (``transaction``) and applying migrations
on application start (``init_db``).

Events, users and admin accounts are stored as rows whose
document-shaped fields (location, tags, sessions, permissions, ...) are
kept as JSON text.  Attendee records live in ``event_attendees``; a
user's attended and organized events are derived from that table and
from ``events.organizer_id`` rather than stored on the user row.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import json
import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .config import settings


logger = logging.getLogger(__name__)


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: accounts, events and attendee records
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            name TEXT NOT NULL,
            profile_image TEXT,
            bio TEXT,
            company TEXT,
            job_title TEXT,
            phone TEXT,
            interests TEXT,
            social_links TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            last_login TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS admin_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user',
            permissions TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 1,
            last_login TIMESTAMP,
            login_attempts INTEGER NOT NULL DEFAULT 0,
            lock_until TIMESTAMP,
            created_by INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(created_by) REFERENCES admin_users(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            organizer_id INTEGER NOT NULL,
            category TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'draft',
            date_time TIMESTAMP NOT NULL,
            end_date_time TIMESTAMP NOT NULL,
            location TEXT NOT NULL,
            is_virtual INTEGER NOT NULL DEFAULT 0,
            virtual_link TEXT,
            capacity INTEGER NOT NULL CHECK (capacity >= 1),
            price REAL NOT NULL DEFAULT 0,
            currency TEXT NOT NULL DEFAULT 'USD',
            images TEXT,
            cover_image TEXT,
            tags TEXT,
            sessions TEXT,
            sponsors TEXT,
            settings TEXT NOT NULL,
            views INTEGER NOT NULL DEFAULT 0,
            shares INTEGER NOT NULL DEFAULT 0,
            registration_conversion REAL NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(organizer_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS event_attendees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            registered_at TIMESTAMP NOT NULL,
            status TEXT NOT NULL DEFAULT 'registered',
            check_in_time TIMESTAMP,
            ticket_type TEXT,
            UNIQUE(event_id, user_id),
            FOREIGN KEY(event_id) REFERENCES events(id) ON DELETE CASCADE,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_events_date_status ON events(date_time, status);
        CREATE INDEX IF NOT EXISTS idx_events_organizer ON events(organizer_id);
        CREATE INDEX IF NOT EXISTS idx_events_category ON events(category);
        CREATE INDEX IF NOT EXISTS idx_attendees_user ON event_attendees(user_id);
        """,
    ),
    # Migration 2: symmetric user connections
    (
        2,
        """
        -- Each connection is stored twice, once per direction, so that a
        -- user's connections are a single indexed lookup.
        CREATE TABLE IF NOT EXISTS user_connections (
            user_id INTEGER NOT NULL,
            connected_user_id INTEGER NOT NULL,
            created_at TIMESTAMP NOT NULL,
            PRIMARY KEY(user_id, connected_user_id),
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(connected_user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # eventhub_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Timestamps are stored as ISO strings and are returned
    untouched; see ``core.timeutils`` for parsing.
    """
    conn = sqlite3.connect(get_database_path(), timeout=settings.database_timeout)
    conn.row_factory = sqlite3.Row
    # Foreign key enforcement is per connection in SQLite.  The attendee
    # and connection tables rely on ON DELETE CASCADE.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction() -> Iterator[sqlite3.Cursor]:
    """Run a read-modify-write sequence as one serialized transaction.

    ``BEGIN IMMEDIATE`` takes SQLite's write lock before the first read,
    so two requests mutating the same event cannot both read a stale
    attendee list.  The transaction is rolled back if the body raises.
    """
    conn = get_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn.cursor()
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def to_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, separators=(",", ":"))


def from_json(raw: str | None, default: Any = None) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed JSON column value: %r", raw[:80])
        return default


def ping() -> float:
    """Run a trivial query and return its round trip in milliseconds."""
    started = time.perf_counter()
    with get_cursor() as cursor:
        cursor.execute("SELECT 1").fetchone()
    return (time.perf_counter() - started) * 1000


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  If you add a new migration, append it with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                logger.info("Applied database migration %s", version)
                current_version = version
