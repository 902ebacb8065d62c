"""
SQLite persistence for the catalog, chat sessions and runtime settings.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from . import config

REQUIRED_TABLES = ['salon_services', 'chat_sessions', 'chat_turns', 'settings']

# Text that sqlite3 cannot encode (e.g. lone surrogates) fails like any other write
DB_ERRORS = (sqlite3.Error, UnicodeError)


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path or config.DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with required tables."""
    config.ensure_db_directory(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        # Catalog rows, replaced wholesale by ingestion
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS salon_services (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                price TEXT NOT NULL,
                description TEXT NOT NULL,
                details TEXT,     -- JSON payload, loosely typed
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS chat_sessions (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        # Turns are read back ORDER BY id, so insertion order is transcript order
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS chat_turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,   -- 'user' or 'assistant'
                content TEXT NOT NULL,
                ts TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_chat_turns_session_id ON chat_turns(session_id, id)')

        conn.commit()


def health_check(db_path: Optional[str] = None):
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            return all(table in table_names for table in REQUIRED_TABLES)
    except sqlite3.Error:
        return False
