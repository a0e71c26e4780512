"""
SQLite storage for the records table.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(get_db_path(), timeout=30)
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    ensure_db_directory()

    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS records (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                content TEXT,
                name TEXT,
                email TEXT,
                subject TEXT,
                message TEXT,
                status TEXT NOT NULL DEFAULT 'NEW',
                sheet_type TEXT,
                sheet_id TEXT,
                sheet_url TEXT,
                station TEXT,
                month TEXT,
                observation_id TEXT,
                ip_address TEXT,
                user_agent TEXT,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP
            )
        ''')

        # Secondary lookup indexes
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_records_type_created ON records(type, created_at DESC)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_records_email_type ON records(email, type)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_records_status ON records(status)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_records_station_sheet_type ON records(station, sheet_type)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_records_sheet_type_month ON records(sheet_type, month)')

        # Sparse uniqueness: only rows that set sheet_id take part
        cursor.execute('''
            CREATE UNIQUE INDEX IF NOT EXISTS idx_records_sheet_id
            ON records(sheet_id) WHERE sheet_id IS NOT NULL
        ''')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            tables = cursor.fetchall()

            table_names = [table[0] for table in tables]
            return 'records' in table_names
    except sqlite3.Error:
        return False
