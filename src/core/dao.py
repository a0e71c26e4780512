"""
Record store - persistence and lookups over the SQLite records table.

Every read returns typed Record values ordered newest first. Backend
failures surface as StorageError; sheetId uniqueness is enforced by the
unique index and surfaces as ConflictError.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from util.logging import logger

from .db import get_db
from .errors import ConflictError, NotFoundError, RecordValidationError, StorageError
from .lifecycle import prepare_for_insert
from .schema import RECORD_COLUMNS, SHEET_TYPES, STATIONS, STATUSES, Record
from .validation import RecordVariant, require_member, validate_record, validate_sheet_fields

_SELECT = f"SELECT {', '.join(RECORD_COLUMNS)} FROM records"
_NEWEST_FIRST = "ORDER BY created_at DESC, rowid DESC"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _to_record(row) -> Record:
    data = dict(zip(RECORD_COLUMNS, row))
    data['created_at'] = _parse_ts(data['created_at'])
    data['updated_at'] = _parse_ts(data['updated_at'])
    return Record(**data)


@contextmanager
def _storage_errors(operation: str):
    """Translate sqlite3 failures into the service error taxonomy."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        logger.log_operation(f"record.{operation}", "conflict", {"error": str(e)})
        raise ConflictError("sheetId already exists") from e
    except sqlite3.Error as e:
        logger.error(f"Database error during {operation}: {e}")
        raise StorageError(f"{operation} failed: {e}") from e


def _query(where: str, params: tuple) -> List[Record]:
    with _storage_errors("query"), get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"{_SELECT} WHERE {where} {_NEWEST_FIRST}", params)
        return [_to_record(row) for row in cursor.fetchall()]


def _fetch_one(conn: sqlite3.Connection, where: str, params: tuple) -> Optional[Record]:
    cursor = conn.cursor()
    cursor.execute(f"{_SELECT} WHERE {where}", params)
    row = cursor.fetchone()
    return _to_record(row) if row else None


def _insert(conn: sqlite3.Connection, record: RecordVariant) -> str:
    values = record.model_dump()
    values['id'] = str(uuid.uuid4())
    values['created_at'] = _now()
    values['updated_at'] = None

    row = {column: values.get(column) for column in RECORD_COLUMNS}
    placeholders = ', '.join(f":{column}" for column in RECORD_COLUMNS)
    conn.execute(f"INSERT INTO records ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})", row)
    return row['id']


def insert_record(record: RecordVariant) -> Record:
    """Persist a validated, prepared record and return the stored value."""
    with _storage_errors("insert"), get_db() as conn:
        record_id = _insert(conn, record)
        conn.commit()
        stored = _fetch_one(conn, "id = ?", (record_id,))

    logger.log_record_operation("insert", stored.type, stored.id)
    return stored


def get_record(record_id: str) -> Optional[Record]:
    """Get a single record by id."""
    with _storage_errors("get"), get_db() as conn:
        return _fetch_one(conn, "id = ?", (record_id,))


def find_by_type(record_type: str) -> List[Record]:
    """All records of one type, newest first."""
    return _query("type = ?", (record_type,))


def find_by_email_and_type(email: str, record_type: str) -> List[Record]:
    return _query("email = ? AND type = ?", (email.strip().lower(), record_type))


def find_by_status(status: str) -> List[Record]:
    return _query("status = ?", (status,))


def find_by_sheet_id(sheet_id: str) -> List[Record]:
    return _query("sheet_id = ?", (sheet_id,))


def find_by_station_and_sheet_type(station: str, sheet_type: str) -> List[Record]:
    return _query("station = ? AND sheet_type = ?", (station, sheet_type))


def find_by_sheet_type_and_month(sheet_type: str, month: str) -> List[Record]:
    return _query("sheet_type = ? AND month = ?", (sheet_type, month))


def delete_all_of_type(record_type: str) -> int:
    """Remove every record of a type. Returns the number removed."""
    with _storage_errors("delete_all"), get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM records WHERE type = ?", (record_type,))
        conn.commit()
        deleted = cursor.rowcount

    logger.log_record_operation("delete_all", record_type, details={"deleted": deleted})
    return deleted


def delete_one_of_type(record_type: str, record_id: str) -> Record:
    """Remove one record matching both type and id.

    Raises NotFoundError when nothing matches; the store is left unchanged.
    Lookup and delete share one write transaction, so only one of several
    concurrent deletes of the same record reports it as removed.
    """
    with _storage_errors("delete_one"), get_db() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            existing = _fetch_one(conn, "id = ? AND type = ?", (record_id, record_type))
            cursor = conn.execute("DELETE FROM records WHERE id = ? AND type = ?", (record_id, record_type))
            if existing is None or cursor.rowcount != 1:
                raise NotFoundError(f"{record_type} report not found")
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    logger.log_record_operation("delete_one", record_type, record_id)
    return existing


def update_status(record_id: str, status: str) -> Record:
    """Explicitly move a record to a new status."""
    status = require_member('status', status, STATUSES)

    with _storage_errors("update_status"), get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE records SET status = ?, updated_at = ? WHERE id = ?",
            (status, _now(), record_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Record not found")
        conn.commit()
        updated = _fetch_one(conn, "id = ?", (record_id,))

    logger.log_record_operation("update_status", updated.type, record_id, details={"status": status})
    return updated


def upsert_sheet_record(sheet_id: str, station: str, sheet_type: str,
                        fields: Optional[Mapping[str, Any]] = None) -> Record:
    """Insert or update the SHEET record keyed by (sheet_id, station, sheet_type).

    Matching and writing happen inside one write transaction, so callers
    racing on the same natural key end up with a single record.
    """
    if sheet_id is None or not str(sheet_id).strip():
        raise RecordValidationError('sheetId', 'sheetId is required')
    sheet_id = str(sheet_id).strip()
    station = require_member('station', station, STATIONS)
    sheet_type = require_member('sheetType', sheet_type, SHEET_TYPES)
    updates = validate_sheet_fields(fields or {})

    # Built up front so a bad payload is rejected before the transaction
    candidate = prepare_for_insert(validate_record(dict(
        updates,
        type='SHEET',
        sheet_id=sheet_id,
        station=station,
        sheet_type=sheet_type,
        content=updates.get('content') or updates.get('sheet_url') or sheet_id,
    )))

    with _storage_errors("upsert_sheet"), get_db() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            existing = _fetch_one(
                conn,
                "sheet_id = ? AND station = ? AND sheet_type = ?",
                (sheet_id, station, sheet_type)
            )
            if existing:
                assignments: Dict[str, Any] = dict(updates)
                assignments['updated_at'] = _now()
                set_clause = ', '.join(f"{column} = :{column}" for column in assignments)
                conn.execute(
                    f"UPDATE records SET {set_clause} WHERE id = :record_id",
                    dict(assignments, record_id=existing.id)
                )
                record_id = existing.id
            else:
                record_id = _insert(conn, candidate)
            conn.commit()
        except Exception:
            conn.rollback()
            raise

        stored = _fetch_one(conn, "id = ?", (record_id,))

    logger.log_record_operation(
        "upsert_sheet", "SHEET", record_id,
        details={"sheet_id": sheet_id, "station": station, "created": existing is None}
    )
    return stored


def count_records(record_type: str = None) -> int:
    """Count records, optionally of a single type."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            if record_type:
                cursor.execute("SELECT COUNT(*) FROM records WHERE type = ?", (record_type,))
            else:
                cursor.execute("SELECT COUNT(*) FROM records")
            result = cursor.fetchone()
            return result[0] if result else 0
    except sqlite3.Error as e:
        logger.error(f"Failed to count records{' of type ' + record_type if record_type else ''}: {e}")
        return 0
