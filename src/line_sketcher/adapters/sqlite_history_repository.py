"""SQLite-backed history repository."""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from line_sketcher.domain.history import HistoryRecord
from line_sketcher.domain.requests import ProcessingParams
from line_sketcher.errors import DuplicateKeyError, StorageError
from line_sketcher.services.history import HistoryRepository

_logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS history (
        id TEXT PRIMARY KEY,
        original_image_ref TEXT NOT NULL,
        result_image_ref TEXT NOT NULL,
        filename TEXT NOT NULL,
        created_at TEXT NOT NULL,
        params_json TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_history_created_at ON history(created_at)",
)

_COLUMNS = (
    "id, original_image_ref, result_image_ref, filename, created_at, params_json"
)


@dataclass
class SqliteHistoryRepository(HistoryRepository):
    """SQLite implementation of the history store.

    Each mutation runs in a single transaction, so an insert and the eviction
    it triggers either both land or neither does.
    """

    db_path: Path

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._transaction() as conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open history database: {exc}") from exc
        _logger.info("History database ready at %s", self.db_path)

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        """Insert a record and evict the oldest rows beyond capacity."""
        try:
            with self._transaction() as conn:
                try:
                    conn.execute(
                        f"INSERT INTO history ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                        _to_row(record),
                    )
                except sqlite3.IntegrityError as exc:
                    raise DuplicateKeyError(record.id) from exc
                rows = conn.execute(
                    "SELECT id FROM history "
                    "ORDER BY created_at DESC, rowid DESC LIMIT -1 OFFSET ?",
                    (capacity,),
                ).fetchall()
                evicted = [row[0] for row in rows]
                conn.executemany(
                    "DELETE FROM history WHERE id = ?",
                    [(record_id,) for record_id in evicted],
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to add history record: {exc}") from exc
        return evicted

    def list_records(self) -> list[HistoryRecord]:
        """Return all rows, newest first."""
        rows = self._query(
            f"SELECT {_COLUMNS} FROM history ORDER BY created_at DESC, rowid DESC"
        )
        return [_from_row(row) for row in rows]

    def get_record(self, record_id: str) -> HistoryRecord | None:
        """Return one row by id."""
        rows = self._query(
            f"SELECT {_COLUMNS} FROM history WHERE id = ?", (record_id,)
        )
        return _from_row(rows[0]) if rows else None

    def delete_record(self, record_id: str) -> None:
        """Delete one row by id."""
        self._execute("DELETE FROM history WHERE id = ?", (record_id,))

    def clear(self) -> None:
        """Delete all rows."""
        self._execute("DELETE FROM history")

    def count(self) -> int:
        """Return the row count."""
        return int(self._query("SELECT COUNT(*) FROM history")[0][0])

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.db_path)) as conn, conn:
            yield conn

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        try:
            with self._transaction() as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read history: {exc}") from exc

    def _execute(self, sql: str, params: tuple = ()) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to update history: {exc}") from exc


def _to_row(record: HistoryRecord) -> tuple[str, str, str, str, str, str]:
    return (
        record.id,
        record.original_image_ref,
        record.result_image_ref,
        record.filename,
        _format_timestamp(record.created_at),
        record.params_snapshot.model_dump_json(),
    )


def _from_row(row: tuple) -> HistoryRecord:
    record_id, original, result, filename, created_at, params_json = row
    return HistoryRecord(
        id=record_id,
        original_image_ref=original,
        result_image_ref=result,
        filename=filename,
        created_at=datetime.fromisoformat(created_at),
        params_snapshot=ProcessingParams.model_validate(json.loads(params_json)),
    )


def _format_timestamp(value: datetime) -> str:
    """Normalize to UTC with fixed precision so text order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")
