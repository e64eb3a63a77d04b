"""Supabase-backed history repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from postgrest.exceptions import APIError
from supabase import Client

from line_sketcher.domain.history import HistoryRecord
from line_sketcher.domain.requests import ProcessingParams
from line_sketcher.errors import DuplicateKeyError, StorageError
from line_sketcher.services.history import HistoryRepository

_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase implementation for history persistence.

    Inserts go through the ``add_history_item`` database function so the
    insert and the capacity eviction share one transaction.
    """

    client: Client
    table_name: str = "history_items"

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        """Insert a row and evict the oldest rows beyond capacity."""
        try:
            response = self.client.rpc(
                "add_history_item",
                {"p_item": _to_row(record), "p_capacity": capacity},
            ).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateKeyError(record.id) from exc
            raise StorageError(f"Failed to add history record: {exc}") from exc
        return [str(row["id"]) for row in response.data or []]

    def list_records(self) -> list[HistoryRecord]:
        """Return all rows, newest first."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("*")
                .order("created_at", desc=True)
                .order("seq", desc=True)
                .execute()
            )
        except APIError as exc:
            raise StorageError(f"Failed to read history: {exc}") from exc
        return [_from_row(row) for row in response.data or []]

    def get_record(self, record_id: str) -> HistoryRecord | None:
        """Return a row by id."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("*")
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
        except APIError as exc:
            raise StorageError(f"Failed to read history: {exc}") from exc
        if not response.data:
            return None
        return _from_row(response.data[0])

    def delete_record(self, record_id: str) -> None:
        """Delete a row by id."""
        try:
            self.client.table(self.table_name).delete().eq("id", record_id).execute()
        except APIError as exc:
            raise StorageError(f"Failed to delete history record: {exc}") from exc

    def clear(self) -> None:
        """Delete all rows."""
        try:
            self.client.table(self.table_name).delete().neq("id", "").execute()
        except APIError as exc:
            raise StorageError(f"Failed to clear history: {exc}") from exc

    def count(self) -> int:
        """Return the row count."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("id", count="exact")
                .execute()
            )
        except APIError as exc:
            raise StorageError(f"Failed to count history: {exc}") from exc
        if response.count is not None:
            return int(response.count)
        return len(response.data or [])


def _to_row(record: HistoryRecord) -> dict[str, object]:
    created_at = record.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return {
        "id": record.id,
        "original_image_ref": record.original_image_ref,
        "result_image_ref": record.result_image_ref,
        "filename": record.filename,
        "created_at": created_at.isoformat(),
        "params": record.params_snapshot.model_dump(),
    }


def _from_row(row: dict[str, object]) -> HistoryRecord:
    return HistoryRecord(
        id=str(row["id"]),
        original_image_ref=str(row["original_image_ref"]),
        result_image_ref=str(row["result_image_ref"]),
        filename=str(row["filename"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        params_snapshot=ProcessingParams.model_validate(row.get("params") or {}),
    )
