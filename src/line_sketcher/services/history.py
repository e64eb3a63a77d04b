"""Capacity-bounded generation history."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

from line_sketcher.domain.history import HISTORY_CAPACITY, HistoryRecord

_logger = logging.getLogger(__name__)


class HistoryRepository(Protocol):
    """Persistence interface for history records."""

    def insert_and_trim(self, record: HistoryRecord, capacity: int) -> list[str]:
        """Insert a record and evict the oldest beyond capacity, atomically.

        Returns the ids of evicted records. Raises ``DuplicateKeyError`` without
        changing anything if the id already exists.
        """

    def list_records(self) -> list[HistoryRecord]:
        """Return all records, newest first."""

    def get_record(self, record_id: str) -> HistoryRecord | None:
        """Return a record by id, if present."""

    def delete_record(self, record_id: str) -> None:
        """Delete a record; absent ids are ignored."""

    def clear(self) -> None:
        """Delete every record."""

    def count(self) -> int:
        """Return the number of stored records."""


@dataclass
class HistoryService:
    """Application service for the local generation history.

    Writes are serialized per instance so concurrent ``add`` calls cannot
    interleave their insert and eviction steps.
    """

    repository: HistoryRepository
    capacity: int = HISTORY_CAPACITY
    _write_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def add(self, record: HistoryRecord) -> list[str]:
        """Store a record and return the ids evicted to stay within capacity."""
        with self._write_lock:
            evicted = self.repository.insert_and_trim(record, self.capacity)
        if evicted:
            _logger.info(
                "History record %s added, evicted %s", record.id, ", ".join(evicted)
            )
        return evicted

    def list_records(self) -> list[HistoryRecord]:
        """Return stored records, newest first."""
        return self.repository.list_records()

    def get(self, record_id: str) -> HistoryRecord | None:
        """Return one record by id."""
        return self.repository.get_record(record_id)

    def delete(self, record_id: str) -> None:
        """Delete one record if present."""
        with self._write_lock:
            self.repository.delete_record(record_id)

    def clear(self) -> None:
        """Delete all records."""
        with self._write_lock:
            self.repository.clear()

    def count(self) -> int:
        """Return the number of stored records."""
        return self.repository.count()
