"""Boundary to the external run-history store."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol

from .constants import MAX_HISTORY_RECORDS
from .types import JSONDict, new_item_id, utc_now_iso


@dataclass(frozen=True, slots=True)
class HistoryRecord:
    """Summary of one finished run handed to the history store."""

    url: str
    data_type: str
    content_filters: dict[str, bool]
    pages_scraped: int
    items_found: int
    status: str = "completed"
    id: str = field(default_factory=new_item_id)
    created_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "id": self.id,
            "url": self.url,
            "data_type": self.data_type,
            "content_filters": dict(self.content_filters),
            "pages_scraped": self.pages_scraped,
            "items_found": self.items_found,
            "status": self.status,
            "created_at": self.created_at,
        }


class HistoryStore(Protocol):
    def add(self, record: HistoryRecord) -> None: ...


class InMemoryHistoryStore:
    """Most-recent-first history capped at `max_records` entries."""

    def __init__(self, max_records: int = MAX_HISTORY_RECORDS) -> None:
        if max_records <= 0:
            raise ValueError("max_records must be > 0")
        self.max_records = max_records
        self._records: list[HistoryRecord] = []
        self._lock = threading.Lock()

    def add(self, record: HistoryRecord) -> None:
        with self._lock:
            self._records.insert(0, record)
            del self._records[self.max_records:]

    def delete(self, record_id: str) -> bool:
        with self._lock:
            before = len(self._records)
            self._records = [record for record in self._records if record.id != record_id]
            return len(self._records) != before

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def records(self) -> list[HistoryRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = [
    "HistoryRecord",
    "HistoryStore",
    "InMemoryHistoryStore",
]
