"""Core type definitions for the scrape pipeline.

This module is intentionally dependency-light so other modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class DataType(str, Enum):
    """Kinds of extracted items."""

    HEADING = "Heading"
    PARAGRAPH = "Paragraph"
    IMAGE = "Image"
    LINK = "Link"
    TABLE = "Table"
    TEXT = "Text"


class RunState(str, Enum):
    """Lifecycle of one crawl run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FATAL = "fatal"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string with millisecond precision."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def new_item_id() -> str:
    """Return `<epoch ms>-<random hex>`, unique enough for one run."""

    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A crawl candidate tracked by the frontier."""

    url: str
    depth: int
    referrer: str | None = None


@dataclass(frozen=True, slots=True)
class ExtractedItem:
    """One piece of content pulled out of a page."""

    content: str
    source_url: str
    data_type: DataType
    id: str = field(default_factory=new_item_id)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "id": self.id,
            "content": self.content,
            "source_url": self.source_url,
            "data_type": self.data_type.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One timestamped log line of a run."""

    message: str
    timestamp: str = field(default_factory=utc_now_iso)

    def __str__(self) -> str:
        return f"[{self.timestamp}] {self.message}"


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    strategy: str | None = None
    attempts: int = 0
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and bool(self.body)
        )

    @property
    def content_length(self) -> int | None:
        return None if self.body is None else len(self.body)

    @property
    def encoding(self) -> str:
        for part in (self.content_type or "").split(";")[1:]:
            key, _, value = part.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip("\"'")
        return "utf-8"

    @property
    def text(self) -> str:
        if not self.body:
            return ""
        try:
            return self.body.decode(self.encoding, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for run summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_seen: int = 0
    frontier_skipped_depth: int = 0
    frontier_skipped_invalid: int = 0

    fetch_attempts: int = 0
    fetched_ok: int = 0
    fetched_error: int = 0
    parsed_error: int = 0
    text_pages: int = 0

    items_by_type: dict[str, int] = field(default_factory=dict)

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def record_items(self, items: list[ExtractedItem]) -> None:
        for item in items:
            key = item.data_type.value
            self.items_by_type[key] = self.items_by_type.get(key, 0) + 1

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_seen": self.frontier_skipped_seen,
            "frontier_skipped_depth": self.frontier_skipped_depth,
            "frontier_skipped_invalid": self.frontier_skipped_invalid,
            "fetch_attempts": self.fetch_attempts,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "parsed_error": self.parsed_error,
            "text_pages": self.text_pages,
            "items_by_type": dict(self.items_by_type),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


@dataclass(slots=True)
class CrawlResult:
    """Everything a run hands back to its caller."""

    start_url: str
    items: list[ExtractedItem] = field(default_factory=list)
    pages_scraped: int = 0
    logs: list[LogEntry] = field(default_factory=list)
    progress: float = 0.0
    state: RunState = RunState.IDLE
    partial: bool = False
    error: str | None = None
    visited_urls: list[str] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def log_lines(self) -> list[str]:
        return [str(entry) for entry in self.logs]

    def items_of(self, data_type: DataType) -> list[ExtractedItem]:
        return [item for item in self.items if item.data_type == data_type]

    def to_json(self) -> JSONDict:
        return {
            "start_url": self.start_url,
            "state": self.state.value,
            "partial": self.partial,
            "error": self.error,
            "pages_scraped": self.pages_scraped,
            "progress": self.progress,
            "item_count": self.item_count,
            "items": [item.to_json() for item in self.items],
            "logs": self.log_lines(),
            "visited_urls": list(self.visited_urls),
            "stats": self.stats.to_json(),
        }


__all__ = [
    "CrawlResult",
    "CrawlStats",
    "DataType",
    "ExtractedItem",
    "FetchResult",
    "FrontierItem",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "LogEntry",
    "RunState",
    "new_item_id",
    "utc_now_iso",
]
