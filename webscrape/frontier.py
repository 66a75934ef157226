"""FIFO frontier with a visited set and depth enforcement."""

from __future__ import annotations

import threading
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .types import FrontierItem
from .url import fetchable_url, normalize_url


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    item: FrontierItem | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Breadth-first queue of `(url, depth)` pairs owned by one crawl run.

    - `push` is a no-op for URLs already visited or already queued. Entries
      keep the URL as linked (fragment dropped); `normalize_url` is only the
      dedup key.
    - `pop` hands out the oldest entry; nothing is handed out twice.
    - Entries deeper than `max_depth` are refused.

    All state sits behind one lock so a multi-worker variant can share the
    frontier and its budget checks.
    """

    def __init__(self, max_depth: int) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.max_depth = max_depth

        self._queue: deque[FrontierItem] = deque()
        self._lock = threading.Lock()

        self._queued_urls: set[str] = set()
        self._visited_urls: set[str] = set()
        self._visit_order: list[str] = []

        self._outcomes: Counter[EnqueueStatus] = Counter()
        self._dequeued = 0

        self._closed = False

    def seed(self, url: str) -> EnqueueResult:
        """Seed the frontier with the start URL at depth 1."""

        return self.push(url, depth=1)

    def push(self, url: str, *, depth: int, referrer: str | None = None) -> EnqueueResult:
        """Attempt to enqueue one URL."""

        normalized = normalize_url(url)
        target = fetchable_url(url)
        if not normalized or not target:
            with self._lock:
                self._outcomes[EnqueueStatus.SKIPPED_INVALID_URL] += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        with self._lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, normalized_url=normalized)

            if depth < 1 or depth > self.max_depth:
                self._outcomes[EnqueueStatus.SKIPPED_DEPTH] += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_DEPTH, normalized_url=normalized)

            if normalized in self._visited_urls or normalized in self._queued_urls:
                self._outcomes[EnqueueStatus.SKIPPED_SEEN] += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, normalized_url=normalized)

            item = FrontierItem(url=target, depth=depth, referrer=referrer)
            self._queued_urls.add(normalized)
            self._queue.append(item)
            self._outcomes[EnqueueStatus.ENQUEUED] += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized_url=normalized, item=item)

    def push_many(
        self,
        items: Iterable[FrontierItem],
    ) -> list[EnqueueResult]:
        """Enqueue candidate items, preserving input order."""

        return [
            self.push(item.url, depth=item.depth, referrer=item.referrer)
            for item in items
        ]

    def pop(self) -> FrontierItem | None:
        """Pop the oldest entry, or `None` when the queue is empty."""

        with self._lock:
            if not self._queue:
                return None
            item = self._queue.popleft()
            self._queued_urls.discard(normalize_url(item.url) or item.url)
            self._dequeued += 1
            return item

    def mark_visited(self, url: str) -> None:
        """Record that a URL has been fetched (or attempted) this run."""

        normalized = normalize_url(url) or url
        with self._lock:
            if normalized not in self._visited_urls:
                self._visited_urls.add(normalized)
                self._visit_order.append(url)

    def is_seen(self, url: str) -> bool:
        """Return True if a URL is visited or waiting in the queue."""

        normalized = normalize_url(url) or url
        with self._lock:
            return normalized in self._visited_urls or normalized in self._queued_urls

    def is_visited(self, url: str) -> bool:
        normalized = normalize_url(url) or url
        with self._lock:
            return normalized in self._visited_urls

    def close(self) -> None:
        """Close frontier to future enqueue attempts."""

        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        with self._lock:
            return len(self._queue)

    def empty(self) -> bool:
        with self._lock:
            return not self._queue

    def pending(self) -> list[FrontierItem]:
        """Return a snapshot of queued entries in dequeue order."""

        with self._lock:
            return list(self._queue)

    def visited_urls(self) -> list[str]:
        """Return visited URLs, as requested, in visit order."""

        with self._lock:
            return list(self._visit_order)

    def snapshot(self) -> dict[str, int | bool]:
        """Queue size, visit count, and per-status enqueue tallies."""

        with self._lock:
            return {
                "closed": self._closed,
                "queue_size": len(self._queue),
                "visited_urls": len(self._visited_urls),
                "dequeued": self._dequeued,
                "enqueued": self._outcomes[EnqueueStatus.ENQUEUED],
                "skipped_seen": self._outcomes[EnqueueStatus.SKIPPED_SEEN],
                "skipped_depth": self._outcomes[EnqueueStatus.SKIPPED_DEPTH],
                "skipped_invalid": self._outcomes[EnqueueStatus.SKIPPED_INVALID_URL],
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
