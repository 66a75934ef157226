"""Per-run state shared by pipeline components: log lines, progress, cancellation."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .types import LogEntry

logger = logging.getLogger(__name__)

LogListener = Callable[[LogEntry], None]
ProgressListener = Callable[[float], None]


class CancellationToken:
    """Cooperative stop signal checked by the pipeline loop and the fetcher."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RunContext:
    """Mutable state owned by exactly one crawl run.

    Log lines are append-only. Listeners are notified synchronously; a
    listener that raises is reported through `logging` and otherwise ignored.
    """

    def __init__(
        self,
        *,
        cancel_token: CancellationToken | None = None,
        on_log: LogListener | None = None,
        on_progress: ProgressListener | None = None,
    ) -> None:
        self.cancel_token = cancel_token or CancellationToken()
        self.on_log = on_log
        self.on_progress = on_progress

        self._logs: list[LogEntry] = []
        self._progress = 0.0

    @property
    def logs(self) -> list[LogEntry]:
        return list(self._logs)

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled

    def log(
        self,
        message: str,
        *,
        level: int = logging.INFO,
        source: logging.Logger | None = None,
    ) -> LogEntry:
        """Append a log line and mirror it to the component's logger."""

        entry = LogEntry(message=message)
        self._logs.append(entry)
        (source or logger).log(level, message)

        if self.on_log is not None:
            try:
                self.on_log(entry)
            except Exception:
                logger.exception("Log listener failed")
        return entry

    def set_progress(self, value: float) -> None:
        """Clamp to [0, 100] and notify the progress listener."""

        self._progress = max(0.0, min(100.0, float(value)))
        if self.on_progress is not None:
            try:
                self.on_progress(self._progress)
            except Exception:
                logger.exception("Progress listener failed")


__all__ = [
    "CancellationToken",
    "LogListener",
    "ProgressListener",
    "RunContext",
]
