"""URL fetching through an ordered list of strategies with bounded retries."""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Sequence
from urllib.parse import quote

import requests

from .config import FetcherConfig
from .context import RunContext
from .types import FetchResult

logger = logging.getLogger(__name__)


class AttemptTimeout(requests.Timeout):
    """The whole attempt, body included, ran past its time limit."""


READ_CHUNK_BYTES = 16 * 1024


def _read_body(response: requests.Response, *, deadline: float, timeout: float) -> bytes:
    chunks: list[bytes] = []
    for chunk in response.iter_content(chunk_size=READ_CHUNK_BYTES):
        if chunk:
            chunks.append(chunk)
        if time.monotonic() > deadline:
            raise AttemptTimeout(f"Attempt exceeded {timeout:g}s")
    return b"".join(chunks)


class FetchStrategy:
    """One way of getting a page body: directly or through a named proxy.

    Subclasses usually only override `request_url`. Test doubles override
    `fetch_once` to serve canned responses.
    """

    name = "strategy"

    def request_url(self, url: str) -> str:
        return url

    def fetch_once(
        self,
        session: requests.Session,
        url: str,
        *,
        timeout: float,
        headers: dict[str, str],
    ) -> FetchResult:
        """One GET bounded by `timeout` seconds end to end.

        `requests` only bounds each connect/read step, so the body is
        streamed and the attempt is abandoned once the deadline passes.
        """

        target = self.request_url(url)
        started = time.perf_counter()
        deadline = time.monotonic() + timeout

        try:
            response = session.get(
                target,
                headers=headers,
                timeout=timeout,
                allow_redirects=True,
                stream=True,
            )
            try:
                body = _read_body(response, deadline=deadline, timeout=timeout)
            finally:
                response.close()
            elapsed_ms = int((time.perf_counter() - started) * 1000)

            return FetchResult(
                requested_url=url,
                final_url=url if target != url else (response.url or url),
                status_code=response.status_code,
                content_type=response.headers.get("Content-Type"),
                body=body,
                strategy=self.name,
                elapsed_ms=elapsed_ms,
                error=None,
            )
        except requests.RequestException as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                strategy=self.name,
                elapsed_ms=elapsed_ms,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class DirectStrategy(FetchStrategy):
    """Plain GET against the target site."""

    name = "direct"


class AllOriginsStrategy(FetchStrategy):
    """Fetch through the allorigins raw passthrough proxy."""

    name = "allorigins"
    endpoint = "https://api.allorigins.win/raw"

    def request_url(self, url: str) -> str:
        return f"{self.endpoint}?url={quote(url, safe='')}"


class JinaReaderStrategy(FetchStrategy):
    """Fetch through the r.jina.ai reader, which may answer with plain text."""

    name = "jina"
    endpoint = "https://r.jina.ai"

    def request_url(self, url: str) -> str:
        without_scheme = url.split("://", maxsplit=1)[-1]
        return f"{self.endpoint}/http://{without_scheme}"


STRATEGY_REGISTRY: dict[str, type[FetchStrategy]] = {
    DirectStrategy.name: DirectStrategy,
    AllOriginsStrategy.name: AllOriginsStrategy,
    JinaReaderStrategy.name: JinaReaderStrategy,
}


def build_strategies(names: Iterable[str]) -> list[FetchStrategy]:
    """Instantiate strategies by configured name, keeping the given order."""

    strategies: list[FetchStrategy] = []
    for name in names:
        key = name.strip().lower()
        strategy_cls = STRATEGY_REGISTRY.get(key)
        if strategy_cls is None:
            raise ValueError(
                f"Unknown fetch strategy '{name}'. Known: {sorted(STRATEGY_REGISTRY)}"
            )
        strategies.append(strategy_cls())
    return strategies


def describe_failure(result: FetchResult) -> str:
    """Short reason a fetch result is not `ok`."""

    if result.error:
        return result.error
    if result.status_code is not None and not 200 <= result.status_code < 300:
        return f"HTTP status {result.status_code}"
    if not result.body:
        return "Empty response body"
    return "Unknown fetch failure"


class Fetcher:
    """Resolve a page URL into a body by walking the strategy list.

    Each strategy gets `attempts_per_strategy` tries with a linear backoff
    (`retry_backoff_seconds * attempt`) between them. The next strategy is
    only tried once the current one is exhausted. Any non-2xx status, network
    error, timeout, or empty body counts as a failed attempt.
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        *,
        strategies: Sequence[FetchStrategy] | None = None,
        sleep=time.sleep,
    ) -> None:
        self.config = config or FetcherConfig()
        self.strategies = list(strategies) if strategies is not None else build_strategies(
            self.config.strategies
        )
        if not self.strategies:
            raise ValueError("Fetcher requires at least one strategy")

        self._sleep = sleep
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def fetch(self, url: str, *, context: RunContext | None = None) -> FetchResult:
        """Fetch one URL; the returned result is `ok` only on success."""

        attempts_made = 0
        last_result: FetchResult | None = None

        for strategy in self.strategies:
            result = self._fetch_with_retries(url, strategy, context=context)
            attempts_made += result.attempts
            result.attempts = attempts_made
            last_result = result

            if result.ok or result.cancelled:
                return result

        if last_result is None:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                error="Unknown fetch failure",
            )
        return last_result

    def close(self) -> None:
        """Close every HTTP session opened by this fetcher."""

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        self._thread_local = threading.local()
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fetch_with_retries(
        self,
        url: str,
        strategy: FetchStrategy,
        *,
        context: RunContext | None,
    ) -> FetchResult:
        max_attempts = self.config.attempts_per_strategy
        last_result: FetchResult | None = None

        for attempt in range(1, max_attempts + 1):
            if context is not None and context.cancelled:
                return FetchResult(
                    requested_url=url,
                    final_url=None,
                    status_code=None,
                    content_type=None,
                    body=None,
                    strategy=strategy.name,
                    attempts=attempt - 1,
                    error="Cancelled",
                    cancelled=True,
                )

            self._log(
                context,
                f"Fetch attempt {attempt}/{max_attempts} via {strategy.name}: "
                f"{strategy.request_url(url)}",
                level=logging.DEBUG,
            )

            try:
                result = strategy.fetch_once(
                    self._thread_local_session(),
                    url,
                    timeout=self.config.timeout_seconds,
                    headers=self.config.headers(),
                )
            except requests.RequestException as exc:
                result = FetchResult(
                    requested_url=url,
                    final_url=None,
                    status_code=None,
                    content_type=None,
                    body=None,
                    strategy=strategy.name,
                    error=f"{exc.__class__.__name__}: {exc}",
                )
            result.attempts = attempt
            last_result = result

            if result.ok:
                self._log(
                    context,
                    f"Fetch attempt {attempt} via {strategy.name} succeeded "
                    f"(HTTP {result.status_code}, {result.content_length} bytes)",
                )
                return result

            self._log(
                context,
                f"Fetch attempt {attempt} via {strategy.name} failed: {describe_failure(result)}",
                level=logging.WARNING,
            )

            if attempt < max_attempts and self.config.retry_backoff_seconds > 0:
                # Linear: 1x, 2x, 3x the configured backoff.
                self._sleep(self.config.retry_backoff_seconds * attempt)

        if last_result is None:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                strategy=strategy.name,
                error="Unknown fetch failure",
            )
        return last_result

    @staticmethod
    def _log(context: RunContext | None, message: str, *, level: int = logging.INFO) -> None:
        if context is not None:
            context.log(message, level=level, source=logger)
        else:
            logger.log(level, message)

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = [
    "AllOriginsStrategy",
    "AttemptTimeout",
    "DirectStrategy",
    "FetchStrategy",
    "Fetcher",
    "JinaReaderStrategy",
    "STRATEGY_REGISTRY",
    "build_strategies",
    "describe_failure",
]
