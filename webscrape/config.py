"""Typed crawl request and fetcher configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_ATTEMPTS_PER_STRATEGY,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_DEPTH,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_SAME_DOMAIN_ONLY,
    DEFAULT_STRATEGIES,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict
from .url import normalize_start_url


class InvalidRequestError(ValueError):
    """Raised when a crawl request is rejected before any page is fetched."""


class DataSelector(str, Enum):
    """Coarse "what do you want" selector offered next to the filters."""

    TEXT = "text"
    IMAGES = "images"
    LINKS = "links"
    TABLES = "tables"
    ALL = "all"


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _to_selector(value: Any) -> DataSelector:
    if isinstance(value, DataSelector):
        return value
    if isinstance(value, str):
        try:
            return DataSelector(value.strip().lower())
        except ValueError as exc:
            choices = ", ".join(item.value for item in DataSelector)
            raise ValueError(f"Invalid data_type {value!r}; expected one of: {choices}") from exc
    raise ValueError(f"Invalid data_type value: {value!r}")


@dataclass(frozen=True, slots=True)
class ExtractionPlan:
    """Resolved set of extractors to run on each page."""

    headings: bool
    paragraphs: bool
    images: bool
    links: bool
    tables: bool


@dataclass(frozen=True, slots=True)
class ContentFilters:
    """Per-kind extraction switches chosen by the user."""

    headings: bool = True
    paragraphs: bool = True
    images: bool = False
    links: bool = False

    def resolve(self, data_type: DataSelector) -> ExtractionPlan:
        """Combine the switches with the data-type selector.

        The selector can only turn extractors on: `images` and `links` OR
        into their switch, and `tables`, `all`, and `text` enable table
        extraction (tables have no switch of their own).
        """

        return ExtractionPlan(
            headings=self.headings,
            paragraphs=self.paragraphs,
            images=self.images or data_type == DataSelector.IMAGES,
            links=self.links or data_type == DataSelector.LINKS,
            tables=data_type in {DataSelector.TABLES, DataSelector.ALL, DataSelector.TEXT},
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "headings": self.headings,
            "paragraphs": self.paragraphs,
            "images": self.images,
            "links": self.links,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "ContentFilters":
        if not payload:
            return cls()
        unknown = set(payload) - {"headings", "paragraphs", "images", "links"}
        if unknown:
            raise ValueError(f"Unknown content filters: {sorted(unknown)}")
        defaults = cls()
        return cls(
            headings=_as_bool(payload.get("headings", defaults.headings), "headings"),
            paragraphs=_as_bool(payload.get("paragraphs", defaults.paragraphs), "paragraphs"),
            images=_as_bool(payload.get("images", defaults.images), "images"),
            links=_as_bool(payload.get("links", defaults.links), "links"),
        )


@dataclass(frozen=True, slots=True)
class CrawlRequest:
    """One crawl job. Immutable once built; the start URL is normalized on construction."""

    start_url: str
    max_pages: int = DEFAULT_MAX_PAGES
    page_depth: int = DEFAULT_PAGE_DEPTH
    same_domain_only: bool = DEFAULT_SAME_DOMAIN_ONLY
    filters: ContentFilters = field(default_factory=ContentFilters)
    data_type: DataSelector = DataSelector.TEXT

    def __post_init__(self) -> None:
        normalized = normalize_start_url(self.start_url)
        if normalized is None:
            raise InvalidRequestError(f"Invalid start URL: {self.start_url!r}")
        object.__setattr__(self, "start_url", normalized)
        try:
            object.__setattr__(self, "data_type", _to_selector(self.data_type))
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc

        if isinstance(self.max_pages, bool) or self.max_pages <= 0:
            raise InvalidRequestError("max_pages must be > 0")
        if isinstance(self.page_depth, bool) or self.page_depth <= 0:
            raise InvalidRequestError("page_depth must be > 0")

    @property
    def plan(self) -> ExtractionPlan:
        return self.filters.resolve(self.data_type)

    def to_dict(self) -> JSONDict:
        return {
            "start_url": self.start_url,
            "max_pages": self.max_pages,
            "page_depth": self.page_depth,
            "same_domain_only": self.same_domain_only,
            "filters": dict(self.filters.to_dict()),
            "data_type": self.data_type.value,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlRequest":
        """Build a request from a parsed dictionary."""

        if "start_url" not in payload:
            raise InvalidRequestError("Request missing required key: 'start_url'")

        try:
            return cls(
                start_url=str(payload["start_url"]),
                max_pages=_as_int(payload.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
                page_depth=_as_int(payload.get("page_depth", DEFAULT_PAGE_DEPTH), "page_depth"),
                same_domain_only=_as_bool(
                    payload.get("same_domain_only", DEFAULT_SAME_DOMAIN_ONLY),
                    "same_domain_only",
                ),
                filters=ContentFilters.from_dict(payload.get("filters")),
                data_type=_to_selector(payload.get("data_type", DataSelector.TEXT)),
            )
        except InvalidRequestError:
            raise
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc


@dataclass(slots=True)
class FetcherConfig:
    """Transport settings: strategy order, per-attempt timeout, and retry budget.

    `timeout_seconds` bounds a whole attempt (connect, headers and body).
    """

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    attempts_per_strategy: int = DEFAULT_ATTEMPTS_PER_STRATEGY
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    strategies: tuple[str, ...] = DEFAULT_STRATEGIES

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    def __post_init__(self) -> None:
        self.strategies = tuple(
            name.strip().lower() for name in self.strategies if name and name.strip()
        )
        if not self.strategies:
            raise ValueError("At least one fetch strategy is required")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.attempts_per_strategy <= 0:
            raise ValueError("attempts_per_strategy must be > 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")

    def headers(self) -> dict[str, str]:
        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        return {
            "timeout_seconds": self.timeout_seconds,
            "attempts_per_strategy": self.attempts_per_strategy,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "strategies": list(self.strategies),
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "FetcherConfig":
        payload = payload or {}
        return cls(
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS), "timeout_seconds"
            ),
            attempts_per_strategy=_as_int(
                payload.get("attempts_per_strategy", DEFAULT_ATTEMPTS_PER_STRATEGY),
                "attempts_per_strategy",
            ),
            retry_backoff_seconds=_as_float(
                payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                "retry_backoff_seconds",
            ),
            strategies=tuple(str(name) for name in payload.get("strategies", DEFAULT_STRATEGIES)),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> tuple[CrawlRequest, FetcherConfig]:
    """Load a crawl request and fetcher settings from a JSON/YAML path.

    Request keys sit at the top level; transport settings go under `fetcher`.
    """

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    fetcher_payload = payload.get("fetcher")
    if fetcher_payload is not None and not isinstance(fetcher_payload, Mapping):
        raise ValueError("'fetcher' section must be a mapping")

    return CrawlRequest.from_dict(payload), FetcherConfig.from_dict(fetcher_payload)


def save_config(
    request: CrawlRequest,
    fetcher_config: FetcherConfig,
    path: str | Path,
) -> None:
    """Save request and fetcher settings as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = request.to_dict()
    payload["fetcher"] = fetcher_config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "ContentFilters",
    "CrawlRequest",
    "DataSelector",
    "ExtractionPlan",
    "FetcherConfig",
    "InvalidRequestError",
    "load_config",
    "save_config",
]
