"""Scrape package: request config, shared types, and crawl pipeline components."""

from .config import (
    ContentFilters,
    CrawlRequest,
    DataSelector,
    ExtractionPlan,
    FetcherConfig,
    InvalidRequestError,
    load_config,
    save_config,
)
from .context import CancellationToken, RunContext
from .expander import ExpansionPolicy, LinkExpander
from .extractor import Extractor, serialize_table, text_sample_item
from .fetcher import (
    AllOriginsStrategy,
    AttemptTimeout,
    DirectStrategy,
    Fetcher,
    FetchStrategy,
    JinaReaderStrategy,
    build_strategies,
)
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .history import HistoryRecord, HistoryStore, InMemoryHistoryStore
from .parsers import ParsedDocument, ParseFailure, TextSample, classify_and_parse, looks_like_markup
from .pipeline import Pipeline
from .types import (
    CrawlResult,
    CrawlStats,
    DataType,
    ExtractedItem,
    FetchResult,
    FrontierItem,
    LogEntry,
    RunState,
    utc_now_iso,
)
from .url import (
    fetchable_url,
    is_same_origin,
    normalize_start_url,
    normalize_url,
    origin_of,
    resolve_url,
)

__all__ = [
    "AllOriginsStrategy",
    "AttemptTimeout",
    "CancellationToken",
    "ContentFilters",
    "CrawlRequest",
    "CrawlResult",
    "CrawlStats",
    "DataSelector",
    "DataType",
    "DirectStrategy",
    "EnqueueResult",
    "EnqueueStatus",
    "ExpansionPolicy",
    "ExtractedItem",
    "ExtractionPlan",
    "Extractor",
    "FetchResult",
    "FetchStrategy",
    "Fetcher",
    "FetcherConfig",
    "Frontier",
    "FrontierItem",
    "HistoryRecord",
    "HistoryStore",
    "InMemoryHistoryStore",
    "InvalidRequestError",
    "JinaReaderStrategy",
    "LinkExpander",
    "LogEntry",
    "ParseFailure",
    "ParsedDocument",
    "Pipeline",
    "RunContext",
    "RunState",
    "TextSample",
    "build_strategies",
    "classify_and_parse",
    "fetchable_url",
    "is_same_origin",
    "load_config",
    "looks_like_markup",
    "normalize_start_url",
    "normalize_url",
    "origin_of",
    "resolve_url",
    "save_config",
    "serialize_table",
    "text_sample_item",
    "utc_now_iso",
]
