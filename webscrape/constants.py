"""Default values shared by config, fetcher, and pipeline."""

from __future__ import annotations

DEFAULT_MAX_PAGES = 10
DEFAULT_PAGE_DEPTH = 1
DEFAULT_SAME_DOMAIN_ONLY = True

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_ATTEMPTS_PER_STRATEGY = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 0.3
DEFAULT_STRATEGIES = ("direct", "allorigins", "jina")

DEFAULT_USER_AGENT = "webscrape/0.1 (+https://github.com/webscrape/webscrape)"
DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

TEXT_SAMPLE_CHARS = 200
MAX_HISTORY_RECORDS = 20

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
