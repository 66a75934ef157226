"""Fixtures: canned-response fetch strategies and a pipeline factory."""

from __future__ import annotations

import pytest

from webscrape.config import FetcherConfig
from webscrape.fetcher import Fetcher, FetchStrategy
from webscrape.pipeline import Pipeline
from webscrape.types import FetchResult


class FixtureStrategy(FetchStrategy):
    """Serve pages from a dict instead of the network.

    Values are either a body string (served as HTTP 200 HTML) or a
    `(status_code, body)` tuple. Unknown URLs answer 404.
    """

    def __init__(self, pages: dict, name: str = "fixture", content_type: str = "text/html; charset=utf-8"):
        self.name = name
        self.pages = pages
        self.content_type = content_type
        self.calls: list[str] = []

    def fetch_once(self, session, url, *, timeout, headers):
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            status, body = 404, "not found"
        elif isinstance(page, tuple):
            status, body = page
        else:
            status, body = 200, page
        return FetchResult(
            requested_url=url,
            final_url=url,
            status_code=status,
            content_type=self.content_type,
            body=body.encode("utf-8"),
            strategy=self.name,
        )


def html_page(body: str, title: str = "Fixture") -> str:
    return f"<!DOCTYPE html><html><head><title>{title}</title></head><body>{body}</body></html>"


@pytest.fixture
def fetcher_config():
    return FetcherConfig(retry_backoff_seconds=0)


@pytest.fixture
def make_pipeline(fetcher_config):
    """Build a pipeline whose fetcher serves `pages` through fixture strategies."""

    def factory(pages=None, *, strategies=None, history=None, extractor=None):
        if strategies is None:
            strategies = [FixtureStrategy(pages or {})]
        fetcher = Fetcher(fetcher_config, strategies=strategies)
        return Pipeline(fetcher_config, fetcher=fetcher, history=history, extractor=extractor), strategies

    return factory
