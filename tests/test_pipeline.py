"""Pipeline tests against fixture sites (no network)."""

from __future__ import annotations

from webscrape.config import ContentFilters, CrawlRequest, DataSelector
from webscrape.context import CancellationToken
from webscrape.extractor import Extractor
from webscrape.history import InMemoryHistoryStore
from webscrape.types import DataType, RunState
from webscrape.url import origin_of

from .conftest import FixtureStrategy, html_page

START = "https://example.test/"


def _site(n_children: int = 3) -> dict:
    links = "".join(f'<a href="/page{i}">Page {i}</a>' for i in range(n_children))
    pages = {START: html_page(f"<h1>Home</h1><p>Welcome</p>{links}")}
    for i in range(n_children):
        pages[f"https://example.test/page{i}"] = html_page(
            f"<h2>Page {i}</h2><p>Body {i}</p>"
            f'<a href="/page{i}/deeper">deeper</a><a href="/">home</a>'
        )
        pages[f"https://example.test/page{i}/deeper"] = html_page(f"<h3>Deep {i}</h3>")
    return pages


# --- scenarios ---


def test_single_page_headings_and_paragraphs(make_pipeline):
    pages = {
        START: html_page(
            "<h1>First</h1><h1>Second</h1><p>one</p><p>two</p><p>three</p>"
            '<img src="/logo.png"><a href="/about">About</a>'
        )
    }
    pipeline, _ = make_pipeline(pages)
    request = CrawlRequest(
        start_url=START,
        max_pages=1,
        page_depth=1,
        filters=ContentFilters(headings=True, paragraphs=True, images=False, links=False),
    )

    result = pipeline.run(request)

    assert [item.data_type for item in result.items] == [DataType.HEADING] * 2 + [DataType.PARAGRAPH] * 3
    assert [item.content for item in result.items] == ["First", "Second", "one", "two", "three"]
    assert all(item.source_url == START for item in result.items)
    assert result.pages_scraped == 1
    assert result.progress == 100
    assert result.state == RunState.COMPLETED
    assert pipeline.state == RunState.COMPLETED
    assert not result.partial


def test_page_failing_on_every_strategy_is_skipped(make_pipeline):
    first = FixtureStrategy({START: (500, "boom")}, name="first")
    second = FixtureStrategy({START: (500, "boom")}, name="second")
    pipeline, _ = make_pipeline(strategies=[first, second])

    result = pipeline.run(CrawlRequest(start_url=START))

    assert result.pages_scraped == 0
    assert result.items == []
    assert result.state == RunState.COMPLETED
    assert result.error is None
    assert first.calls == [START, START]
    assert second.calls == [START, START]
    assert any("failed" in entry.message for entry in result.logs)
    assert any("All fetch attempts failed" in entry.message for entry in result.logs)
    assert result.stats.fetched_error == 1
    assert result.stats.fetch_attempts == 4


def test_cross_domain_links_are_not_followed(make_pipeline):
    pages = {
        START: html_page(
            '<a href="/a">A</a><a href="/b">B</a><a href="https://example.test/c">C</a>'
            '<a href="https://elsewhere.test/x">X</a>'
        ),
        "https://example.test/a": html_page("<p>a</p>"),
        "https://example.test/b": html_page("<p>b</p>"),
        "https://example.test/c": html_page("<p>c</p>"),
        "https://elsewhere.test/x": html_page("<p>x</p>"),
    }
    pipeline, (strategy,) = make_pipeline(pages)
    request = CrawlRequest(start_url=START, max_pages=5, page_depth=2, same_domain_only=True)

    result = pipeline.run(request)

    assert strategy.calls == [
        START,
        "https://example.test/a",
        "https://example.test/b",
        "https://example.test/c",
    ]
    assert result.stats.frontier_enqueued == 4
    assert result.pages_scraped == 4
    assert "https://elsewhere.test/x" not in result.visited_urls


def test_cross_domain_links_followed_when_allowed(make_pipeline):
    pages = {
        START: html_page('<a href="https://elsewhere.test/x">X</a>'),
        "https://elsewhere.test/x": html_page("<p>x</p>"),
    }
    pipeline, (strategy,) = make_pipeline(pages)

    result = pipeline.run(
        CrawlRequest(start_url=START, max_pages=5, page_depth=2, same_domain_only=False)
    )

    assert strategy.calls == [START, "https://elsewhere.test/x"]
    assert result.pages_scraped == 2


def test_child_pages_are_fetched_at_the_linked_url(make_pipeline):
    search = "https://example.test/search?flag"
    archived = "https://example.test/web/2020/https://example.test/x"
    query = "https://example.test/q?b=2&a=1"
    pages = {
        START: html_page(
            '<a href="/search?flag">s</a>'
            '<a href="/web/2020/https://example.test/x">w</a>'
            '<a href="/q?b=2&amp;a=1">q</a>'
            '<a href="/q?a=1&amp;b=2#top">same q</a>'
        ),
        search: html_page("<p>search results</p>"),
        archived: html_page("<p>archived</p>"),
        query: html_page("<p>query</p>"),
    }
    pipeline, (strategy,) = make_pipeline(pages)

    result = pipeline.run(CrawlRequest(start_url=START, max_pages=10, page_depth=2))

    assert strategy.calls == [START, search, archived, query]
    assert result.visited_urls == [START, search, archived, query]
    assert [(item.content, item.source_url) for item in result.items_of(DataType.PARAGRAPH)] == [
        ("search results", search),
        ("archived", archived),
        ("query", query),
    ]


def test_plain_text_body_yields_one_text_item(make_pipeline):
    body = "  " + "plain words <h1>not a heading</h1> " * 20
    pipeline, _ = make_pipeline({START: body})

    result = pipeline.run(
        CrawlRequest(start_url=START, data_type=DataSelector.ALL, filters=ContentFilters(links=True))
    )

    assert len(result.items) == 1
    item = result.items[0]
    assert item.data_type == DataType.TEXT
    assert item.content == body.strip()[:200]
    assert len(item.content) <= 200
    assert result.pages_scraped == 1
    assert result.stats.text_pages == 1


def test_empty_text_body_counts_page_without_items(make_pipeline):
    # Whitespace passes the non-empty check but leaves no sample.
    pipeline, _ = make_pipeline({START: "   \n  "})

    result = pipeline.run(CrawlRequest(start_url=START))

    assert result.items == []
    assert result.pages_scraped == 1


# --- properties ---


def test_page_budget_and_single_fetch_per_url(make_pipeline):
    pipeline, (strategy,) = make_pipeline(_site(6))
    request = CrawlRequest(start_url=START, max_pages=4, page_depth=3)

    result = pipeline.run(request)

    assert result.pages_scraped == 4
    assert len(strategy.calls) == len(set(strategy.calls))
    assert len(result.visited_urls) == len(set(result.visited_urls))
    assert result.progress == 100


def test_breadth_first_order_and_depth_limit(make_pipeline):
    pipeline, (strategy,) = make_pipeline(_site(2))

    result = pipeline.run(CrawlRequest(start_url=START, max_pages=50, page_depth=2))

    assert strategy.calls == [
        START,
        "https://example.test/page0",
        "https://example.test/page1",
    ]
    # Depth-2 pages are scraped but not expanded.
    assert not any("deeper" in url for url in strategy.calls)
    assert [item.content for item in result.items_of(DataType.HEADING)] == ["Home", "Page 0", "Page 1"]


def test_depth_three_reaches_grandchildren_after_children(make_pipeline):
    pipeline, (strategy,) = make_pipeline(_site(2))

    pipeline.run(CrawlRequest(start_url=START, max_pages=50, page_depth=3))

    assert strategy.calls == [
        START,
        "https://example.test/page0",
        "https://example.test/page1",
        "https://example.test/page0/deeper",
        "https://example.test/page1/deeper",
    ]


def test_same_domain_run_never_leaves_start_origin(make_pipeline):
    pages = _site(3)
    pages[START] = pages[START].replace(
        "</body>", '<a href="https://other.test/">o</a><a href="http://example.test/">http</a></body>'
    )
    pipeline, (strategy,) = make_pipeline(pages)

    pipeline.run(CrawlRequest(start_url=START, max_pages=20, page_depth=3))

    assert {origin_of(url) for url in strategy.calls} == {"https://example.test"}


def test_disabled_filters_produce_no_items_of_that_kind(make_pipeline):
    pages = {
        START: html_page(
            "<h1>H</h1><p>P</p><img src='/i.png'><a href='/x'>x</a>"
            "<table><tr><td>1</td></tr></table>"
        )
    }
    pipeline, _ = make_pipeline(pages)
    request = CrawlRequest(
        start_url=START,
        filters=ContentFilters(headings=False, paragraphs=True, images=False, links=False),
        data_type=DataSelector.TEXT,
    )

    result = pipeline.run(request)

    kinds = {item.data_type for item in result.items}
    assert DataType.HEADING not in kinds
    assert DataType.IMAGE not in kinds
    assert DataType.LINK not in kinds
    assert kinds == {DataType.PARAGRAPH, DataType.TABLE}


def test_runs_are_deterministic_apart_from_ids(make_pipeline):
    request = CrawlRequest(
        start_url=START,
        max_pages=10,
        page_depth=3,
        filters=ContentFilters(images=True, links=True),
        data_type=DataSelector.ALL,
    )

    def snapshot():
        pipeline, _ = make_pipeline(_site(3))
        result = pipeline.run(request)
        return [(item.content, item.data_type, item.source_url) for item in result.items], result.pages_scraped

    assert snapshot() == snapshot()


def test_item_ids_are_unique(make_pipeline):
    pipeline, _ = make_pipeline(_site(3))
    result = pipeline.run(
        CrawlRequest(start_url=START, max_pages=10, page_depth=3, filters=ContentFilters(links=True))
    )

    ids = [item.id for item in result.items]
    assert len(ids) == len(set(ids))


# --- fault handling, cancellation, events ---


class _ExplodingExtractor(Extractor):
    def __init__(self, fail_on: str):
        self.fail_on = fail_on

    def extract(self, doc, plan):
        if doc.url == self.fail_on:
            raise RuntimeError("extractor bug")
        return super().extract(doc, plan)


def test_unexpected_error_is_fatal_but_keeps_items(make_pipeline):
    history = InMemoryHistoryStore()
    pipeline, _ = make_pipeline(
        _site(2),
        history=history,
        extractor=_ExplodingExtractor(fail_on="https://example.test/page1"),
    )

    result = pipeline.run(CrawlRequest(start_url=START, max_pages=10, page_depth=2))

    assert result.state == RunState.FATAL
    assert pipeline.state == RunState.FATAL
    assert result.error == "RuntimeError: extractor bug"
    assert [item.content for item in result.items_of(DataType.HEADING)] == ["Home", "Page 0"]
    assert any(entry.message.startswith("Fatal error") for entry in result.logs)
    assert len(history) == 0


def test_parse_failure_skips_page(make_pipeline, monkeypatch):
    from webscrape import pipeline as pipeline_module
    from webscrape.parsers import ParseFailure

    pipeline, _ = make_pipeline({START: html_page("<h1>x</h1>")})
    monkeypatch.setattr(
        pipeline_module,
        "classify_and_parse",
        lambda body, url: ParseFailure(url=url, error="ParserRejectedMarkup: bad"),
    )

    result = pipeline.run(CrawlRequest(start_url=START))

    assert result.state == RunState.COMPLETED
    assert result.pages_scraped == 0
    assert result.stats.parsed_error == 1
    assert any("Error parsing HTML" in entry.message for entry in result.logs)


def test_cancellation_keeps_gathered_items(make_pipeline):
    token = CancellationToken()

    def on_log(entry):
        if entry.message.startswith("Parsed "):
            token.cancel()

    history = InMemoryHistoryStore()
    pipeline, (strategy,) = make_pipeline(_site(3), history=history)

    result = pipeline.run(
        CrawlRequest(start_url=START, max_pages=10, page_depth=2),
        cancel_token=token,
        on_log=on_log,
    )

    assert result.state == RunState.COMPLETED
    assert result.partial
    assert strategy.calls == [START]
    assert [item.content for item in result.items] == ["Home", "Welcome"]
    assert any("cancelled" in entry.message for entry in result.logs)
    assert history.records()[0].status == "cancelled"


def test_cancelled_before_start_fetches_nothing(make_pipeline):
    token = CancellationToken()
    token.cancel()
    pipeline, (strategy,) = make_pipeline(_site(1))

    result = pipeline.run(CrawlRequest(start_url=START), cancel_token=token)

    assert strategy.calls == []
    assert result.partial
    assert result.pages_scraped == 0


def test_progress_events_and_final_summary(make_pipeline):
    seen: list[float] = []
    pipeline, _ = make_pipeline(_site(3))

    result = pipeline.run(
        CrawlRequest(start_url=START, max_pages=8, page_depth=2),
        on_progress=seen.append,
    )

    assert seen[0] == 0
    assert seen == sorted(seen)
    assert seen[-1] == 100
    assert all(0 <= value <= 100 for value in seen)
    assert result.pages_scraped == 4
    assert result.logs[-1].message == f"Crawl finished: 4 page(s), {len(result.items)} item(s) collected"


def test_history_receives_summary(make_pipeline):
    history = InMemoryHistoryStore()
    pipeline, _ = make_pipeline(_site(1), history=history)
    request = CrawlRequest(start_url="example.test", data_type=DataSelector.LINKS)

    result = pipeline.run(request)

    (record,) = history.records()
    assert record.url == "https://example.test"
    assert record.data_type == "links"
    assert record.content_filters == {
        "headings": True,
        "paragraphs": True,
        "images": False,
        "links": False,
    }
    assert record.pages_scraped == result.pages_scraped
    assert record.items_found == len(result.items)
    assert record.status == "completed"


def test_failing_history_store_is_not_fatal(make_pipeline):
    class BrokenStore:
        def add(self, record):
            raise OSError("disk full")

    pipeline, _ = make_pipeline(_site(1), history=BrokenStore())

    result = pipeline.run(CrawlRequest(start_url=START))

    assert result.state == RunState.COMPLETED
    assert any("Could not save history" in entry.message for entry in result.logs)


def test_pipeline_is_reusable_across_runs(make_pipeline):
    pipeline, _ = make_pipeline(_site(1))

    first = pipeline.run(CrawlRequest(start_url=START, max_pages=5, page_depth=2))
    second = pipeline.run(CrawlRequest(start_url=START, max_pages=5, page_depth=2))

    assert first.pages_scraped == second.pages_scraped == 2
    assert first.logs[0].message == second.logs[0].message == f"Starting crawl of {START}"
