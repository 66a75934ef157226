"""End-to-end crawl orchestration."""

from __future__ import annotations

import logging

from .config import CrawlRequest, ExtractionPlan, FetcherConfig
from .context import CancellationToken, LogListener, ProgressListener, RunContext
from .expander import ExpansionPolicy, LinkExpander
from .extractor import Extractor, text_sample_item
from .fetcher import Fetcher, describe_failure
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .history import HistoryRecord, HistoryStore
from .parsers import ParseFailure, TextSample, classify_and_parse
from .types import CrawlResult, CrawlStats, ExtractedItem, FrontierItem, RunState

logger = logging.getLogger(__name__)


class Pipeline:
    """Drive one breadth-first crawl at a time: dequeue, fetch, parse, extract, expand.

    A single worker drains the frontier; the next page is not dequeued until
    the current one is fully extracted and expanded. Per-page faults (fetch
    exhausted, parse failure) are logged and skipped. Anything else stops the
    run as `fatal`, keeping the items gathered so far. `run` never raises.
    """

    def __init__(
        self,
        fetcher_config: FetcherConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        extractor: Extractor | None = None,
        expander: LinkExpander | None = None,
        history: HistoryStore | None = None,
    ) -> None:
        self.fetcher_config = fetcher_config or FetcherConfig()
        self.fetcher = fetcher or Fetcher(self.fetcher_config)
        self.extractor = extractor or Extractor()
        self.expander = expander or LinkExpander()
        self.history = history

        self._owns_fetcher = fetcher is None
        self.state = RunState.IDLE

    def run(
        self,
        request: CrawlRequest,
        *,
        cancel_token: CancellationToken | None = None,
        on_log: LogListener | None = None,
        on_progress: ProgressListener | None = None,
    ) -> CrawlResult:
        """Crawl from `request.start_url` and return everything gathered."""

        context = RunContext(cancel_token=cancel_token, on_log=on_log, on_progress=on_progress)
        result = CrawlResult(start_url=request.start_url, stats=CrawlStats())
        frontier = Frontier(max_depth=request.page_depth)

        self._set_state(result, RunState.RUNNING)
        context.set_progress(0)
        context.log(f"Starting crawl of {request.start_url}", source=logger)

        try:
            cancelled = self._crawl(request, frontier, context, result)
        except Exception as exc:
            logger.exception("Crawl of %s aborted", request.start_url)
            result.error = f"{exc.__class__.__name__}: {exc}"
            context.log(
                f"Fatal error, crawl aborted: {result.error}",
                level=logging.ERROR,
                source=logger,
            )
            self._set_state(result, RunState.FATAL)
        else:
            result.partial = cancelled
            if cancelled:
                context.log(
                    f"Crawl cancelled after {result.pages_scraped} page(s)",
                    level=logging.WARNING,
                    source=logger,
                )
            else:
                context.set_progress(100)

            self._set_state(result, RunState.COMPLETED)
            context.log(
                f"Crawl finished: {result.pages_scraped} page(s), "
                f"{result.item_count} item(s) collected",
                source=logger,
            )
            self._record_history(request, result, context)
        finally:
            frontier.close()
            result.stats.finish()
            result.visited_urls = frontier.visited_urls()
            if self._owns_fetcher:
                self.fetcher.close()

        result.logs = context.logs
        result.progress = context.progress
        return result

    def _set_state(self, result: CrawlResult, state: RunState) -> None:
        self.state = state
        result.state = state

    def _crawl(
        self,
        request: CrawlRequest,
        frontier: Frontier,
        context: RunContext,
        result: CrawlResult,
    ) -> bool:
        """Run the loop; returns True when it stopped because of cancellation."""

        policy = ExpansionPolicy.for_start_url(
            request.start_url,
            same_domain_only=request.same_domain_only,
            max_depth=request.page_depth,
        )
        plan = request.plan

        self._record_enqueue(result.stats, [frontier.seed(request.start_url)])

        while not frontier.empty() and result.pages_scraped < request.max_pages:
            if context.cancelled:
                return True

            item = frontier.pop()
            if item is None:
                break
            frontier.mark_visited(item.url)

            if self._process_page(item, request, plan, policy, frontier, context, result):
                return True

        return False

    def _process_page(
        self,
        item: FrontierItem,
        request: CrawlRequest,
        plan: ExtractionPlan,
        policy: ExpansionPolicy,
        frontier: Frontier,
        context: RunContext,
        result: CrawlResult,
    ) -> bool:
        """Handle one page; returns True when the fetch was cut short by cancellation."""

        url = item.url
        stats = result.stats

        context.log(f"Fetching {url} (depth {item.depth})", source=logger)
        fetch_result = self.fetcher.fetch(url, context=context)
        stats.fetch_attempts += fetch_result.attempts

        if fetch_result.cancelled:
            return True

        if not fetch_result.ok:
            stats.fetched_error += 1
            context.log(
                f"All fetch attempts failed for {url}: {describe_failure(fetch_result)}",
                level=logging.WARNING,
                source=logger,
            )
            return False

        stats.fetched_ok += 1
        context.log(f"Parsing response from {url} (via {fetch_result.strategy})", source=logger)
        outcome = classify_and_parse(fetch_result.text, url=url)

        if isinstance(outcome, ParseFailure):
            stats.parsed_error += 1
            context.log(
                f"Error parsing HTML from {url}: {outcome.error}",
                level=logging.WARNING,
                source=logger,
            )
            return False

        if isinstance(outcome, TextSample):
            context.log(f"Response from {url} is not HTML; treating it as plain text", source=logger)
            stats.text_pages += 1
            sample_item = text_sample_item(outcome)
            self._accept_page(url, [sample_item] if sample_item else [], request, context, result)
            return False

        items = self.extractor.extract(outcome, plan)
        self._accept_page(url, items, request, context, result)

        if item.depth >= request.page_depth:
            return False

        children = self.expander.expand(
            outcome,
            current_depth=item.depth,
            policy=policy,
            is_seen=frontier.is_seen,
        )
        if not children:
            return False

        enqueue_results = frontier.push_many(children)
        self._record_enqueue(stats, enqueue_results)
        accepted = sum(1 for enqueue_result in enqueue_results if enqueue_result.accepted)
        context.log(
            f"Queued {accepted} link(s) from {url} at depth {item.depth + 1}",
            level=logging.DEBUG,
            source=logger,
        )
        return False

    @staticmethod
    def _accept_page(
        url: str,
        items: list[ExtractedItem],
        request: CrawlRequest,
        context: RunContext,
        result: CrawlResult,
    ) -> None:
        result.items.extend(items)
        result.stats.record_items(items)
        result.pages_scraped += 1
        context.log(f"Parsed {url}: found {len(items)} item(s)", source=logger)
        context.set_progress(min(100.0, result.pages_scraped / request.max_pages * 100))

    def _record_history(
        self,
        request: CrawlRequest,
        result: CrawlResult,
        context: RunContext,
    ) -> None:
        if self.history is None:
            return

        record = HistoryRecord(
            url=request.start_url,
            data_type=request.data_type.value,
            content_filters=request.filters.to_dict(),
            pages_scraped=result.pages_scraped,
            items_found=result.item_count,
            status="cancelled" if result.partial else "completed",
        )
        try:
            self.history.add(record)
        except Exception as exc:
            logger.exception("Failed to save crawl history")
            context.log(
                f"Could not save history: {exc.__class__.__name__}: {exc}",
                level=logging.WARNING,
                source=logger,
            )

    @staticmethod
    def _record_enqueue(stats: CrawlStats, results: list[EnqueueResult]) -> None:
        for enqueue_result in results:
            status = enqueue_result.status
            if status == EnqueueStatus.ENQUEUED:
                stats.frontier_enqueued += 1
            elif status == EnqueueStatus.SKIPPED_SEEN:
                stats.frontier_skipped_seen += 1
            elif status == EnqueueStatus.SKIPPED_DEPTH:
                stats.frontier_skipped_depth += 1
            elif status == EnqueueStatus.SKIPPED_INVALID_URL:
                stats.frontier_skipped_invalid += 1


__all__ = [
    "Pipeline",
]
