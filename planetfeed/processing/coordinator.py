"""
Ingestion Coordinator
====================

Fans the feed list out over a fixed pool of worker threads. Each worker
runs fetch -> parse -> normalize for the feeds it dequeues and keeps its
results in a private accumulator; accumulators are concatenated only after
every worker has finished.

Shared state is limited to the work queue, the progress reporter, and the
validator cache, each of which does its own locking.
"""

import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..config.settings import get_settings
from ..ingestion.feed_fetcher import FeedFetcher, NotModified
from ..ingestion.feed_parser import FeedParser
from ..storage.models import FeedDescriptor, Item
from ..storage.validator_cache import ValidatorCache
from ..utils.exceptions import ErrorCode, FeedError, PlanetFeedError
from ..utils.logging import get_logger_for_component
from ..utils.validators import validate_url


class FeedStatus(str, Enum):
    """Per-feed result of one ingestion run."""
    OK = "ok"
    NOT_MODIFIED = "not modified"
    ERROR = "error"


@dataclass
class FeedOutcome:
    """What happened to one feed during a run."""

    feed: FeedDescriptor
    status: FeedStatus
    item_count: int = 0
    error: Optional[str] = None

    def status_line(self) -> str:
        """Human-readable status line for the feed."""
        if self.status == FeedStatus.OK:
            return f"{self.feed.name}: ok ({self.item_count} items)"
        if self.status == FeedStatus.NOT_MODIFIED:
            return f"{self.feed.name}: not modified"
        return f"{self.feed.name}: error: {self.error}"


OutcomeCallback = Callable[[FeedOutcome], None]


class ProgressReporter:
    """Mutex-guarded outcome counters shared by all workers."""

    def __init__(self, on_outcome: Optional[OutcomeCallback] = None):
        self.on_outcome = on_outcome
        self._lock = threading.Lock()
        self._counts: Dict[FeedStatus, int] = {status: 0 for status in FeedStatus}
        self._outcomes: List[FeedOutcome] = []

    def record(self, outcome: FeedOutcome) -> None:
        """Count an outcome and emit its status line."""
        with self._lock:
            self._counts[outcome.status] += 1
            self._outcomes.append(outcome)
            # Called under the lock so status lines never interleave
            if self.on_outcome:
                self.on_outcome(outcome)

    def count(self, status: FeedStatus) -> int:
        with self._lock:
            return self._counts[status]

    @property
    def outcomes(self) -> List[FeedOutcome]:
        with self._lock:
            return list(self._outcomes)


@dataclass
class IngestionReport:
    """Aggregated result of one coordinator run."""

    items: List[Item]
    validator_cache: ValidatorCache
    outcomes: List[FeedOutcome] = field(default_factory=list)
    success_count: int = 0
    not_modified_count: int = 0
    error_count: int = 0

    def summary_line(self) -> str:
        return (
            f"{len(self.items)} fresh items from {self.success_count} feeds "
            f"({self.not_modified_count} not modified, {self.error_count} errors)"
        )


class IngestionCoordinator:
    """Concurrent feed ingestion over a fixed-size worker pool."""

    _SENTINEL = None

    def __init__(
        self,
        parser: Optional[FeedParser] = None,
        fetcher_factory: Optional[Callable[[], FeedFetcher]] = None,
        workers: Optional[int] = None,
        use_cache: bool = True,
    ):
        """Initialize ingestion coordinator.

        Args:
            parser: Feed parser shared by workers (it holds no per-call state)
            fetcher_factory: Builds one fetcher per worker thread
            workers: Worker pool size (default from config)
            use_cache: Send cached validators with each request
        """
        if parser is None or workers is None:
            settings = get_settings()
            parser = parser or FeedParser(excerpt_length=settings.processing.excerpt_length)
            workers = workers or settings.fetch.parallel_feeds

        self.parser = parser
        self.fetcher_factory = fetcher_factory or FeedFetcher
        self.workers = workers
        self.use_cache = use_cache
        self.logger = get_logger_for_component("coordinator")

    def run(
        self,
        feeds: List[FeedDescriptor],
        validator_cache: ValidatorCache,
        cutoff: Optional[datetime] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> IngestionReport:
        """Fetch and parse every feed.

        Args:
            feeds: Feed descriptors, in configured order
            validator_cache: Cache consulted before and updated after fetches
            cutoff: Retention boundary passed to the parser
            on_outcome: Called once per feed as it completes

        Returns:
            IngestionReport with fresh items in configured feed order
        """
        reporter = ProgressReporter(on_outcome=on_outcome)
        work_queue: "queue.Queue[Optional[Tuple[int, FeedDescriptor]]]" = queue.Queue()

        for index, feed in enumerate(feeds):
            work_queue.put((index, feed))

        pool_size = max(1, min(self.workers, len(feeds)))
        for _ in range(pool_size):
            work_queue.put(self._SENTINEL)

        self.logger.info(f"Ingesting {len(feeds)} feeds with {pool_size} workers")

        accumulators: List[List[Tuple[int, List[Item]]]] = [[] for _ in range(pool_size)]
        threads = [
            threading.Thread(
                target=self._worker,
                args=(work_queue, validator_cache, cutoff, reporter, accumulators[n]),
                name=f"feed-worker-{n + 1}",
                daemon=True,
            )
            for n in range(pool_size)
        ]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Restore configured feed order so duplicate resolution is deterministic
        results = sorted(
            (entry for accumulator in accumulators for entry in accumulator),
            key=lambda entry: entry[0],
        )
        items = [item for _, feed_items in results for item in feed_items]

        report = IngestionReport(
            items=items,
            validator_cache=validator_cache,
            outcomes=reporter.outcomes,
            success_count=reporter.count(FeedStatus.OK),
            not_modified_count=reporter.count(FeedStatus.NOT_MODIFIED),
            error_count=reporter.count(FeedStatus.ERROR),
        )

        self.logger.info(f"Ingestion complete: {report.summary_line()}")
        return report

    def _worker(
        self,
        work_queue: "queue.Queue",
        validator_cache: ValidatorCache,
        cutoff: Optional[datetime],
        reporter: ProgressReporter,
        accumulator: List[Tuple[int, List[Item]]],
    ) -> None:
        """Drain the work queue until a sentinel arrives."""
        fetcher = self.fetcher_factory()
        try:
            while True:
                work = work_queue.get()
                if work is self._SENTINEL:
                    break

                index, feed = work
                outcome, items = self.process_feed(fetcher, feed, validator_cache, cutoff)
                if items:
                    accumulator.append((index, items))
                reporter.record(outcome)
        finally:
            fetcher.close()

    def process_feed(
        self,
        fetcher: FeedFetcher,
        feed: FeedDescriptor,
        validator_cache: ValidatorCache,
        cutoff: Optional[datetime] = None,
    ) -> Tuple[FeedOutcome, List[Item]]:
        """Run fetch -> parse for one feed, isolating any failure.

        The validator entry is only replaced after the new document parsed,
        so a failure leaves the next run to refetch in full.
        """
        logger = get_logger_for_component("coordinator", feed_url=feed.url)

        try:
            if not validate_url(feed.url):
                raise FeedError(
                    "invalid feed URL", feed_url=feed.url, error_code=ErrorCode.FEED_INVALID_URL
                )

            validator = validator_cache.get(feed.url) if self.use_cache else None
            result = fetcher.fetch(feed.url, validator)

            if isinstance(result, NotModified):
                logger.info(f"{feed.name}: not modified")
                return FeedOutcome(feed, FeedStatus.NOT_MODIFIED), []

            items = self.parser.parse(
                result.body, feed.name, feed.url, cutoff, base_url=result.url
            )
            validator_cache.update(feed.url, etag=result.etag, last_modified=result.last_modified)

            logger.info(f"{feed.name}: {len(items)} items")
            return FeedOutcome(feed, FeedStatus.OK, item_count=len(items)), items

        except PlanetFeedError as e:
            logger.error(f"{feed.name}: {e}", extra=e.to_dict())
            return FeedOutcome(feed, FeedStatus.ERROR, error=e.message), []

        except Exception as e:
            # One misbehaving feed must not abort the run
            logger.exception(f"{feed.name}: unexpected error")
            return FeedOutcome(
                feed, FeedStatus.ERROR, error=f"{type(e).__name__}: {e}"
            ), []
