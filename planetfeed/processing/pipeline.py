"""
Ingestion Pipeline Orchestrator
==============================

Runs one complete ingestion pass: load inputs, fetch every feed
concurrently, merge with the persisted store, prune, and write the
snapshots back.

The item store is rewritten exactly once, after every merge decision has
been made in memory.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import List, Optional

from ..config.settings import PlanetFeedSettings, get_settings
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_list import load_feed_list
from ..ingestion.feed_parser import FeedParser
from ..storage.item_store import ItemStore
from ..storage.validator_cache import ValidatorCache
from ..utils.logging import get_logger_for_component, PerformanceLogger

from .coordinator import IngestionCoordinator, FeedOutcome, OutcomeCallback
from .merger import MergeEngine, MergeStats


@dataclass
class PipelineResult:
    """Result of one ingestion run."""
    feeds_total: int
    feeds_ok: int
    feeds_not_modified: int
    feeds_failed: int
    fresh_items: int
    stored_items: int
    cutoff: datetime
    merge_stats: MergeStats
    processing_time_seconds: float = 0.0
    outcomes: List[FeedOutcome] = field(default_factory=list)

    def summary_line(self) -> str:
        """End-of-run summary printed after the per-feed status lines."""
        return (
            f"Done. {self.stored_items} items stored "
            f"({self.merge_stats.inserted} new, {self.merge_stats.updated} updated, "
            f"{self.merge_stats.pruned} pruned) from {self.feeds_total} feeds: "
            f"{self.feeds_ok} ok, {self.feeds_not_modified} not modified, "
            f"{self.feeds_failed} errors."
        )


def retention_cutoff(now: datetime, retention_days: int) -> datetime:
    """Oldest publish time kept in the store."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc) - timedelta(days=retention_days)


class IngestionPipeline:
    """Complete ingestion pass orchestrator."""

    def __init__(
        self,
        settings: Optional[PlanetFeedSettings] = None,
        coordinator: Optional[IngestionCoordinator] = None,
        merge_engine: Optional[MergeEngine] = None,
    ):
        """Initialize ingestion pipeline.

        Args:
            settings: Application settings (default: global settings)
            coordinator: Ingestion coordinator (default built from settings)
            merge_engine: Merge engine
        """
        self.settings = settings or get_settings()
        self.coordinator = coordinator
        self.merge_engine = merge_engine or MergeEngine()
        self.item_store = ItemStore(self.settings.storage.items_path)
        self.logger = get_logger_for_component("pipeline")

    def run(
        self,
        now: Optional[datetime] = None,
        use_cache: bool = True,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> PipelineResult:
        """Run one ingestion pass.

        Args:
            now: Clock reading for the retention cutoff (default: current UTC time)
            use_cache: Send cached validators; False forces full refetches
            on_outcome: Called once per feed with its outcome

        Returns:
            PipelineResult with per-feed outcomes and merge statistics

        Raises:
            ConfigurationError: If the feed list is missing or invalid
            StorageError: If the existing store cannot be read or a snapshot
                cannot be written
        """
        # Preconditions first: nothing touches the network before these pass
        feeds = load_feed_list(self.settings.storage.opml_path)
        existing = self.item_store.load()
        validator_cache = ValidatorCache.load(self.settings.storage.validators_path)

        # One cutoff for the whole run, shared by parse-time and merge-time pruning
        cutoff = retention_cutoff(
            now or datetime.now(timezone.utc), self.settings.processing.retention_days
        )

        coordinator = self.coordinator or self._build_coordinator(use_cache)

        with PerformanceLogger(self.logger, "ingestion run", feeds=len(feeds)) as perf:
            report = coordinator.run(feeds, validator_cache, cutoff=cutoff, on_outcome=on_outcome)
            merged, merge_stats = self.merge_engine.merge(existing, report.items, cutoff)

            self.item_store.save(merged)
            report.validator_cache.save()

        result = PipelineResult(
            feeds_total=len(feeds),
            feeds_ok=report.success_count,
            feeds_not_modified=report.not_modified_count,
            feeds_failed=report.error_count,
            fresh_items=len(report.items),
            stored_items=len(merged),
            cutoff=cutoff,
            merge_stats=merge_stats,
            processing_time_seconds=perf.duration or 0.0,
            outcomes=report.outcomes,
        )

        self.logger.info(result.summary_line())
        return result

    def _build_coordinator(self, use_cache: bool) -> IngestionCoordinator:
        """Coordinator whose parser and fetchers follow this pipeline's settings."""
        fetch_settings = self.settings.fetch
        return IngestionCoordinator(
            parser=FeedParser(excerpt_length=self.settings.processing.excerpt_length),
            fetcher_factory=partial(
                FeedFetcher,
                timeout=fetch_settings.request_timeout,
                max_redirects=fetch_settings.max_redirects,
                user_agent=fetch_settings.user_agent,
            ),
            workers=fetch_settings.parallel_feeds,
            use_cache=use_cache,
        )
