"""
Merge and Retention Engine
==========================

Combines freshly fetched items with the persisted store, keyed by
normalized URL, then prunes everything older than the retention cutoff.

Entries without a fresh counterpart are kept as-is: the store only shrinks
through retention, never because a feed was down or answered 304.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Tuple

from ..storage.models import Item
from ..utils.logging import get_logger_for_component


# Fields owned by the crawler; everything else belongs to downstream stages
CRAWL_FIELDS = ("title", "excerpt", "published", "source", "source_url", "feed_url")

# Crawl fields left alone once the enrichment stage has rewritten them
ENRICHED_FIELDS = ("title", "excerpt")


@dataclass
class MergeStats:
    """Statistics from one merge."""
    existing_items: int = 0
    fresh_items: int = 0
    inserted: int = 0
    updated: int = 0
    preserved_enrichment: int = 0
    duplicates_in_run: int = 0
    pruned_existing: int = 0
    pruned_fresh: int = 0
    total_items: int = 0

    @property
    def pruned(self) -> int:
        return self.pruned_existing + self.pruned_fresh


class MergeEngine:
    """Merge-by-identity with retention pruning."""

    def __init__(self):
        self.logger = get_logger_for_component("merger")

    def merge(
        self, existing: List[Item], fresh: List[Item], cutoff: datetime
    ) -> Tuple[List[Item], MergeStats]:
        """Merge fresh items into the existing store.

        Args:
            existing: Items loaded from the persisted store
            fresh: Items fetched this run, in configured feed order
            cutoff: Retention boundary; anything published before it is dropped

        Returns:
            (new store sorted by published descending, merge statistics)
        """
        stats = MergeStats(existing_items=len(existing), fresh_items=len(fresh))

        index: Dict[str, Item] = {}
        for item in existing:
            if item.published < cutoff:
                stats.pruned_existing += 1
                continue
            # Collapse duplicates a hand-edited store might contain
            index.setdefault(item.identity, item)

        seen_this_run = set()
        for item in fresh:
            if item.published < cutoff:
                stats.pruned_fresh += 1
                continue

            key = item.identity
            if key in seen_this_run:
                # First feed listed wins within one run
                stats.duplicates_in_run += 1
                continue
            seen_this_run.add(key)

            current = index.get(key)
            if current is None:
                index[key] = item.model_copy(deep=True)
                stats.inserted += 1
                continue

            index[key] = self._apply_crawl_fields(current, item, stats)
            stats.updated += 1

        merged = sort_items(list(index.values()))
        stats.total_items = len(merged)

        self.logger.info(
            f"Merged store: {stats.total_items} items "
            f"({stats.inserted} new, {stats.updated} updated, {stats.pruned} pruned)"
        )
        return merged, stats

    def _apply_crawl_fields(self, current: Item, fresh: Item, stats: MergeStats) -> Item:
        """Overwrite crawl-sourced fields, keeping enrichment work intact."""
        fields = CRAWL_FIELDS
        if current.enrichment.is_processed:
            fields = tuple(name for name in CRAWL_FIELDS if name not in ENRICHED_FIELDS)
            stats.preserved_enrichment += 1

        return current.model_copy(
            update={name: getattr(fresh, name) for name in fields}, deep=True
        )


def sort_items(items: List[Item]) -> List[Item]:
    """Newest first; URL breaks ties so the snapshot is deterministic."""
    return sorted(items, key=lambda item: (-item.published.timestamp(), item.url))
