"""
PlanetFeed Storage Layer
=======================

Flat JSON snapshots for the aggregated item set and the HTTP validator
cache. No database: each snapshot is rewritten in full once per run.
"""

from .item_store import ItemStore
from .validator_cache import ValidatorCache
from .models import Item, Enrichment, ProcessingStatus, FeedDescriptor, ValidatorEntry

__all__ = [
    "ItemStore",
    "ValidatorCache",
    "Item",
    "Enrichment",
    "ProcessingStatus",
    "FeedDescriptor",
    "ValidatorEntry",
]
