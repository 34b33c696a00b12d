"""
PlanetFeed - Incremental Feed Aggregation
=========================================

Aggregates many RSS/Atom feeds into one deduplicated, time-bounded item
snapshot that is refreshed incrementally on a schedule.

Main Components:
- Ingestion: conditional HTTP fetching, feed parsing, excerpt normalization
- Processing: concurrent ingestion coordinator, merge and retention engine
- Storage: JSON item store and HTTP validator cache snapshots
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "PlanetFeed Development Team"
__description__ = "Incremental RSS/Atom feed aggregator"
