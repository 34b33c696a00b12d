"""
PlanetFeed Processing Module
===========================

Concurrent ingestion, merge-by-identity with retention pruning, and the
pipeline that ties them to the persisted snapshots.
"""

from .coordinator import IngestionCoordinator, IngestionReport, FeedOutcome, FeedStatus, ProgressReporter
from .merger import MergeEngine, MergeStats
from .pipeline import IngestionPipeline, PipelineResult

__all__ = [
    'IngestionCoordinator',
    'IngestionReport',
    'FeedOutcome',
    'FeedStatus',
    'ProgressReporter',
    'MergeEngine',
    'MergeStats',
    'IngestionPipeline',
    'PipelineResult',
]
