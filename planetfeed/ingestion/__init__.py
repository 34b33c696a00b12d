"""
PlanetFeed Ingestion Module
==========================

Feed ingestion components.

This module handles:
- Conditional HTTP fetching of feed documents
- RSS/Atom parsing into normalized items
- Excerpt cleaning and bounding
- Loading the OPML feed list
"""

from .content_cleaner import ContentCleaner, normalize_excerpt
from .feed_fetcher import FeedFetcher, FetchResponse, NotModified
from .feed_list import load_feed_list
from .feed_parser import FeedParser

__all__ = [
    "ContentCleaner",
    "normalize_excerpt",
    "FeedFetcher",
    "FetchResponse",
    "NotModified",
    "load_feed_list",
    "FeedParser",
]
