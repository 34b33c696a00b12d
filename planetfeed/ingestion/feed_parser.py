"""
Feed Parser
===========

Turns a raw RSS or Atom document into normalized Items using feedparser.

RSS and Atom name the same concepts differently (pubDate / published /
updated / dc:date, description / summary / content). Each field is resolved
by an ordered list of extractor rules, tried until one yields a value.
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, Union

import feedparser
from pydantic import ValidationError as PydanticValidationError

from planetfeed.storage.models import Item
from planetfeed.utils.logging import get_logger_for_component
from planetfeed.utils.exceptions import FeedParseError, MalformedItemError
from planetfeed.utils.validators import URLValidator

from .content_cleaner import ContentCleaner, DEFAULT_EXCERPT_LENGTH


Extractor = Callable[[Any], Any]


def _first_value(data: Any, rules: Sequence[Extractor]) -> Any:
    """Return the first non-empty value produced by the extractor rules."""
    for rule in rules:
        value = rule(data)
        if value:
            return value
    return None


def _struct_time_to_utc(value: Any) -> Optional[datetime]:
    """feedparser normalizes dates to UTC struct_time tuples."""
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _first_content_value(entry: Any) -> Optional[str]:
    content = entry.get("content")
    if isinstance(content, list):
        for block in content:
            value = block.get("value") if isinstance(block, dict) else None
            if value:
                return value
    return None


def _first_link_href(entry: Any) -> Optional[str]:
    for link in entry.get("links") or []:
        href = link.get("href") if isinstance(link, dict) else None
        if href:
            return href
    return None


# Ordered extractor rules for entry fields
LINK_RULES: List[Extractor] = [
    lambda entry: (entry.get("link") or "").strip(),
    lambda entry: (_first_link_href(entry) or "").strip(),
]

DATE_RULES: List[Extractor] = [
    lambda entry: _struct_time_to_utc(entry.get("published_parsed")),
    lambda entry: _struct_time_to_utc(entry.get("updated_parsed")),
    lambda entry: _struct_time_to_utc(entry.get("created_parsed")),
]

DESCRIPTION_RULES: List[Extractor] = [
    lambda entry: entry.get("summary") or entry.get("description"),
    _first_content_value,
]


class FeedParser:
    """
    RSS/Atom parser producing normalized Items.

    Features:
    - RSS 0.9x/1.0/2.0 and Atom via feedparser
    - Relative item links resolved against the URL the document came from
    - Items older than the retention cutoff dropped at parse time
    - Canonical site URL selection that skips feed endpoints
    """

    def __init__(self, excerpt_length: int = DEFAULT_EXCERPT_LENGTH, cleaner: Optional[ContentCleaner] = None):
        """Initialize feed parser.

        Args:
            excerpt_length: Maximum excerpt length in characters
            cleaner: Content cleaner used for titles and excerpts
        """
        self.excerpt_length = excerpt_length
        self.cleaner = cleaner or ContentCleaner(max_length=excerpt_length)
        self.logger = get_logger_for_component("feed_parser")

    def parse(
        self,
        document: Union[bytes, str],
        source_name: str,
        feed_url: str,
        cutoff: Optional[datetime] = None,
        base_url: Optional[str] = None,
    ) -> List[Item]:
        """Parse a syndication document into Items.

        Args:
            document: Raw feed document
            source_name: Display name of the feed
            feed_url: Configured feed URL, recorded on every item
            cutoff: Items published strictly before this are dropped
            base_url: Final URL after redirects; relative links resolve
                against it (default: feed_url)

        Returns:
            Normalized items in document order; empty if the document cannot
            be parsed
        """
        base_url = base_url or feed_url

        try:
            parsed = self.parse_document(document, base_url)
        except FeedParseError as e:
            self.logger.warning(f"Unparseable feed {feed_url}: {e.message}")
            return []

        source_url = self.select_site_url(parsed.feed)

        items = []
        for entry in parsed.entries:
            try:
                item = self._build_item(entry, source_name, source_url, feed_url, base_url)
            except (MalformedItemError, PydanticValidationError) as e:
                self.logger.debug(f"Dropping entry from {feed_url}: {e}")
                continue

            if cutoff is not None and item.published < cutoff:
                self.logger.debug(
                    f"Skipping old item from {feed_url}: "
                    f"published {item.published:%Y-%m-%d} (before {cutoff:%Y-%m-%d})"
                )
                continue

            items.append(item)

        self.logger.debug(f"Parsed {len(items)} items from {feed_url}")
        return items

    def parse_document(self, document: Union[bytes, str], feed_url: str) -> Any:
        """Run feedparser over a document.

        Raises:
            FeedParseError: If the document is not recognizable as a feed
        """
        # feedparser treats a str as a URL or path; bytes are always content
        if isinstance(document, str):
            document = document.encode("utf-8")

        try:
            parsed = feedparser.parse(
                document, response_headers={"content-location": feed_url}
            )
        except Exception as e:
            raise FeedParseError(f"Feed parser failed: {e}", feed_url=feed_url) from e

        if not parsed.get("version") and not parsed.get("entries"):
            reason = parsed.get("bozo_exception") or "not an RSS or Atom document"
            raise FeedParseError(f"Invalid feed structure: {reason}", feed_url=feed_url)

        if parsed.get("bozo"):
            # Many feeds have minor formatting issues; keep what parsed
            self.logger.debug(
                f"Feed parsing warning for {feed_url}: {parsed.get('bozo_exception')}"
            )

        return parsed

    def select_site_url(self, feed_data: Any) -> str:
        """Best-effort canonical site URL for a feed.

        Prefers an explicit rel="alternate" link, then any other feed link,
        then the channel link; the first candidate that does not look like a
        feed endpoint wins.
        """
        candidates = []
        links = [link for link in (feed_data.get("links") or []) if isinstance(link, dict)]

        for link in links:
            if link.get("rel") == "alternate" and link.get("href"):
                candidates.append(link["href"].strip())
                break

        candidates.extend((link.get("href") or "").strip() for link in links)
        candidates.append((feed_data.get("link") or "").strip())

        for candidate in candidates:
            if URLValidator.is_site_url_candidate(candidate):
                return candidate
        return ""

    def _build_item(
        self, entry: Any, source_name: str, source_url: str, feed_url: str, base_url: str
    ) -> Item:
        title = self.cleaner.extract_text_only(entry.get("title"))
        if not title:
            raise MalformedItemError("Item title is empty", field_name="title")

        link = _first_value(entry, LINK_RULES)
        if not link:
            raise MalformedItemError("Item link is empty", field_name="link")

        published = _first_value(entry, DATE_RULES)
        if published is None:
            raise MalformedItemError("Item has no parseable publish date", field_name="published")

        description = _first_value(entry, DESCRIPTION_RULES)

        return Item(
            url=URLValidator.resolve(base_url, link),
            title=title,
            excerpt=self.cleaner.normalize_excerpt(description, self.excerpt_length),
            published=published,
            source=source_name,
            source_url=source_url,
            feed_url=feed_url,
        )
