"""
PlanetFeed URL Validators
========================

URL validation and normalization helpers shared by the parser, the
coordinator, and the merge engine.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse


class URLValidator:
    """URL validation and normalization utilities."""

    ALLOWED_SCHEMES = {"http", "https"}

    # Candidates that point at a syndication document rather than a web page
    FEED_ENDPOINT_PATTERNS = [
        re.compile(r"\.(xml|rss|atom|json|rdf)(\?|$)", re.IGNORECASE),
        re.compile(r"/(feed|atom|rss)(/|$)", re.IGNORECASE),
    ]

    LOOPBACK_PATTERN = re.compile(
        r"^https?://(localhost|0\.0\.0\.0|127\.0\.0\.1)", re.IGNORECASE
    )

    @classmethod
    def is_http_url(cls, url: Optional[str]) -> bool:
        """Check that a URL is absolute http(s) with a hostname."""
        if not url or not isinstance(url, str):
            return False
        try:
            parsed = urlparse(url.strip())
        except ValueError:
            return False
        return parsed.scheme.lower() in cls.ALLOWED_SCHEMES and bool(parsed.netloc)

    @classmethod
    def resolve(cls, base_url: str, link: str) -> str:
        """Resolve a possibly relative link against a base URL."""
        link = (link or "").strip()
        if not link:
            return ""
        return urljoin(base_url, link)

    @classmethod
    def normalize_identity(cls, url: str) -> str:
        """Identity key for an item URL: trimmed, one trailing slash removed."""
        url = (url or "").strip()
        if url.endswith("/"):
            url = url[:-1]
        return url

    @classmethod
    def is_likely_feed_url(cls, url: str) -> bool:
        """Check if URL looks like a feed endpoint rather than a site page."""
        return any(pattern.search(url) for pattern in cls.FEED_ENDPOINT_PATTERNS)

    @classmethod
    def is_site_url_candidate(cls, url: str) -> bool:
        """Check if URL can serve as the canonical site URL of a feed."""
        if not url or url == "/":
            return False
        if cls.is_likely_feed_url(url):
            return False
        if cls.LOOPBACK_PATTERN.match(url):
            return False
        return True


def validate_url(url: str) -> bool:
    """Quick validation check for http(s) URLs."""
    return URLValidator.is_http_url(url)


def normalize_item_url(url: str) -> str:
    """Quick access to the item identity key."""
    return URLValidator.normalize_identity(url)
