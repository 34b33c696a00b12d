"""
Feed Document Fetcher
====================

Conditional HTTP fetching of syndication documents with bounded redirect
following.

A 304 response short-circuits to NotModified before anything is parsed;
this is what keeps repeated scheduled runs cheap.
"""

import time
from dataclasses import dataclass
from typing import Dict, Optional, Union
from urllib.parse import urljoin

import requests

from planetfeed.config.settings import get_settings
from planetfeed.storage.models import ValidatorEntry
from planetfeed.utils.logging import get_logger_for_component
from planetfeed.utils.exceptions import FeedFetchError, ErrorCode


HTTP_NOT_MODIFIED = 304
REDIRECT_STATUSES = {301, 302, 303, 307, 308}

ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/rdf+xml, "
    "application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8"
)


@dataclass
class FetchResponse:
    """Body and validators of a successful fetch."""

    url: str
    body: bytes
    status: int = 200
    etag: Optional[str] = None
    last_modified: Optional[str] = None


@dataclass
class NotModified:
    """The server confirmed the cached copy is current."""

    url: str


FetchOutcome = Union[FetchResponse, NotModified]


class FeedFetcher:
    """HTTP client for feed documents.

    One instance per worker thread: each owns its own requests session.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        max_redirects: Optional[int] = None,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize feed fetcher.

        Args:
            timeout: Open/read timeout in seconds (default from config)
            max_redirects: Redirects to follow before failing (default from config)
            user_agent: User-Agent header (default from config)
            session: Preconfigured session (mainly for tests)
        """
        if timeout is None or max_redirects is None or user_agent is None:
            fetch_settings = get_settings().fetch
            timeout = timeout or fetch_settings.request_timeout
            max_redirects = fetch_settings.max_redirects if max_redirects is None else max_redirects
            user_agent = user_agent or fetch_settings.user_agent

        self.timeout = timeout
        self.max_redirects = max_redirects
        self.logger = get_logger_for_component("feed_fetcher")

        # Redirects are followed by hand so the bound and relative Location
        # handling stay under our control
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": user_agent,
                "Accept": ACCEPT_HEADER,
            }
        )

    def fetch(
        self, feed_url: str, validator: Optional[ValidatorEntry] = None
    ) -> FetchOutcome:
        """Fetch a feed document, conditionally when validators are known.

        Args:
            feed_url: Syndication document URL
            validator: Cached ETag / Last-Modified for this feed

        Returns:
            FetchResponse with body and fresh validators, or NotModified

        Raises:
            FeedFetchError: On network error, timeout, redirect overflow, or
                a status other than 2xx, 3xx-with-Location, or 304
        """
        conditional_headers: Dict[str, str] = (
            validator.conditional_headers() if validator else {}
        )
        current_url = feed_url
        start_time = time.time()

        for _ in range(self.max_redirects + 1):
            response = self._get(current_url, feed_url, conditional_headers)

            if response.status_code == HTTP_NOT_MODIFIED:
                self.logger.debug(f"Not modified: {feed_url}")
                return NotModified(url=current_url)

            if response.status_code in REDIRECT_STATUSES:
                location = response.headers.get("Location")
                if not location:
                    raise FeedFetchError(
                        f"HTTP {response.status_code} without Location header",
                        feed_url=feed_url,
                        status=response.status_code,
                        error_code=ErrorCode.FEED_HTTP_ERROR,
                    )
                current_url = urljoin(current_url, location.strip())
                self.logger.debug(f"Redirected to {current_url}")
                continue

            if 200 <= response.status_code < 300:
                body = response.content
                self.logger.debug(
                    f"Fetched {feed_url} in {time.time() - start_time:.2f}s, "
                    f"size: {len(body)} bytes"
                )
                return FetchResponse(
                    url=current_url,
                    body=body,
                    status=response.status_code,
                    etag=response.headers.get("ETag"),
                    last_modified=response.headers.get("Last-Modified"),
                )

            raise FeedFetchError(
                f"HTTP {response.status_code}: {response.reason or 'error'}",
                feed_url=feed_url,
                status=response.status_code,
                error_code=ErrorCode.FEED_HTTP_ERROR,
            )

        raise FeedFetchError(
            "too many redirects",
            feed_url=feed_url,
            error_code=ErrorCode.FEED_TOO_MANY_REDIRECTS,
        )

    def _get(
        self, url: str, feed_url: str, headers: Dict[str, str]
    ) -> requests.Response:
        """Single GET without redirect following, mapping transport errors."""
        try:
            return self.session.get(
                url,
                headers=headers,
                timeout=(self.timeout, self.timeout),
                allow_redirects=False,
            )
        except requests.Timeout as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "FeedFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
