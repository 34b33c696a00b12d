"""
Content Cleaner
===============

HTML-to-text cleaning and excerpt bounding for feed item descriptions
and titles.

This module provides:
- Markup removal with script/style content dropped
- HTML entity decoding and whitespace collapsing
- Excerpt truncation at a word boundary
"""

import re
import html
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from planetfeed.utils.logging import get_logger_for_component


DEFAULT_EXCERPT_LENGTH = 1000
ELLIPSIS = "..."

# Back off to a word boundary only if it keeps at least this share of the text
WORD_BOUNDARY_FLOOR = 0.6


class ContentCleaner:
    """
    HTML content cleaner producing plain text.

    Features:
    - Removes non-content elements (scripts, styles, embeds) with their text
    - Decodes entities, including double-escaped ones common in RSS
    - Collapses whitespace runs to single spaces
    - Bounds excerpts at a word boundary
    """

    # HTML elements to completely remove (including content)
    NON_CONTENT_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "noscript",
        "template",
    }

    WHITESPACE_PATTERN = re.compile(r"\s+", re.MULTILINE)
    TAG_PATTERN = re.compile(r"</?[a-zA-Z][^<>]*>")

    # Markup that arrived entity-escaped once (&lt;p&gt;) or twice (&amp;lt;p&amp;gt;)
    ESCAPED_TAG_PATTERN = re.compile(r"&(?:amp;)?lt;/?[a-zA-Z][^<>]*?&(?:amp;)?gt;")

    def __init__(self, max_length: int = DEFAULT_EXCERPT_LENGTH):
        """Initialize content cleaner.

        Args:
            max_length: Default excerpt bound in characters
        """
        self.max_length = max_length
        self.logger = get_logger_for_component("content_cleaner")

        # Built-in parser, no lxml dependency
        self.parser = "html.parser"

    def unescape_markup(self, html_content: str) -> str:
        """Undo entity escaping of markup in descriptions with no real tags.

        Text such as ``x &lt; 5`` is left alone; only escaped tags trigger
        unescaping, so BeautifulSoup can strip them afterwards.
        """
        for _ in range(2):
            if self.TAG_PATTERN.search(html_content):
                break
            if not self.ESCAPED_TAG_PATTERN.search(html_content):
                break
            html_content = html.unescape(html_content)
        return html_content

    def extract_text_only(self, html_content: Optional[str]) -> str:
        """
        Extract only text content from HTML, removing all markup.

        Args:
            html_content: HTML content to process

        Returns:
            Plain text content with all HTML removed, entities decoded, and
            whitespace collapsed
        """
        if not html_content or not html_content.strip():
            return ""

        html_content = self.unescape_markup(html_content)

        try:
            with warnings.catch_warnings():
                # Plain-text descriptions that look like URLs or paths are fine
                warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
                soup = BeautifulSoup(html_content, self.parser)

            for element in soup(list(self.NON_CONTENT_ELEMENTS)):
                element.decompose()

            # get_text() returns decoded text; it must not be unescaped again
            text = soup.get_text(separator=" ")

        except Exception as e:
            self.logger.warning(f"Failed to extract text, using fallback: {e}")
            text = html.unescape(self.TAG_PATTERN.sub(" ", html_content))

        text = self.WHITESPACE_PATTERN.sub(" ", text)
        return text.strip()

    def truncate(self, text: str, max_length: Optional[int] = None) -> str:
        """Bound text to max_length characters plus an ellipsis marker.

        Cuts at the last space before the bound when that space lies at or
        after 60% of the bound; otherwise cuts hard.
        """
        max_length = self.max_length if max_length is None else max_length
        if len(text) <= max_length:
            return text

        truncated = text[:max_length]
        last_space = truncated.rfind(" ")
        if last_space >= max_length * WORD_BOUNDARY_FLOOR:
            truncated = truncated[:last_space]

        return f"{truncated.rstrip()}{ELLIPSIS}"

    def normalize_excerpt(
        self, raw_description: Optional[str], max_length: Optional[int] = None
    ) -> str:
        """Plain-text, bounded excerpt for a raw item description."""
        if not raw_description:
            return ""
        return self.truncate(self.extract_text_only(raw_description), max_length)


# Convenience function for callers without a cleaner instance
def normalize_excerpt(
    raw_description: Optional[str], max_length: int = DEFAULT_EXCERPT_LENGTH
) -> str:
    """Quick function to build a bounded plain-text excerpt."""
    cleaner = ContentCleaner(max_length=max_length)
    return cleaner.normalize_excerpt(raw_description)
