"""
Feed List Loader
================

Reads the configured feed descriptors from an OPML document. Every
`outline` element carrying an `xmlUrl` attribute is one feed, wherever it
sits in the outline tree.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Union

from planetfeed.storage.models import FeedDescriptor
from planetfeed.utils.logging import get_logger_for_component
from planetfeed.utils.exceptions import ConfigurationError, ErrorCode

logger = get_logger_for_component("feed_list")


def load_feed_list(path: Union[str, Path]) -> List[FeedDescriptor]:
    """Load feed descriptors from an OPML file.

    Args:
        path: OPML file location

    Returns:
        Feeds in document order, without duplicate URLs

    Raises:
        ConfigurationError: If the file is missing or is not valid XML
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(
            f"No OPML file found at {path}",
            config_key="storage.opml_path",
            error_code=ErrorCode.CONFIG_MISSING,
        )

    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as e:
        raise ConfigurationError(
            f"Cannot parse OPML file {path}: {e}",
            config_key="storage.opml_path",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e

    feeds: List[FeedDescriptor] = []
    seen_urls = set()

    for outline in tree.getroot().iter("outline"):
        xml_url = (outline.get("xmlUrl") or "").strip()
        if not xml_url:
            continue

        if xml_url in seen_urls:
            logger.warning(f"Duplicate feed URL in OPML, keeping first: {xml_url}")
            continue
        seen_urls.add(xml_url)

        name = (outline.get("title") or outline.get("text") or "").strip() or xml_url
        feeds.append(FeedDescriptor(name=name, url=xml_url))

    logger.info(f"Loaded {len(feeds)} feeds from {path}")
    return feeds
