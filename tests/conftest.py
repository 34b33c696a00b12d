"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for PlanetFeed tests.

Every test that touches settings gets its own storage and log locations
under tmp_path, so nothing is written to the working directory.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_test_root = Path(tempfile.gettempdir()) / "planetfeed_tests"
os.environ["PLANETFEED_STORAGE__OPML_PATH"] = str(_test_root / "feeds.opml")
os.environ["PLANETFEED_STORAGE__ITEMS_PATH"] = str(_test_root / "data" / "items.json")
os.environ["PLANETFEED_STORAGE__VALIDATORS_PATH"] = str(_test_root / "data" / "validators.json")
os.environ["PLANETFEED_LOGGING__FILE_PATH"] = str(_test_root / "logs" / "planetfeed.log")
os.environ["PLANETFEED_LOGGING__CONSOLE_LOGGING"] = "false"


# Fixed clock matching the sample feed dates
FIXED_NOW = datetime(2024, 9, 10, 0, 0, 0, tzinfo=timezone.utc)


SAMPLE_RSS_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Example Blog</title>
        <link>https://blog.example.com/</link>
        <description>Test feed for unit testing</description>
        <item>
            <title>First &amp; Foremost</title>
            <link>https://blog.example.com/posts/first</link>
            <description>This is a test article summary with &lt;strong&gt;HTML&lt;/strong&gt;</description>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
        </item>
        <item>
            <title>Second Post</title>
            <link>/posts/second</link>
            <description>Another test article with some content</description>
            <pubDate>Wed, 04 Sep 2024 15:30:00 GMT</pubDate>
        </item>
        <item>
            <title>Ancient History</title>
            <link>https://blog.example.com/posts/ancient</link>
            <description>Published long before the retention window</description>
            <pubDate>Mon, 01 Jul 2024 08:00:00 GMT</pubDate>
        </item>
    </channel>
</rss>'''

SAMPLE_ATOM_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Atom Example</title>
    <link rel="self" href="https://atom.example.org/feed.xml"/>
    <link rel="alternate" href="https://atom.example.org/"/>
    <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
    <updated>2024-09-06T18:30:02Z</updated>
    <entry>
        <title>Atom Entry</title>
        <link rel="alternate" href="https://atom.example.org/2024/09/atom-entry"/>
        <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
        <updated>2024-09-06T18:30:02Z</updated>
        <content type="html">&lt;p&gt;Atom content body&lt;/p&gt;</content>
    </entry>
</feed>'''

SAMPLE_OPML = '''<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
    <head><title>Test Feeds</title></head>
    <body>
        <outline text="Blogs">
            <outline type="rss" text="Example Blog" title="Example Blog" xmlUrl="https://blog.example.com/feed.xml"/>
            <outline type="rss" text="Atom Example" xmlUrl="https://atom.example.org/feed.xml"/>
        </outline>
    </body>
</opml>'''


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Settings with all file locations isolated under tmp_path."""
    from planetfeed.config import settings as settings_module

    monkeypatch.setenv("PLANETFEED_STORAGE__OPML_PATH", str(tmp_path / "feeds.opml"))
    monkeypatch.setenv("PLANETFEED_STORAGE__ITEMS_PATH", str(tmp_path / "data" / "items.json"))
    monkeypatch.setenv("PLANETFEED_STORAGE__VALIDATORS_PATH", str(tmp_path / "data" / "validators.json"))
    monkeypatch.setenv("PLANETFEED_LOGGING__FILE_PATH", str(tmp_path / "logs" / "planetfeed.log"))

    settings = settings_module.get_settings(reload=True)
    yield settings

    # Next caller rebuilds from the restored environment
    settings_module._settings = None


@pytest.fixture
def opml_file(test_settings):
    """OPML feed list with two feeds at the configured location."""
    path = Path(test_settings.storage.opml_path)
    path.write_text(SAMPLE_OPML, encoding="utf-8")
    return path


# ============================================================================
# Feed Document Fixtures
# ============================================================================


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def sample_rss_feed():
    return SAMPLE_RSS_FEED


@pytest.fixture
def sample_atom_feed():
    return SAMPLE_ATOM_FEED


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def http_response():
    """Factory for mocked requests.Response objects."""

    def _make(status_code=200, content=b"", headers=None, reason="OK"):
        response = Mock()
        response.status_code = status_code
        response.content = content
        response.headers = headers or {}
        response.reason = reason
        return response

    return _make


@pytest.fixture
def sample_items():
    """Items as the parser would produce them for the sample RSS feed."""
    from planetfeed.storage.models import Item

    return [
        Item(
            url="https://blog.example.com/posts/first",
            title="First & Foremost",
            excerpt="This is a test article summary with HTML",
            published=datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc),
            source="Example Blog",
            source_url="https://blog.example.com/",
            feed_url="https://blog.example.com/feed.xml",
        ),
        Item(
            url="https://blog.example.com/posts/second",
            title="Second Post",
            excerpt="Another test article with some content",
            published=datetime(2024, 9, 4, 15, 30, tzinfo=timezone.utc),
            source="Example Blog",
            source_url="https://blog.example.com/",
            feed_url="https://blog.example.com/feed.xml",
        ),
    ]
