"""
Unit Tests for Snapshot Storage
===============================

Tests for the item store, the validator cache, and the snapshot models.
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from planetfeed.storage.item_store import ItemStore
from planetfeed.storage.models import Enrichment, Item, ProcessingStatus, ValidatorEntry
from planetfeed.storage.validator_cache import ValidatorCache
from planetfeed.utils.exceptions import ErrorCode, StorageError


class TestItemModel:
    """Test Item validation and serialization."""

    def test_published_normalized_to_utc_seconds(self):
        item = Item(
            url="https://a.example/p",
            title="T",
            published="2024-09-05T14:00:00.123456+02:00",
        )
        assert item.published == datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc)

    def test_naive_published_treated_as_utc(self):
        item = Item(url="https://a.example/p", title="T", published=datetime(2024, 9, 5, 12, 0))
        assert item.published.tzinfo == timezone.utc

    def test_serialized_layout(self, sample_items):
        data = sample_items[0].model_dump(mode="json")

        assert data["published"] == "2024-09-05T12:00:00Z"
        assert data["enrichment"] == {"status": "unprocessed", "score": None, "relevant": None}
        assert list(data) == [
            "url", "title", "excerpt", "published", "source", "source_url", "feed_url", "enrichment",
        ]

    def test_blank_title_rejected(self):
        with pytest.raises(ValueError):
            Item(url="https://a.example/p", title="   ", published=datetime.now(timezone.utc))

    def test_legacy_flags_lifted_into_enrichment(self):
        item = Item.model_validate({
            "url": "https://a.example/p",
            "title": "Legacy",
            "published": "2024-09-05T12:00:00Z",
            "ai_filtered": True,
            "score": 3,
            "relevant": False,
        })

        assert item.enrichment.status == ProcessingStatus.PROCESSED
        assert item.enrichment.score == 3
        assert item.enrichment.relevant is False

    def test_unknown_enrichment_keys_kept(self):
        item = Item.model_validate({
            "url": "https://a.example/p",
            "title": "Extra",
            "published": "2024-09-05T12:00:00Z",
            "enrichment": {"status": "processed", "model": "summarizer-v2"},
        })

        assert item.model_dump()["enrichment"]["model"] == "summarizer-v2"

    def test_unknown_top_level_keys_round_trip(self, tmp_path):
        record = {
            "url": "https://a.example/p",
            "title": "Tagged",
            "published": "2024-09-05T12:00:00Z",
            "tags": ["python", "feeds"],
            "read": True,
        }
        path = tmp_path / "items.json"
        path.write_text(json.dumps([record]), encoding="utf-8")
        store = ItemStore(path)

        store.save(store.load())
        saved = json.loads(path.read_text(encoding="utf-8"))[0]

        assert saved["tags"] == ["python", "feeds"]
        assert saved["read"] is True

    def test_identity_strips_one_trailing_slash(self):
        item = Item(url="https://a.example/p/", title="T", published=datetime.now(timezone.utc))
        assert item.identity == "https://a.example/p"


class TestItemStore:
    """Test cases for ItemStore."""

    def test_missing_file_loads_empty(self, tmp_path):
        assert ItemStore(tmp_path / "items.json").load() == []

    def test_save_and_load(self, tmp_path, sample_items):
        store = ItemStore(tmp_path / "data" / "items.json")

        store.save(sample_items)
        loaded = store.load()

        assert loaded == sample_items

    def test_snapshot_format(self, tmp_path, sample_items):
        path = tmp_path / "items.json"

        ItemStore(path).save(sample_items)
        text = path.read_text(encoding="utf-8")

        assert text.endswith("]\n")
        assert text.startswith('[\n  {\n    "url": "https://blog.example.com/posts/first"')
        assert json.loads(text)[1]["title"] == "Second Post"

    def test_non_ascii_written_verbatim(self, tmp_path):
        path = tmp_path / "items.json"
        item = Item(url="https://a.example/ü", title="Café crème", published=datetime.now(timezone.utc))

        ItemStore(path).save([item])

        assert "Café crème" in path.read_text(encoding="utf-8")

    def test_corrupt_store_raises(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text("[{not json", encoding="utf-8")

        with pytest.raises(StorageError) as exc_info:
            ItemStore(path).load()

        assert exc_info.value.error_code == ErrorCode.STORAGE_CORRUPT
        assert exc_info.value.recoverable is False

    def test_non_array_store_raises(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text('{"items": []}', encoding="utf-8")

        with pytest.raises(StorageError):
            ItemStore(path).load()

    def test_invalid_records_skipped(self, tmp_path, sample_items):
        path = tmp_path / "items.json"
        records = [item.model_dump(mode="json") for item in sample_items]
        records.insert(1, {"url": "https://a.example/broken", "title": ""})
        path.write_text(json.dumps(records), encoding="utf-8")

        loaded = ItemStore(path).load()

        assert [item.url for item in loaded] == [item.url for item in sample_items]

    def test_failed_write_keeps_previous_snapshot(self, tmp_path, sample_items):
        path = tmp_path / "items.json"
        store = ItemStore(path)
        store.save(sample_items[:1])
        before = path.read_text(encoding="utf-8")

        with patch("planetfeed.storage.snapshot.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                store.save(sample_items)

        assert exc_info.value.error_code == ErrorCode.STORAGE_WRITE_ERROR
        assert path.read_text(encoding="utf-8") == before
        assert [p.name for p in tmp_path.iterdir()] == ["items.json"]


class TestValidatorCache:
    """Test cases for ValidatorCache."""

    def test_missing_file_gives_empty_cache(self, tmp_path):
        cache = ValidatorCache.load(tmp_path / "validators.json")
        assert len(cache) == 0

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "validators.json"
        path.write_text("not json at all", encoding="utf-8")

        cache = ValidatorCache.load(path)

        assert len(cache) == 0
        assert cache.get("https://a.example/feed.xml") is None

    def test_update_and_get(self):
        cache = ValidatorCache()

        cache.update("https://a.example/feed.xml", etag='"v1"', last_modified="Thu, 05 Sep 2024 12:00:00 GMT")

        entry = cache.get("https://a.example/feed.xml")
        assert entry == ValidatorEntry(etag='"v1"', last_modified="Thu, 05 Sep 2024 12:00:00 GMT")
        assert len(cache) == 1

    def test_update_replaces_whole_entry(self):
        cache = ValidatorCache()
        cache.update("https://a.example/feed.xml", etag='"v1"', last_modified="Thu, 05 Sep 2024 12:00:00 GMT")

        cache.update("https://a.example/feed.xml", etag='"v2"')

        assert cache.get("https://a.example/feed.xml") == ValidatorEntry(etag='"v2"')

    def test_get_returns_copy(self):
        cache = ValidatorCache()
        cache.update("https://a.example/feed.xml", etag='"v1"')

        entry = cache.get("https://a.example/feed.xml")
        entry.etag = '"tampered"'

        assert cache.get("https://a.example/feed.xml").etag == '"v1"'

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "validators.json"
        cache = ValidatorCache(path)
        cache.update("https://b.example/feed.xml", etag='"b"')
        cache.update("https://a.example/feed.xml", last_modified="Thu, 05 Sep 2024 12:00:00 GMT")

        cache.save()
        raw = json.loads(path.read_text(encoding="utf-8"))
        reloaded = ValidatorCache.load(path)

        assert list(raw) == ["https://a.example/feed.xml", "https://b.example/feed.xml"]
        assert raw["https://b.example/feed.xml"] == {"etag": '"b"'}
        assert len(reloaded) == 2
        assert reloaded.get("https://b.example/feed.xml") == ValidatorEntry(etag='"b"')
        assert reloaded.get("https://a.example/feed.xml") == ValidatorEntry(
            last_modified="Thu, 05 Sep 2024 12:00:00 GMT"
        )

    def test_save_without_path_raises(self):
        with pytest.raises(StorageError):
            ValidatorCache().save()

    def test_conditional_headers(self):
        assert ValidatorEntry().conditional_headers() == {}
        assert ValidatorEntry(etag='"x"').conditional_headers() == {"If-None-Match": '"x"'}
