"""
Validator Cache
===============

Per-feed HTTP validators (ETag / Last-Modified) remembered between runs so
unchanged feeds can be skipped with a conditional request.
"""

import json
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .models import ValidatorEntry
from .snapshot import write_json_atomic
from ..utils.exceptions import StorageError, ErrorCode
from ..utils.logging import get_logger_for_component


class ValidatorCache:
    """Thread-safe mapping of feed URL to cached validators."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        entries: Optional[Dict[str, ValidatorEntry]] = None,
    ):
        """Initialize validator cache.

        Args:
            path: Location of the JSON snapshot (None keeps the cache in memory)
            entries: Initial entries
        """
        self.path = Path(path) if path is not None else None
        self._entries: Dict[str, ValidatorEntry] = dict(entries or {})
        self._lock = threading.Lock()
        self.logger = get_logger_for_component("validator_cache")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ValidatorCache":
        """Load the cache snapshot.

        A missing or unreadable snapshot yields an empty cache; the only cost
        is one unconditional fetch per feed.
        """
        cache = cls(path)
        if not cache.path.exists():
            return cache

        try:
            raw = json.loads(cache.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            cache.logger.warning(f"Ignoring unreadable validator cache {cache.path}: {e}")
            return cache

        if not isinstance(raw, dict):
            cache.logger.warning(f"Ignoring malformed validator cache {cache.path}")
            return cache

        for feed_url, record in raw.items():
            try:
                cache._entries[feed_url] = ValidatorEntry.model_validate(record)
            except PydanticValidationError:
                cache.logger.warning(f"Dropping invalid validator entry for {feed_url}")

        cache.logger.debug(f"Loaded {len(cache._entries)} validator entries")
        return cache

    def get(self, feed_url: str) -> Optional[ValidatorEntry]:
        """Return a copy of the validators for a feed, if any."""
        with self._lock:
            entry = self._entries.get(feed_url)
            return entry.model_copy() if entry else None

    def update(
        self,
        feed_url: str,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> ValidatorEntry:
        """Replace the validators for a feed after a full (non-304) fetch."""
        entry = ValidatorEntry(etag=etag or None, last_modified=last_modified or None)
        with self._lock:
            self._entries[feed_url] = entry
        return entry

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        """Persist the cache, replacing the previous snapshot.

        Raises:
            StorageError: If the snapshot cannot be written
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise StorageError("Validator cache has no snapshot path")

        with self._lock:
            payload = {
                url: self._entries[url].model_dump(exclude_none=True)
                for url in sorted(self._entries)
            }

        try:
            write_json_atomic(target, payload)
        except OSError as e:
            raise StorageError(
                f"Cannot write validator cache {target}: {e}",
                path=str(target),
                error_code=ErrorCode.STORAGE_WRITE_ERROR,
            ) from e

        self.logger.debug(f"Wrote {len(payload)} validator entries to {target}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
