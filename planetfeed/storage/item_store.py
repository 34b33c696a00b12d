"""
Item Store
==========

Flat JSON snapshot of the aggregated item set. The store is rewritten in
full once per run, after every merge decision has been computed in memory.
"""

import json
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError as PydanticValidationError

from .models import Item
from .snapshot import write_json_atomic
from ..utils.exceptions import StorageError, ErrorCode
from ..utils.logging import get_logger_for_component


class ItemStore:
    """Reads and writes the persisted item snapshot."""

    def __init__(self, path: Union[str, Path]):
        """Initialize item store.

        Args:
            path: Location of the JSON snapshot
        """
        self.path = Path(path)
        self.logger = get_logger_for_component("item_store")

    def load(self) -> List[Item]:
        """Load all persisted items.

        Returns:
            Items in snapshot order, or an empty list when no snapshot exists

        Raises:
            StorageError: If the snapshot exists but cannot be read or decoded.
                Continuing would overwrite data that was never loaded.
        """
        if not self.path.exists():
            self.logger.info(f"No item store at {self.path}, starting empty")
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(
                f"Cannot read item store {self.path}: {e}",
                path=str(self.path),
                error_code=ErrorCode.STORAGE_READ_ERROR,
            ) from e
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Item store {self.path} is not valid JSON: {e}",
                path=str(self.path),
                error_code=ErrorCode.STORAGE_CORRUPT,
            ) from e

        if not isinstance(raw, list):
            raise StorageError(
                f"Item store {self.path} must contain a JSON array",
                path=str(self.path),
                error_code=ErrorCode.STORAGE_CORRUPT,
            )

        items = []
        for index, record in enumerate(raw):
            try:
                items.append(Item.model_validate(record))
            except PydanticValidationError as e:
                # A single bad record is dropped rather than failing the run
                self.logger.warning(
                    f"Skipping invalid record #{index} in {self.path}: {e.error_count()} errors"
                )

        self.logger.debug(f"Loaded {len(items)} items from {self.path}")
        return items

    def save(self, items: List[Item]) -> None:
        """Persist items, replacing the previous snapshot.

        Raises:
            StorageError: If the snapshot cannot be written
        """
        payload = [item.model_dump(mode="json") for item in items]
        try:
            write_json_atomic(self.path, payload)
        except OSError as e:
            raise StorageError(
                f"Cannot write item store {self.path}: {e}",
                path=str(self.path),
                error_code=ErrorCode.STORAGE_WRITE_ERROR,
            ) from e

        self.logger.info(f"Wrote {len(items)} items to {self.path}")
