"""
PlanetFeed Data Models
=====================

Pydantic data models for the persisted item store, the feed list, and the
HTTP validator cache. These models define the snapshot JSON layout and
provide validation, serialization, and type hints.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from ..utils.validators import normalize_item_url


ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class ProcessingStatus(str, Enum):
    """Whether the downstream relevance/cleanup stage has handled an item."""
    UNPROCESSED = "unprocessed"
    PROCESSED = "processed"


class Enrichment(BaseModel):
    """Metadata attached by the downstream enrichment stage.

    The ingestion core only carries this across merges. Unknown keys set by
    downstream tooling are kept as extra fields.
    """
    model_config = ConfigDict(extra="allow")

    status: ProcessingStatus = Field(default=ProcessingStatus.UNPROCESSED)
    score: Optional[int] = Field(default=None, description="Timeliness score set downstream")
    relevant: Optional[bool] = Field(default=None, description="Relevance verdict set downstream")

    @property
    def is_processed(self) -> bool:
        return self.status == ProcessingStatus.PROCESSED


class FeedDescriptor(BaseModel):
    """A configured syndication endpoint."""
    name: str = Field(..., min_length=1, description="Display name of the feed")
    url: str = Field(..., min_length=1, description="Syndication document URL")

    def __str__(self) -> str:
        return f"Feed({self.name}:{self.url})"


class Item(BaseModel):
    """A single aggregated feed item.

    Keys this model does not declare (added by downstream stages) are kept
    and written back unchanged.
    """
    model_config = ConfigDict(extra="allow")

    url: str = Field(..., min_length=1, description="Item link")
    title: str = Field(..., min_length=1, description="Plain-text title")
    excerpt: str = Field(default="", description="Bounded plain-text excerpt")
    published: datetime = Field(..., description="Publication time, UTC")
    source: str = Field(default="", description="Display name of the originating feed")
    source_url: str = Field(default="", description="Best-effort canonical site URL")
    feed_url: str = Field(default="", description="Syndication document URL")
    enrichment: Enrichment = Field(default_factory=Enrichment)

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_enrichment(cls, data: Any) -> Any:
        """Move flat `ai_filtered`/`score`/`relevant` keys into `enrichment`."""
        if not isinstance(data, dict):
            return data
        legacy_keys = {"ai_filtered", "score", "relevant"}
        if not legacy_keys & data.keys():
            return data

        data = dict(data)
        enrichment = dict(data.get("enrichment") or {})
        if data.pop("ai_filtered", False):
            enrichment.setdefault("status", ProcessingStatus.PROCESSED)
        for key in ("score", "relevant"):
            if key in data:
                enrichment.setdefault(key, data.pop(key))
        data["enrichment"] = enrichment
        return data

    @field_validator("published")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Store timestamps as second-precision UTC."""
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc).replace(microsecond=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Item title cannot be empty")
        return v

    @field_serializer("published")
    def serialize_published(self, v: datetime) -> str:
        return v.strftime(ISO_FORMAT)

    @property
    def identity(self) -> str:
        """Normalized URL used as the store key."""
        return normalize_item_url(self.url)

    def __str__(self) -> str:
        return f"Item({self.title[:50]})"


class ValidatorEntry(BaseModel):
    """HTTP cache validators remembered for one feed URL."""
    etag: Optional[str] = Field(default=None)
    last_modified: Optional[str] = Field(default=None)

    def conditional_headers(self) -> Dict[str, str]:
        """Request headers asking the server whether the document changed."""
        headers = {}
        if self.etag:
            headers["If-None-Match"] = self.etag
        if self.last_modified:
            headers["If-Modified-Since"] = self.last_modified
        return headers
