"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from bookworm.analytics.topk import WordCount


class EnrichmentStatus(str, Enum):
    UNPROCESSED = "unprocessed"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


def derive_status(processed: bool, last_error: str | None) -> EnrichmentStatus:
    """Status as computed from the two persisted flags."""
    if processed:
        return EnrichmentStatus.PROCESSED
    if last_error is not None:
        return EnrichmentStatus.FAILED
    return EnrichmentStatus.UNPROCESSED


@dataclass(slots=True)
class Document:
    id: str
    title: str
    author: str
    text: str
    sha256: str
    created_at: datetime
    updated_at: datetime
    genre: str | None = None
    description: str | None = None
    source_path: str | None = None
    embedding: list[float] | None = None
    processed: bool = False
    processed_at: datetime | None = None
    last_error: str | None = None
    top_words: list[WordCount] = field(default_factory=list)
    total_words: int = 0

    @property
    def status(self) -> EnrichmentStatus:
        return derive_status(self.processed, self.last_error)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def index_metadata(self) -> dict[str, str | None]:
        return {"title": self.title, "author": self.author, "genre": self.genre}


@dataclass(slots=True)
class EnrichmentStats:
    total: int = 0
    processed: int = 0
    failed: int = 0
    pending: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "processed": self.processed,
            "failed": self.failed,
            "pending": self.pending,
        }


__all__ = ["Document", "EnrichmentStats", "EnrichmentStatus", "derive_status"]
