"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bookworm.analytics.topk import WordCount


@dataclass(slots=True)
class LoadedDocument:
    """Text extracted from a file, split into pages."""

    path: Path
    pages: list[str]
    metadata: dict[str, Any]
    mime: str
    title: str | None
    author: str | None
    size_bytes: int

    @property
    def text(self) -> str:
        return " ".join(page for page in self.pages if page)


@dataclass(slots=True)
class AnalysisResult:
    """Top words of one analysis run."""

    top_words: list[WordCount]
    total_tokens: int
    vocabulary_size: int
    pages: int
    duration_ms: float = 0.0

    @property
    def total_words(self) -> int:
        return sum(item.count for item in self.top_words)

    def to_dict(self) -> dict[str, Any]:
        return {
            "top_words": [{"word": word, "count": count} for word, count in self.top_words],
            "total_words": self.total_words,
            "total_tokens": self.total_tokens,
            "vocabulary_size": self.vocabulary_size,
            "pages": self.pages,
        }


@dataclass(slots=True)
class IngestResult:
    """Outcome for a single ingested book."""

    document_id: str
    status: str
    analysis: AnalysisResult | None = None
    detail: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


__all__ = ["LoadedDocument", "AnalysisResult", "IngestResult"]
