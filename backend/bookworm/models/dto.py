"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from bookworm.models.entities import Document, EnrichmentStatus


class WordCountModel(BaseModel):
    word: str
    count: int


class BookCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    text: str = Field(min_length=1)
    genre: str | None = None
    description: str | None = None
    top_n: int | None = Field(default=None, ge=0, le=500)


class BookIngestRequest(BaseModel):
    path: str
    title: str | None = None
    author: str | None = None
    genre: str | None = None
    description: str | None = None
    top_n: int | None = Field(default=None, ge=0, le=500)


class BookResponse(BaseModel):
    id: str
    title: str
    author: str
    genre: str | None
    description: str | None
    status: EnrichmentStatus
    processed: bool
    has_embedding: bool
    processed_at: datetime | None
    last_error: str | None
    top_words: list[WordCountModel]
    total_words: int
    created_at: datetime
    updated_at: datetime
    embedding: list[float] | None = None

    @classmethod
    def from_document(
        cls,
        document: Document,
        status: EnrichmentStatus | None = None,
        include_embedding: bool = False,
    ) -> "BookResponse":
        return cls(
            id=document.id,
            title=document.title,
            author=document.author,
            genre=document.genre,
            description=document.description,
            status=status or document.status,
            processed=document.processed,
            has_embedding=document.has_embedding,
            processed_at=document.processed_at,
            last_error=document.last_error,
            top_words=[WordCountModel(word=word, count=count) for word, count in document.top_words],
            total_words=document.total_words,
            created_at=document.created_at,
            updated_at=document.updated_at,
            embedding=document.embedding if include_embedding else None,
        )


class IngestResponse(BaseModel):
    document_id: str
    status: Literal["created", "skipped"]
    detail: str | None = None
    analysis: dict[str, Any] | None = None


class ReprocessResponse(BaseModel):
    processed: int


class StatsResponse(BaseModel):
    total: int
    processed: int
    failed: int
    pending: int
    in_flight: int


class AnalyzeRequest(BaseModel):
    text: str
    top_n: int = Field(default=20, ge=0, le=500)


class AnalyzeResponse(BaseModel):
    top_words: list[WordCountModel]
    total_words: int


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    k: int = Field(default=5, ge=1, le=50)
    exclude_id: str | None = None
    min_score: float | None = Field(default=None, ge=-1.0, le=1.0)


class Recommendation(BaseModel):
    id: str
    title: str
    author: str
    genre: str | None
    similarity: float


class SearchResponse(BaseModel):
    results: list[Recommendation]


class DeleteResponse(BaseModel):
    status: Literal["ok"]
    deleted: int


__all__ = [
    "WordCountModel",
    "BookCreateRequest",
    "BookIngestRequest",
    "BookResponse",
    "IngestResponse",
    "ReprocessResponse",
    "StatsResponse",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "SearchRequest",
    "Recommendation",
    "SearchResponse",
    "DeleteResponse",
]
