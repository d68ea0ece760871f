"""Wire contracts for the ML service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class EmbedRequest(BaseModel):
    text: str


class EmbedResponse(BaseModel):
    embedding: list[float]


class IndexMetadata(BaseModel):
    title: str
    author: str
    genre: str | None = None


class IndexAddRequest(BaseModel):
    book_id: str
    text: str
    metadata: IndexMetadata | None = None


class IndexAddResponse(BaseModel):
    success: bool
    message: str = ""


class SearchRequest(BaseModel):
    query_text: str
    k: int = Field(default=5, ge=1)
    exclude_id: str | None = None


class SearchResult(BaseModel):
    book_id: str
    score: float
    metadata: dict[str, Any] | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult]


class IndexStats(BaseModel):
    total_vectors: int
    dimension: int
    index_type: str


class HealthResponse(BaseModel):
    status: str
    version: str | None = None


__all__ = [
    "EmbedRequest",
    "EmbedResponse",
    "IndexMetadata",
    "IndexAddRequest",
    "IndexAddResponse",
    "SearchRequest",
    "SearchResult",
    "SearchResponse",
    "IndexStats",
    "HealthResponse",
]
