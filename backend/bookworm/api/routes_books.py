"""Book ingestion and enrichment routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Query, status

from bookworm.api.dependencies import (
    get_document_store,
    get_enrichment_pipeline,
    get_ingest_service,
)
from bookworm.core.errors import NotFoundError
from bookworm.db.documents import DocumentStore
from bookworm.enrichment.pipeline import EnrichmentPipeline
from bookworm.ingest.service import IngestService
from bookworm.ingest.types import IngestResult
from bookworm.models.dto import (
    BookCreateRequest,
    BookIngestRequest,
    BookResponse,
    DeleteResponse,
    IngestResponse,
    ReprocessResponse,
    StatsResponse,
)

router = APIRouter()


@router.post("", response_model=IngestResponse, status_code=status.HTTP_201_CREATED, summary="Create a book from text")
async def create_book(
    request: BookCreateRequest,
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    result = await service.ingest_text(
        title=request.title,
        author=request.author,
        text=request.text,
        genre=request.genre,
        description=request.description,
        top_n=request.top_n,
    )
    return _to_ingest_response(result)


@router.post("/ingest", response_model=IngestResponse, status_code=status.HTTP_201_CREATED, summary="Ingest a file")
async def ingest_book(
    request: BookIngestRequest,
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    result = await service.ingest_path(
        Path(request.path),
        title=request.title,
        author=request.author,
        genre=request.genre,
        description=request.description,
        top_n=request.top_n,
    )
    return _to_ingest_response(result)


@router.get("/stats", response_model=StatsResponse, summary="Enrichment status counts")
async def enrichment_stats(
    store: DocumentStore = Depends(get_document_store),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> StatsResponse:
    stats = store.count_by_status()
    return StatsResponse(**stats.to_dict(), in_flight=len(pipeline.in_flight))


@router.post("/reprocess", response_model=ReprocessResponse, summary="Retry failed enrichments")
async def reprocess_failed(
    limit: int | None = Query(default=None, ge=1, le=1000),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> ReprocessResponse:
    processed = await pipeline.reprocess_failed(limit)
    return ReprocessResponse(processed=processed)


@router.get("/{book_id}", response_model=BookResponse, summary="Fetch a book")
async def get_book(
    book_id: str,
    include_embedding: bool = Query(default=False),
    store: DocumentStore = Depends(get_document_store),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> BookResponse:
    document = store.find_by_id(book_id)
    if document is None:
        raise NotFoundError(book_id)
    return BookResponse.from_document(document, pipeline.status_of(document), include_embedding)


@router.post("/{book_id}/process", response_model=BookResponse, summary="Run enrichment and wait for it")
async def process_book(
    book_id: str,
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> BookResponse:
    document = await pipeline.enqueue(book_id)
    return BookResponse.from_document(document)


@router.delete("/{book_id}", response_model=DeleteResponse, summary="Delete a book")
async def delete_book(book_id: str, store: DocumentStore = Depends(get_document_store)) -> DeleteResponse:
    store.delete(book_id)
    return DeleteResponse(status="ok", deleted=1)


def _to_ingest_response(result: IngestResult) -> IngestResponse:
    return IngestResponse(
        document_id=result.document_id,
        status=result.status,
        detail=result.detail,
        analysis=result.analysis.to_dict() if result.analysis else None,
    )


__all__ = ["router"]
