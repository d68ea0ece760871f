"""Word-frequency and similarity routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bookworm.api.dependencies import get_document_store, get_enrichment_pipeline, get_ml_client
from bookworm.db.documents import DocumentStore
from bookworm.enrichment.pipeline import EnrichmentPipeline
from bookworm.ml.client import MLServiceClient
from bookworm.models.dto import (
    AnalyzeRequest,
    AnalyzeResponse,
    Recommendation,
    SearchRequest,
    SearchResponse,
    WordCountModel,
)

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse, summary="Top words of a text")
async def analyze_text(
    request: AnalyzeRequest,
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> AnalyzeResponse:
    top_words = pipeline.compute_top_words(request.text, request.top_n)
    return AnalyzeResponse(
        top_words=[WordCountModel(word=word, count=count) for word, count in top_words],
        total_words=sum(item.count for item in top_words),
    )


@router.post("/search", response_model=SearchResponse, summary="Books similar to a query text")
async def search_similar(
    request: SearchRequest,
    client: MLServiceClient = Depends(get_ml_client),
    store: DocumentStore = Depends(get_document_store),
) -> SearchResponse:
    hits = await client.search(request.query, k=request.k, exclude_id=request.exclude_id)
    recommendations: list[Recommendation] = []
    for hit in hits:
        if request.min_score is not None and hit.score < request.min_score:
            continue
        document = store.find_by_id(hit.book_id)
        if document is None:
            continue
        recommendations.append(
            Recommendation(
                id=document.id,
                title=document.title,
                author=document.author,
                genre=document.genre,
                similarity=hit.score,
            )
        )
    recommendations.sort(key=lambda item: item.similarity, reverse=True)
    return SearchResponse(results=recommendations)


__all__ = ["router"]
