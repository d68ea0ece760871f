"""Administrative routes for Bookworm."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bookworm.api.dependencies import get_ml_client
from bookworm.core.metrics import metrics_response
from bookworm.ml.client import MLServiceClient
from bookworm.ml.schemas import HealthResponse, IndexStats

router = APIRouter()


@router.get("/health/ml", response_model=HealthResponse, summary="ML service liveness")
async def ml_health(client: MLServiceClient = Depends(get_ml_client)) -> HealthResponse:
    return await client.health()


@router.get("/index/stats", response_model=IndexStats, summary="ML index statistics")
async def index_stats(client: MLServiceClient = Depends(get_ml_client)) -> IndexStats:
    return await client.index_stats()


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
