"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from bookworm.core.config import Settings, get_settings
from bookworm.db.documents import DocumentStore
from bookworm.db.sqlite import SQLiteDatabase
from bookworm.enrichment.pipeline import EnrichmentPipeline
from bookworm.ingest.service import IngestService
from bookworm.ml.client import MLServiceClient

_DB: SQLiteDatabase | None = None
_STORE: DocumentStore | None = None
_ML_CLIENT: MLServiceClient | None = None
_PIPELINE: EnrichmentPipeline | None = None
_INGEST_SERVICE: IngestService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        db = SQLiteDatabase(get_app_settings().db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_document_store() -> DocumentStore:
    global _STORE
    if _STORE is None:
        _STORE = DocumentStore(get_database())
    return _STORE


def get_ml_client() -> MLServiceClient:
    global _ML_CLIENT
    if _ML_CLIENT is None:
        settings = get_app_settings()
        _ML_CLIENT = MLServiceClient(settings.ml_service_url, timeout=settings.ml_timeout)
    return _ML_CLIENT


def get_enrichment_pipeline() -> EnrichmentPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = EnrichmentPipeline(
            store=get_document_store(),
            ml_client=get_ml_client(),
            settings=get_app_settings(),
        )
    return _PIPELINE


def get_ingest_service() -> IngestService:
    global _INGEST_SERVICE
    if _INGEST_SERVICE is None:
        _INGEST_SERVICE = IngestService(
            store=get_document_store(),
            pipeline=get_enrichment_pipeline(),
            settings=get_app_settings(),
        )
    return _INGEST_SERVICE


async def shutdown() -> None:
    """Let in-flight enrichment finish, then release clients and the database."""
    global _DB, _STORE, _ML_CLIENT, _PIPELINE, _INGEST_SERVICE
    if _PIPELINE is not None:
        await _PIPELINE.drain()
    if _ML_CLIENT is not None:
        await _ML_CLIENT.close()
    if _DB is not None:
        _DB.close()
    _DB = _STORE = _ML_CLIENT = _PIPELINE = _INGEST_SERVICE = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_document_store",
    "get_ml_client",
    "get_enrichment_pipeline",
    "get_ingest_service",
    "shutdown",
]
