"""Book ingestion: extract, analyze, persist, then hand off to enrichment."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Iterable

from bookworm.analytics.frequency import FrequencyCounter
from bookworm.core.config import Settings
from bookworm.core.errors import ValidationError
from bookworm.core.logging import get_logger, log_context
from bookworm.core.metrics import ANALYSIS_DURATION
from bookworm.db.documents import DocumentStore
from bookworm.enrichment.pipeline import EnrichmentPipeline
from bookworm.ingest.loaders import LoaderRegistry
from bookworm.ingest.types import AnalysisResult, IngestResult
from bookworm.utils.hashing import sha256_text

logger = get_logger(__name__)


def analyze_pages(pages: Iterable[str], top_n: int, source: str = "text") -> AnalysisResult:
    """Count words page by page with a counter private to this run."""
    started = time.perf_counter()
    counter = FrequencyCounter()
    page_count = 0
    for page in pages:
        counter.record(page)
        page_count += 1
    elapsed = time.perf_counter() - started
    ANALYSIS_DURATION.labels(source=source).observe(elapsed)
    return AnalysisResult(
        top_words=counter.top(top_n),
        total_tokens=counter.total,
        vocabulary_size=counter.vocabulary_size,
        pages=page_count,
        duration_ms=elapsed * 1000,
    )


class IngestService:
    """Create book records and trigger their enrichment."""

    def __init__(
        self,
        store: DocumentStore,
        pipeline: EnrichmentPipeline,
        settings: Settings,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        self.store = store
        self.pipeline = pipeline
        self.settings = settings
        self.loader_registry = loader_registry or LoaderRegistry()

    async def ingest_text(
        self,
        title: str,
        author: str,
        text: str,
        genre: str | None = None,
        description: str | None = None,
        top_n: int | None = None,
        pages: list[str] | None = None,
        source_path: str | None = None,
        source: str = "text",
    ) -> IngestResult:
        """Persist a book unless identical text was already ingested."""
        if not text.strip():
            raise ValidationError("Book text is empty")
        digest = sha256_text(text)
        existing = self.store.find_by_sha256(digest)
        if existing is not None:
            logger.info(
                "Book %r by %s already ingested as %s", title, author, existing.id,
                extra=log_context(document_id=existing.id),
            )
            return IngestResult(document_id=existing.id, status="skipped", detail="duplicate text")

        top_n = self.settings.top_words_default if top_n is None else top_n
        analysis = analyze_pages(pages if pages is not None else [text], top_n, source=source)
        document = self.store.create(
            title=title,
            author=author,
            text=text,
            sha256=digest,
            genre=genre,
            description=description,
            source_path=source_path,
            top_words=analysis.top_words,
        )
        if self.settings.auto_enqueue:
            self.pipeline.submit(document.id)
        return IngestResult(document_id=document.id, status="created", analysis=analysis)

    async def ingest_path(
        self,
        path: Path,
        title: str | None = None,
        author: str | None = None,
        genre: str | None = None,
        description: str | None = None,
        top_n: int | None = None,
    ) -> IngestResult:
        normalized = path.expanduser().resolve()
        if not normalized.is_file():
            raise ValidationError(f"No such file: {normalized}")
        loaded = self.loader_registry.load(normalized)
        logger.info("Loaded %s (%d pages)", normalized, len(loaded.pages))
        return await self.ingest_text(
            title=title or loaded.title or normalized.stem,
            author=author or loaded.author or "Unknown",
            text=loaded.text,
            genre=genre,
            description=description,
            top_n=top_n,
            pages=loaded.pages,
            source_path=str(normalized),
            source=normalized.suffix.lstrip(".") or "file",
        )


__all__ = ["IngestService", "analyze_pages"]
