"""Asynchronous embedding and indexing of stored books."""

from __future__ import annotations

import asyncio
import time
from functools import partial
from typing import Awaitable, Callable, Protocol, TypeVar

from bookworm.analytics.frequency import compute_top_words
from bookworm.analytics.topk import WordCount
from bookworm.core.config import Settings
from bookworm.core.errors import BookwormError, NotFoundError, ServiceError
from bookworm.core.logging import get_logger, log_context
from bookworm.core.metrics import (
    ENRICHMENT_DURATION,
    ENRICHMENT_IN_FLIGHT,
    ENRICHMENT_RUNS,
    ML_RETRIES,
)
from bookworm.db.documents import DocumentFilter, DocumentStore
from bookworm.enrichment.singleflight import SingleFlight
from bookworm.models.entities import Document, EnrichmentStatus
from bookworm.utils.retry import RetryPolicy, Sleeper, retry_with_backoff
from bookworm.utils.time import utc_now

logger = get_logger(__name__)

T = TypeVar("T")


class EmbeddingService(Protocol):
    async def embed(self, text: str) -> list[float]: ...

    async def index_add(self, document_id: str, text: str, metadata: dict[str, str | None]) -> bool: ...


class EnrichmentPipeline:
    """Drive books through embed -> persist -> index -> persist.

    Runs for different books proceed concurrently. Concurrent triggers for the
    same book join the run already in flight.
    """

    def __init__(
        self,
        store: DocumentStore,
        ml_client: EmbeddingService,
        settings: Settings | None = None,
        embed_policy: RetryPolicy | None = None,
        index_policy: RetryPolicy | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.store = store
        self.ml_client = ml_client
        self.settings = settings or Settings()
        self.embed_policy = embed_policy or self.settings.retry_policy()
        self.index_policy = index_policy or self.settings.retry_policy()
        self._sleep = sleep
        self._flights: SingleFlight[str, Document] = SingleFlight()
        self._background: set[asyncio.Task[Document]] = set()
        limit = self.settings.max_concurrent_enrichments
        self._admission = asyncio.Semaphore(limit) if limit > 0 else None

    # Public API -------------------------------------------------------

    async def enqueue(self, document_id: str) -> Document:
        """Enrich one book, joining an in-flight run for the same id.

        Cancelling the awaiting caller does not cancel the run.
        Raises ``NotFoundError`` or ``ServiceError``.
        """
        task = self._flights.run(document_id, partial(self._run, document_id))
        return await asyncio.shield(task)

    def submit(self, document_id: str) -> asyncio.Task[Document]:
        """Fire-and-forget trigger; the returned task may optionally be awaited."""
        task = asyncio.ensure_future(self.enqueue(document_id))
        self._background.add(task)
        task.add_done_callback(partial(self._on_background_done, document_id))
        return task

    async def reprocess_failed(self, limit: int | None = None) -> int:
        """Re-enqueue up to ``limit`` failed books; returns how many were attempted."""
        limit = self.settings.reprocess_limit if limit is None else limit
        documents = self.store.find_many(DocumentFilter.failed(), limit)
        logger.info("Found %d failed books to reprocess", len(documents))
        attempted = 0
        for document in documents:
            attempted += 1
            try:
                await self.enqueue(document.id)
            except BookwormError as exc:
                logger.warning(
                    "Reprocessing failed for %s: %s",
                    document.id,
                    exc,
                    extra=log_context(document_id=document.id),
                )
            except Exception:
                logger.exception("Unexpected error reprocessing %s", document.id, extra=log_context(document_id=document.id))
        return attempted

    def compute_top_words(self, text: str, k: int | None = None) -> list[WordCount]:
        return compute_top_words(text, self.settings.top_words_default if k is None else k)

    def status_of(self, document: Document) -> EnrichmentStatus:
        """Persisted status, or ``processing`` while a run is in flight here."""
        if document.id in self._flights:
            return EnrichmentStatus.PROCESSING
        return document.status

    @property
    def in_flight(self) -> list[str]:
        return self._flights.keys()

    async def drain(self) -> None:
        """Wait for every tracked run to finish."""
        while True:
            pending = [*self._background, *self._flights.tasks()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # Internal helpers -------------------------------------------------

    async def _run(self, document_id: str) -> Document:
        if self._admission is None:
            return await self._enrich(document_id)
        async with self._admission:
            return await self._enrich(document_id)

    async def _enrich(self, document_id: str) -> Document:
        document = self.store.find_by_id(document_id)
        if document is None:
            ENRICHMENT_RUNS.labels(outcome="not_found").inc()
            raise NotFoundError(document_id)

        log_extra = log_context(document_id=document_id)
        logger.info("Processing %s for ML enrichment", document_id, extra=log_extra)
        started = time.perf_counter()
        ENRICHMENT_IN_FLIGHT.inc()
        try:
            embedding = await self._call_with_retry(
                "embed",
                document_id,
                lambda: self.ml_client.embed(document.text),
                self.embed_policy,
            )
            self.store.update_fields(document_id, embedding=embedding, last_error=None)
            logger.info("Embedding saved for %s (%d dims)", document_id, len(embedding), extra=log_extra)

            await self._call_with_retry(
                "index_add",
                document_id,
                lambda: self._index(document),
                self.index_policy,
            )
            self.store.update_fields(document_id, processed=True, processed_at=utc_now(), last_error=None)
        except ServiceError:
            ENRICHMENT_RUNS.labels(outcome="failed").inc()
            raise
        finally:
            ENRICHMENT_IN_FLIGHT.dec()
            ENRICHMENT_DURATION.observe(time.perf_counter() - started)

        ENRICHMENT_RUNS.labels(outcome="processed").inc()
        logger.info("Book %s processed successfully", document_id, extra=log_extra)
        refreshed = self.store.find_by_id(document_id)
        if refreshed is None:
            raise NotFoundError(document_id)
        return refreshed

    async def _call_with_retry(
        self,
        operation: str,
        document_id: str,
        call: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
    ) -> T:
        def on_retry(attempt: int, error: BaseException) -> None:
            ML_RETRIES.labels(operation=operation).inc()

        try:
            return await retry_with_backoff(call, policy, on_retry=on_retry, sleep=self._sleep)
        except Exception as exc:
            message = (exc.message if isinstance(exc, ServiceError) else str(exc)) or type(exc).__name__
            status_code = exc.status_code if isinstance(exc, ServiceError) else None
            logger.error(
                "%s failed for %s after retries: %s",
                operation,
                document_id,
                message,
                extra=log_context(document_id=document_id),
            )
            self.store.update_fields(document_id, processed=False, last_error=message)
            raise ServiceError(message, status_code=status_code) from exc

    async def _index(self, document: Document) -> None:
        indexed = await self.ml_client.index_add(document.id, document.text, document.index_metadata())
        if not indexed:
            raise ServiceError(f"Index rejected book {document.id}")

    def _on_background_done(self, document_id: str, task: asyncio.Task[Document]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                "Background enrichment failed for %s: %s",
                document_id,
                error,
                extra=log_context(document_id=document_id),
            )


__all__ = ["EnrichmentPipeline", "EmbeddingService"]
