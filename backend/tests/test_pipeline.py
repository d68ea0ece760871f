"""Enrichment pipeline behaviour against a scripted ML service."""

import asyncio
import logging

import pytest

from bookworm.core.errors import NotFoundError, ServiceError
from bookworm.db.documents import DocumentFilter
from bookworm.models.entities import EnrichmentStatus
from conftest import ALWAYS


@pytest.mark.asyncio
async def test_enqueue_success_persists_embedding_and_flags(pipeline, store, fake_ml, make_book) -> None:
    book = make_book(text="Alpha Alpha Beta", title="Greeting", genre="essay")

    result = await pipeline.enqueue(book.id)

    assert result.embedding == [0.1, 0.2]
    assert result.processed is True
    assert result.processed_at is not None
    assert result.last_error is None
    assert result.status is EnrichmentStatus.PROCESSED
    assert fake_ml.embed_calls == ["Alpha Alpha Beta"]
    assert fake_ml.index_calls == [(book.id, {"title": "Greeting", "author": "Ann Author", "genre": "essay"})]

    stored = store.find_by_id(book.id)
    assert stored is not None
    assert stored.embedding == [0.1, 0.2]
    assert stored.processed is True


@pytest.mark.asyncio
async def test_transient_embed_failure_is_retried(pipeline, store, fake_ml, make_book, sleeps) -> None:
    fake_ml.embed_failures = 2
    book = make_book()

    result = await pipeline.enqueue(book.id)

    assert result.processed is True
    assert len(fake_ml.embed_calls) == 3
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_index_failure_keeps_embedding_and_records_error(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.index_failures = ALWAYS
    book = make_book()

    with pytest.raises(ServiceError) as excinfo:
        await pipeline.enqueue(book.id)

    assert excinfo.value.message == "index failure 3"
    assert len(fake_ml.index_calls) == 3
    stored = store.find_by_id(book.id)
    assert stored is not None
    assert stored.embedding == [0.1, 0.2]
    assert stored.processed is False
    assert stored.last_error == "index failure 3"
    assert stored.status is EnrichmentStatus.FAILED


@pytest.mark.asyncio
async def test_embed_failure_skips_indexing(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.embed_failures = ALWAYS
    book = make_book()

    with pytest.raises(ServiceError):
        await pipeline.enqueue(book.id)

    assert fake_ml.index_calls == []
    stored = store.find_by_id(book.id)
    assert stored is not None
    assert stored.embedding is None
    assert stored.processed is False
    assert stored.last_error == "embed failure 3"


@pytest.mark.asyncio
async def test_success_after_failure_clears_error(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.index_failures = 3
    book = make_book()
    with pytest.raises(ServiceError):
        await pipeline.enqueue(book.id)

    result = await pipeline.enqueue(book.id)

    assert result.processed is True
    assert result.last_error is None


@pytest.mark.asyncio
async def test_missing_document_raises_not_found(pipeline, fake_ml) -> None:
    with pytest.raises(NotFoundError):
        await pipeline.enqueue("book_missing")
    assert fake_ml.embed_calls == []


@pytest.mark.asyncio
async def test_concurrent_enqueue_joins_single_run(pipeline, fake_ml, make_book) -> None:
    fake_ml.embed_gate = asyncio.Event()
    book = make_book()

    first = asyncio.create_task(pipeline.enqueue(book.id))
    second = asyncio.create_task(pipeline.enqueue(book.id))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert pipeline.in_flight == [book.id]
    assert pipeline.status_of(book) is EnrichmentStatus.PROCESSING

    fake_ml.embed_gate.set()
    results = await asyncio.gather(first, second)

    assert len(fake_ml.embed_calls) == 1
    assert len(fake_ml.index_calls) == 1
    assert all(result.processed for result in results)
    assert pipeline.in_flight == []


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_run(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.embed_gate = asyncio.Event()
    book = make_book()

    waiter = asyncio.create_task(pipeline.enqueue(book.id))
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    fake_ml.embed_gate.set()
    await pipeline.drain()

    stored = store.find_by_id(book.id)
    assert stored is not None
    assert stored.processed is True


@pytest.mark.asyncio
async def test_distinct_documents_run_concurrently(pipeline, fake_ml, make_book) -> None:
    fake_ml.embed_gate = asyncio.Event()
    books = [make_book() for _ in range(3)]

    tasks = [asyncio.create_task(pipeline.enqueue(book.id)) for book in books]
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert sorted(pipeline.in_flight) == sorted(book.id for book in books)
    assert len(fake_ml.embed_calls) == 3

    fake_ml.embed_gate.set()
    await asyncio.gather(*tasks)


@pytest.mark.asyncio
async def test_reprocess_failed_respects_limit(pipeline, store, make_book) -> None:
    books = [make_book() for _ in range(15)]
    for book in books:
        store.update_fields(book.id, processed=False, last_error="earlier failure")

    attempted = await pipeline.reprocess_failed(10)

    assert attempted == 10
    refreshed = [store.find_by_id(book.id) for book in books]
    assert [doc.processed for doc in refreshed[:10]] == [True] * 10
    assert [doc.status for doc in refreshed[10:]] == [EnrichmentStatus.FAILED] * 5
    assert store.count_by_status().failed == 5


@pytest.mark.asyncio
async def test_reprocess_failed_ignores_unprocessed_and_processed(pipeline, store, fake_ml, make_book) -> None:
    make_book()
    done = make_book()
    store.update_fields(done.id, processed=True)
    failed = make_book()
    store.update_fields(failed.id, last_error="boom")

    assert await pipeline.reprocess_failed() == 1
    assert fake_ml.embed_calls == [failed.text]


@pytest.mark.asyncio
async def test_reprocess_failed_continues_past_errors(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.embed_failures = 3
    books = [make_book() for _ in range(2)]
    for book in books:
        store.update_fields(book.id, last_error="boom")

    assert await pipeline.reprocess_failed() == 2

    first, second = (store.find_by_id(book.id) for book in books)
    assert first.status is EnrichmentStatus.FAILED
    assert first.last_error == "embed failure 3"
    assert second.processed is True


@pytest.mark.asyncio
async def test_reprocess_failed_with_nothing_to_do(pipeline) -> None:
    assert await pipeline.reprocess_failed(5) == 0


@pytest.mark.asyncio
async def test_submit_runs_in_background(pipeline, store, make_book) -> None:
    book = make_book()

    task = pipeline.submit(book.id)
    await pipeline.drain()

    assert task.done()
    stored = store.find_by_id(book.id)
    assert stored.processed is True
    assert pipeline.status_of(stored) is EnrichmentStatus.PROCESSED


@pytest.mark.asyncio
async def test_submit_failure_is_recorded_not_raised(pipeline, store, fake_ml, make_book) -> None:
    fake_ml.embed_failures = ALWAYS
    book = make_book()

    pipeline.submit(book.id)
    await pipeline.drain()

    stored = store.find_by_id(book.id)
    assert stored.status is EnrichmentStatus.FAILED


def test_compute_top_words_defaults_to_settings(pipeline) -> None:
    pipeline.settings.top_words_default = 1
    assert pipeline.compute_top_words("dragon dragon knight") == [("dragon", 2)]
    assert pipeline.compute_top_words("dragon dragon knight", 5) == [("dragon", 2), ("knight", 1)]


@pytest.mark.asyncio
async def test_index_returning_false_is_a_failure(pipeline, store, fake_ml, make_book, sleeps) -> None:
    async def reject(document_id: str, text: str, metadata: dict) -> bool:
        fake_ml.index_calls.append((document_id, dict(metadata)))
        return False

    fake_ml.index_add = reject
    book = make_book()

    with pytest.raises(ServiceError) as excinfo:
        await pipeline.enqueue(book.id)

    assert excinfo.value.message == f"Index rejected book {book.id}"
    assert len(fake_ml.index_calls) == 3
    assert len(sleeps) == 2
    stored = store.find_by_id(book.id)
    assert stored.processed is False
    assert stored.processed_at is None
    assert stored.embedding == [0.1, 0.2]
    assert stored.status is EnrichmentStatus.FAILED


@pytest.mark.asyncio
async def test_blank_error_message_still_marks_failure(pipeline, store, fake_ml, make_book) -> None:
    async def blank_failure(text: str) -> list[float]:
        raise ServiceError("")

    fake_ml.embed = blank_failure
    book = make_book()

    with pytest.raises(ServiceError):
        await pipeline.enqueue(book.id)

    stored = store.find_by_id(book.id)
    assert stored.last_error == "ServiceError"
    assert stored.status is EnrichmentStatus.FAILED
    assert store.count_by_status().failed == 1
    assert [doc.id for doc in store.find_many(DocumentFilter.failed(), limit=10)] == [book.id]


@pytest.mark.asyncio
async def test_each_retry_logged_once(pipeline, fake_ml, make_book, caplog) -> None:
    fake_ml.embed_failures = 2
    book = make_book()

    with caplog.at_level(logging.WARNING):
        await pipeline.enqueue(book.id)

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 2
