import json

import httpx
import pytest

from bookworm.core.errors import ServiceError
from bookworm.ml.client import MLServiceClient


def make_client(handler) -> MLServiceClient:
    return MLServiceClient("http://ml.test/", timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_embed_posts_text_and_returns_vector() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"embedding": [0.25, 0.5, 0.75]})

    async with make_client(handler) as client:
        assert client.base_url == "http://ml.test"
        assert await client.embed("hello") == [0.25, 0.5, 0.75]

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/embed"
    assert json.loads(seen[0].content) == {"text": "hello"}


@pytest.mark.asyncio
async def test_index_add_sends_metadata() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "message": "added"})

    async with make_client(handler) as client:
        assert await client.index_add("book_1", "text", {"title": "T", "author": "A", "genre": None}) is True

    assert bodies == [{"book_id": "book_1", "text": "text", "metadata": {"title": "T", "author": "A"}}]


@pytest.mark.asyncio
async def test_index_add_rejection_is_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "index full"})

    async with make_client(handler) as client:
        with pytest.raises(ServiceError, match="index full"):
            await client.index_add("book_1", "text", {"title": "T", "author": "A"})


@pytest.mark.asyncio
async def test_http_error_carries_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    async with make_client(handler) as client:
        with pytest.raises(ServiceError) as excinfo:
            await client.embed("hello")

    assert excinfo.value.status_code == 503
    assert "overloaded" in excinfo.value.message


@pytest.mark.asyncio
async def test_transport_error_is_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(ServiceError, match="connection"):
            await client.embed("hello")


@pytest.mark.asyncio
async def test_timeout_is_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    async with make_client(handler) as client:
        with pytest.raises(ServiceError, match="timeout"):
            await client.embed("hello")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"embedding": []}, {"vector": [1.0]}])
async def test_bad_embed_payload_is_service_error(payload: dict) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with make_client(handler) as client:
        with pytest.raises(ServiceError):
            await client.embed("hello")


@pytest.mark.asyncio
async def test_search_and_stats() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search":
            body = json.loads(request.content)
            assert body == {"query_text": "dragons", "k": 2, "exclude_id": "book_0"}
            return httpx.Response(200, json={"results": [{"book_id": "book_1", "score": 0.9}]})
        if request.url.path == "/index/stats":
            return httpx.Response(200, json={"total_vectors": 4, "dimension": 384, "index_type": "flat"})
        return httpx.Response(200, json={"status": "ok"})

    async with make_client(handler) as client:
        hits = await client.search("dragons", k=2, exclude_id="book_0")
        stats = await client.index_stats()
        health = await client.health()

    assert [(hit.book_id, hit.score) for hit in hits] == [("book_1", 0.9)]
    assert stats.dimension == 384
    assert health.status == "ok"
