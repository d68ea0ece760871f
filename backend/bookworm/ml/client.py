"""HTTP client for the ML embedding and index service."""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from bookworm.core.errors import ServiceError
from bookworm.ml.schemas import (
    EmbedRequest,
    EmbedResponse,
    HealthResponse,
    IndexAddRequest,
    IndexAddResponse,
    IndexMetadata,
    IndexStats,
    SearchRequest,
    SearchResponse,
    SearchResult,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class MLServiceClient:
    """Async wrapper around the ML service API.

    Every failure (transport, timeout, non-2xx, malformed body) surfaces as
    ``ServiceError``; retrying is left to the caller.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MLServiceClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def health(self) -> HealthResponse:
        """Liveness of the ML service; not used on the enrichment path."""
        return await self._request("GET", "/health", HealthResponse)

    async def embed(self, text: str) -> list[float]:
        """Embed ``text`` into a fixed-length vector."""
        payload = EmbedRequest(text=text)
        response = await self._request("POST", "/embed", EmbedResponse, payload)
        if not response.embedding:
            raise ServiceError("ML service returned an empty embedding")
        logger.debug("Generated embedding (%d dimensions)", len(response.embedding))
        return response.embedding

    async def index_add(self, document_id: str, text: str, metadata: Mapping[str, Any] | None = None) -> bool:
        """Add a book to the similarity index.

        A response with ``success: false`` is reported as ``ServiceError`` so
        that it is retried like any other failure.
        """
        payload = IndexAddRequest(
            book_id=document_id,
            text=text,
            metadata=IndexMetadata.model_validate(dict(metadata)) if metadata else None,
        )
        response = await self._request("POST", "/index/add", IndexAddResponse, payload)
        if not response.success:
            raise ServiceError(response.message or f"Index rejected book {document_id}")
        return True

    async def search(self, query_text: str, k: int = 5, exclude_id: str | None = None) -> list[SearchResult]:
        payload = SearchRequest(query_text=query_text, k=k, exclude_id=exclude_id)
        response = await self._request("POST", "/search", SearchResponse, payload)
        return response.results

    async def index_stats(self) -> IndexStats:
        return await self._request("GET", "/index/stats", IndexStats)

    async def _request(
        self,
        method: str,
        path: str,
        response_model: type[ResponseT],
        payload: BaseModel | None = None,
    ) -> ResponseT:
        client = self._get_client()
        try:
            response = await client.request(
                method,
                path,
                content=payload.model_dump_json(exclude_none=True) if payload is not None else None,
            )
            response.raise_for_status()
            return response_model.model_validate(response.json())
        except httpx.TimeoutException as exc:
            logger.warning("ML service timeout on %s %s: %s", method, path, exc)
            raise ServiceError(f"ML service timeout on {path}: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200] if exc.response.text else "no body"
            logger.warning("ML service returned %d on %s: %s", exc.response.status_code, path, body)
            raise ServiceError(
                f"ML service returned {exc.response.status_code} on {path}: {body}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("ML service request %s %s failed: %s", method, path, exc)
            raise ServiceError(f"ML service connection error on {path}: {exc}") from exc
        except (ValueError, PydanticValidationError) as exc:
            logger.warning("Malformed ML service response on %s: %s", path, exc)
            raise ServiceError(f"Malformed ML service response on {path}: {exc}") from exc


__all__ = ["MLServiceClient"]
