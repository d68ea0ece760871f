"""Error taxonomy shared by the pipeline, store and HTTP layer."""

from __future__ import annotations


class BookwormError(Exception):
    """Base class for errors raised by Bookworm."""


class NotFoundError(BookwormError):
    """A requested document does not exist."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Book {document_id} not found")
        self.document_id = document_id


class ServiceError(BookwormError):
    """The ML service call failed; carries the last underlying message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(BookwormError, ValueError):
    """Malformed input to an analysis or retry primitive."""


__all__ = ["BookwormError", "NotFoundError", "ServiceError", "ValidationError"]
