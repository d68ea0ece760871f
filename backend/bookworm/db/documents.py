"""Book persistence on top of SQLite."""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import orjson

from bookworm.analytics.topk import WordCount
from bookworm.core.errors import NotFoundError, ValidationError
from bookworm.core.logging import get_logger, log_context
from bookworm.db.sqlite import SQLiteDatabase
from bookworm.models.entities import Document, EnrichmentStats
from bookworm.utils.time import datetime_to_ms, ms_to_datetime, now_ms

logger = get_logger(__name__)

_COLUMNS = (
    "id, title, author, genre, description, source_path, text, sha256, top_words_json, "
    "total_words, embedding_json, processed, processed_at, last_error, created_at, updated_at"
)

# Writable fields mapped to their columns.
_UPDATABLE: dict[str, str] = {
    "embedding": "embedding_json",
    "processed": "processed",
    "processed_at": "processed_at",
    "last_error": "last_error",
    "top_words": "top_words_json",
    "total_words": "total_words",
    "genre": "genre",
    "description": "description",
}


@dataclass(slots=True, frozen=True)
class DocumentFilter:
    """Conjunctive filter for ``DocumentStore.find_many``; ``None`` means any."""

    processed: bool | None = None
    has_error: bool | None = None
    genre: str | None = None

    @classmethod
    def failed(cls) -> "DocumentFilter":
        return cls(processed=False, has_error=True)


class DocumentStore:
    """Point reads and single-row atomic updates for books."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def create(
        self,
        title: str,
        author: str,
        text: str,
        sha256: str,
        genre: str | None = None,
        description: str | None = None,
        source_path: str | None = None,
        top_words: Sequence[WordCount] = (),
    ) -> Document:
        document_id = f"book_{uuid.uuid4().hex}"
        now = now_ms()
        top = [WordCount(word, count) for word, count in top_words]
        self.db.execute(
            f"""
            INSERT INTO books ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, 0, NULL, NULL, ?, ?)
            """,
            [
                document_id,
                title,
                author,
                genre,
                description,
                source_path,
                text,
                sha256,
                _encode_top_words(top),
                sum(item.count for item in top),
                now,
                now,
            ],
        )
        self.db.commit()
        logger.info("Created book %s: %s", document_id, title, extra=log_context(document_id=document_id))
        document = self.find_by_id(document_id)
        if document is None:
            raise NotFoundError(document_id)
        return document

    def find_by_id(self, document_id: str) -> Document | None:
        row = self.db.execute(f"SELECT {_COLUMNS} FROM books WHERE id = ?", [document_id]).fetchone()
        return _row_to_document(row) if row else None

    def find_by_sha256(self, digest: str) -> Document | None:
        row = self.db.execute(f"SELECT {_COLUMNS} FROM books WHERE sha256 = ?", [digest]).fetchone()
        return _row_to_document(row) if row else None

    def update_fields(self, document_id: str, **fields: Any) -> None:
        """Apply ``fields`` to one book in a single statement.

        Raises ``NotFoundError`` when no such book exists.
        """
        if not fields:
            if self.find_by_id(document_id) is None:
                raise NotFoundError(document_id)
            return
        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            column = _UPDATABLE.get(name)
            if column is None:
                raise ValidationError(f"Field {name!r} cannot be updated")
            assignments.append(f"{column} = ?")
            params.append(_encode_field(name, value))
        assignments.append("updated_at = ?")
        params.append(now_ms())
        params.append(document_id)
        with self.db.transaction() as cursor:
            cursor.execute(f"UPDATE books SET {', '.join(assignments)} WHERE id = ?", params)
            updated = cursor.rowcount
        if updated == 0:
            raise NotFoundError(document_id)

    def find_many(self, criteria: DocumentFilter, limit: int) -> list[Document]:
        """Books matching ``criteria``, oldest first, at most ``limit`` rows."""
        if limit <= 0:
            return []
        clauses: list[str] = []
        params: list[Any] = []
        if criteria.processed is not None:
            clauses.append("processed = ?")
            params.append(1 if criteria.processed else 0)
        if criteria.has_error is True:
            clauses.append("last_error IS NOT NULL")
        elif criteria.has_error is False:
            clauses.append("last_error IS NULL")
        if criteria.genre is not None:
            clauses.append("genre = ?")
            params.append(criteria.genre)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM books {where} ORDER BY created_at ASC, rowid ASC LIMIT ?",
            params,
        )
        return [_row_to_document(row) for row in rows]

    def delete(self, document_id: str) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM books WHERE id = ?", [document_id])
            deleted = cursor.rowcount
        if deleted == 0:
            raise NotFoundError(document_id)
        logger.info("Deleted book %s", document_id, extra=log_context(document_id=document_id))

    def count_by_status(self) -> EnrichmentStats:
        row = self.db.execute(
            """
            SELECT
              COUNT(*) AS total,
              COALESCE(SUM(CASE WHEN processed = 1 THEN 1 ELSE 0 END), 0) AS processed,
              COALESCE(SUM(CASE WHEN processed = 0 AND last_error IS NOT NULL THEN 1 ELSE 0 END), 0) AS failed
            FROM books
            """
        ).fetchone()
        total, processed, failed = int(row["total"]), int(row["processed"]), int(row["failed"])
        return EnrichmentStats(total=total, processed=processed, failed=failed, pending=total - processed - failed)


def _encode_field(name: str, value: Any) -> Any:
    if name == "embedding":
        return None if value is None else orjson.dumps([float(v) for v in value]).decode("utf-8")
    if name == "processed":
        return 1 if value else 0
    if name == "processed_at":
        return datetime_to_ms(value) if isinstance(value, datetime) else value
    if name == "top_words":
        return _encode_top_words(value)
    return value


def _encode_top_words(top_words: Sequence[WordCount]) -> str:
    return orjson.dumps([{"word": word, "count": count} for word, count in top_words]).decode("utf-8")


def _row_to_document(row: sqlite3.Row) -> Document:
    embedding_raw = row["embedding_json"]
    top_words = [WordCount(item["word"], int(item["count"])) for item in orjson.loads(row["top_words_json"] or "[]")]
    return Document(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        genre=row["genre"],
        description=row["description"],
        source_path=row["source_path"],
        text=row["text"],
        sha256=row["sha256"],
        top_words=top_words,
        total_words=int(row["total_words"]),
        embedding=orjson.loads(embedding_raw) if embedding_raw is not None else None,
        processed=bool(row["processed"]),
        processed_at=ms_to_datetime(row["processed_at"]),
        last_error=row["last_error"],
        created_at=ms_to_datetime(row["created_at"]),
        updated_at=ms_to_datetime(row["updated_at"]),
    )


__all__ = ["DocumentFilter", "DocumentStore"]
