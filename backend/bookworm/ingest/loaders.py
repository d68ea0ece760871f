"""Document loaders for supported formats."""

from __future__ import annotations

import re
from pathlib import Path

import fitz
import yaml
from docx import Document as DocxDocument
from markdown_it import MarkdownIt

from bookworm.ingest.types import LoadedDocument

_MD = MarkdownIt()
_WHITESPACE_RE = re.compile(r"\s+")

# Paragraphs grouped into one pseudo-page for formats without real pages.
_PARAGRAPHS_PER_PAGE = 50


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()
    mime_type: str = "application/octet-stream"

    def can_load(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def load(self, path: Path) -> LoadedDocument:  # pragma: no cover - interface
        raise NotImplementedError


class MarkdownLoader(BaseLoader):
    suffixes = (".md", ".markdown")
    mime_type = "text/markdown"

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        front_matter, body = _split_front_matter(raw.decode("utf-8", errors="ignore"))
        metadata: dict[str, object] = {"path": str(path)}
        if front_matter:
            metadata["front_matter"] = front_matter
        return LoadedDocument(
            path=path,
            pages=[_markdown_to_text(body)],
            metadata=metadata,
            mime=self.mime_type,
            title=_str_or_none(front_matter.get("title")) if front_matter else path.stem,
            author=_str_or_none(front_matter.get("author")) if front_matter else None,
            size_bytes=len(raw),
        )


class TextLoader(BaseLoader):
    suffixes = (".txt", ".text")
    mime_type = "text/plain"

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        text = raw.decode("utf-8", errors="ignore")
        # Form feeds mark page breaks in plain-text book dumps.
        pages = [_normalize(page) for page in text.split("\f")]
        return LoadedDocument(
            path=path,
            pages=[page for page in pages if page],
            metadata={"path": str(path)},
            mime=self.mime_type,
            title=path.stem,
            author=None,
            size_bytes=len(raw),
        )


class PDFLoader(BaseLoader):
    suffixes = (".pdf",)
    mime_type = "application/pdf"

    def load(self, path: Path) -> LoadedDocument:
        raw = path.read_bytes()
        with fitz.open(stream=raw, filetype="pdf") as doc:
            pages = [_normalize(page.get_text("text", sort=True)) for page in doc]
            info = doc.metadata or {}
        return LoadedDocument(
            path=path,
            pages=pages,
            metadata={"path": str(path), "page_count": len(pages)},
            mime=self.mime_type,
            title=info.get("title") or path.stem,
            author=info.get("author") or None,
            size_bytes=len(raw),
        )


class DocxLoader(BaseLoader):
    suffixes = (".docx",)
    mime_type = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    def load(self, path: Path) -> LoadedDocument:
        document = DocxDocument(str(path))
        paragraphs = [para.text for para in document.paragraphs if para.text.strip()]
        pages = [
            _normalize("\n".join(paragraphs[start : start + _PARAGRAPHS_PER_PAGE]))
            for start in range(0, len(paragraphs), _PARAGRAPHS_PER_PAGE)
        ]
        core = document.core_properties
        return LoadedDocument(
            path=path,
            pages=pages,
            metadata={"path": str(path), "category": core.category},
            mime=self.mime_type,
            title=core.title or path.stem,
            author=core.author or None,
            size_bytes=path.stat().st_size,
        )


class LoaderRegistry:
    """Registry that selects an appropriate loader for a path."""

    def __init__(self) -> None:
        self._loaders: list[BaseLoader] = [
            MarkdownLoader(),
            TextLoader(),
            PDFLoader(),
            DocxLoader(),
        ]

    def register(self, loader: BaseLoader) -> None:
        self._loaders.append(loader)

    def for_path(self, path: Path) -> BaseLoader | None:
        for loader in self._loaders:
            if loader.can_load(path):
                return loader
        return None

    def load(self, path: Path) -> LoadedDocument:
        loader = self.for_path(path)
        if loader is None:
            raise ValueError(f"No loader registered for suffix {path.suffix}")
        return loader.load(path)


def _split_front_matter(text: str) -> tuple[dict[str, object] | None, str]:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1]) or {}
            except yaml.YAMLError:
                return None, text
            if isinstance(front_matter, dict):
                return front_matter, parts[2]
    return None, text


def _markdown_to_text(text: str) -> str:
    parts = [token.content.strip() for token in _MD.parse(text) if token.content.strip()]
    return _normalize("\n".join(parts) if parts else text)


def _normalize(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _str_or_none(value: object) -> str | None:
    return str(value) if value is not None else None


__all__ = ["BaseLoader", "LoaderRegistry", "MarkdownLoader", "TextLoader", "PDFLoader", "DocxLoader"]
