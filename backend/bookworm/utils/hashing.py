"""Hashing utilities."""

from __future__ import annotations

import hashlib


def sha256_text(text: str) -> str:
    """Hex digest of UTF-8 encoded text, used to dedupe ingested books."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
