"""Timestamps as stored in SQLite (epoch milliseconds) and as exposed (aware UTC)."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> int:
    return int(time.time() * 1000)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def datetime_to_ms(value: datetime | None) -> int | None:
    """Naive datetimes are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def ms_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


__all__ = ["datetime_to_ms", "ms_to_datetime", "now_ms", "utc_now"]
