"""Per-key deduplication of in-flight coroutines."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class SingleFlight(Generic[K, T]):
    """At most one running task per key; later callers join it.

    The slot is released when the task finishes, whatever the outcome, so
    the next call for that key starts a fresh run.
    """

    def __init__(self) -> None:
        self._tasks: dict[K, asyncio.Task[T]] = {}

    def run(self, key: K, factory: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            return existing
        task = asyncio.ensure_future(factory())
        self._tasks[key] = task
        task.add_done_callback(lambda finished, key=key: self._release(key, finished))
        return task

    def get(self, key: K) -> asyncio.Task[T] | None:
        task = self._tasks.get(key)
        return task if task is not None and not task.done() else None

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def keys(self) -> list[K]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def tasks(self) -> list[asyncio.Task[T]]:
        return [task for task in self._tasks.values() if not task.done()]

    def _release(self, key: K, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Joined callers may have been cancelled; mark the outcome as observed.
        if not task.cancelled():
            task.exception()


__all__ = ["SingleFlight"]
