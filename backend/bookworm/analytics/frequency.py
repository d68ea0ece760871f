"""Incremental word-frequency accumulation."""

from __future__ import annotations

from collections import Counter
from types import MappingProxyType
from typing import Iterable, Mapping

from bookworm.analytics.tokenizer import iter_tokens
from bookworm.analytics.topk import WordCount, top_k

FrequencyTable = Mapping[str, int]


class FrequencyCounter:
    """Word counts for a single analysis run.

    Not safe to share between concurrent runs; create one per run.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._total = 0

    def reset(self) -> None:
        self._counts.clear()
        self._total = 0

    def record(self, text: str) -> int:
        """Count the content words of one chunk; returns the number counted."""
        added = 0
        for word in iter_tokens(text):
            self._counts[word] += 1
            added += 1
        self._total += added
        return added

    def record_many(self, chunks: Iterable[str]) -> None:
        for chunk in chunks:
            self.record(chunk)

    def snapshot(self) -> FrequencyTable:
        """Read-only live view of the current counts."""
        return MappingProxyType(self._counts)

    def top(self, k: int) -> list[WordCount]:
        return top_k(self._counts, k)

    @property
    def total(self) -> int:
        return self._total

    @property
    def vocabulary_size(self) -> int:
        return len(self._counts)


def compute_top_words(text: str, k: int) -> list[WordCount]:
    """One-shot analysis of ``text`` with a private counter."""
    counter = FrequencyCounter()
    counter.record(text)
    return counter.top(k)


__all__ = ["FrequencyCounter", "FrequencyTable", "compute_top_words"]
