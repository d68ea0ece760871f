"""Bounded top-K selection over a frequency table."""

from __future__ import annotations

import heapq
from typing import Mapping, NamedTuple


class WordCount(NamedTuple):
    word: str
    count: int


class _Entry:
    """Heap entry ordered by count, then by reverse word order.

    With equal counts the lexicographically greater word compares smaller,
    so it is evicted first and the survivors keep ascending word order.
    """

    __slots__ = ("word", "count")

    def __init__(self, word: str, count: int) -> None:
        self.word = word
        self.count = count

    def __lt__(self, other: "_Entry") -> bool:
        if self.count != other.count:
            return self.count < other.count
        return self.word > other.word


def top_k(table: Mapping[str, int], k: int) -> list[WordCount]:
    """Return the ``k`` most frequent words, count descending then word ascending.

    Keeps a min-heap of at most ``k`` entries, so the cost is O(U log k) for
    a vocabulary of U words instead of sorting the whole table.
    """
    if k <= 0 or not table:
        return []
    heap: list[_Entry] = []
    for word, count in table.items():
        entry = _Entry(word, count)
        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif heap[0] < entry:
            heapq.heapreplace(heap, entry)
    survivors = sorted(heap, key=lambda item: (-item.count, item.word))
    return [WordCount(item.word, item.count) for item in survivors]


__all__ = ["WordCount", "top_k"]
