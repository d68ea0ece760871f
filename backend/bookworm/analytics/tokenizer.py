"""Content-word tokenizer."""

from __future__ import annotations

import re
from typing import Iterator

from bookworm.core.errors import ValidationError

_NON_ALPHA_RE = re.compile(r"[^a-z\s]")
_SPLIT_RE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3

STOP_WORDS: frozenset[str] = frozenset(
    """
    about above after again against all also and any are aren because been before
    being below between both but can cannot could couldn did didn does doesn doing
    don down during each either else ever few for from further had hadn has hasn
    have haven having her here hers herself him himself his how however into isn
    its itself just let more most much must mustn myself nor not now off once only
    other ought our ours ourselves out over own same says shall shan she should
    shouldn since some still such than that the their theirs them themselves then
    there these they this those though through thus too under until upon very was
    wasn were weren what when where whether which while who whom whose why will
    with within without won would wouldn yet you your yours yourself yourselves
    """.split()
)


def iter_tokens(text: str) -> Iterator[str]:
    """Yield content words of ``text`` lazily."""
    if not isinstance(text, str):
        raise ValidationError(f"text must be a string, got {type(text).__name__}")
    cleaned = _NON_ALPHA_RE.sub("", text.lower())
    for word in _SPLIT_RE.split(cleaned):
        if len(word) >= MIN_TOKEN_LENGTH and word not in STOP_WORDS:
            yield word


def tokenize(text: str) -> list[str]:
    """Lower-case, strip non-letters, split and drop short and stop words."""
    return list(iter_tokens(text))


__all__ = ["STOP_WORDS", "MIN_TOKEN_LENGTH", "iter_tokens", "tokenize"]
