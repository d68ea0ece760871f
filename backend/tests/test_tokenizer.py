"""Tests for the content-word tokenizer."""

import pytest

from bookworm.analytics.tokenizer import STOP_WORDS, tokenize
from bookworm.core.errors import ValidationError


def test_tokenize_lowercases_and_strips_punctuation() -> None:
    assert tokenize("Dragons! DRAGONS, dragons?") == ["dragons", "dragons", "dragons"]


def test_tokenize_drops_short_and_stop_words() -> None:
    tokens = tokenize("The cat and an ox sat with the owl on a mat")
    assert tokens == ["cat", "sat", "owl", "mat"]
    assert not any(token in STOP_WORDS for token in tokens)


def test_tokenize_removes_digits_inside_words() -> None:
    # Non-letters are deleted, not replaced by spaces.
    assert tokenize("r2d2 x-wing 1984") == ["xwing"]


def test_tokenize_handles_whitespace_runs() -> None:
    assert tokenize("  castle\n\n\tknight   \r\n") == ["castle", "knight"]


def test_tokenize_is_deterministic(sample_text: str) -> None:
    assert tokenize(sample_text) == tokenize(sample_text)


def test_tokenize_empty_text() -> None:
    assert tokenize("") == []


def test_tokenize_rejects_non_string() -> None:
    with pytest.raises(ValidationError):
        tokenize(None)  # type: ignore[arg-type]
