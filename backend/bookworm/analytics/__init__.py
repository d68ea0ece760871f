"""Word-frequency analysis primitives."""

from .tokenizer import STOP_WORDS, iter_tokens, tokenize
from .topk import WordCount, top_k
from .frequency import FrequencyCounter, FrequencyTable, compute_top_words

__all__ = [
    "STOP_WORDS",
    "iter_tokens",
    "tokenize",
    "WordCount",
    "top_k",
    "FrequencyCounter",
    "FrequencyTable",
    "compute_top_words",
]
