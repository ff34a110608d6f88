# src/nullmodel/tokenizer.py
"""Crude tokenization for incremental delivery and usage estimates.

Real providers stream sub-word BPE tokens. For mock purposes a regex split is
close enough: word runs, whitespace runs and single punctuation characters.
What matters is that the split is lossless, so a client concatenating every
delta reconstructs the original text exactly.
"""

import math
import re

# Alternatives are exhaustive: every character is whitespace, an ASCII word
# character, or neither. Accented letters therefore stand alone.
_WORD = "A-Za-z0-9_"
_TOKEN_PATTERN = re.compile(rf"\s+|[{_WORD}]+|[^\s{_WORD}]")


def segment(text: str) -> list[str]:
    """Split text into ordered tokens whose concatenation is ``text``.

    Maximal runs of ASCII word characters form one token, maximal runs of
    whitespace form one token, and every other character is its own token.

    >>> segment("Hi, there!")
    ['Hi', ',', ' ', 'there', '!']
    """
    return _TOKEN_PATTERN.findall(text)


def chunk_string(text: str, size: int) -> list[str]:
    """Split text into fixed-width chunks (the last one may be shorter)."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [text[i : i + size] for i in range(0, len(text), size)]


def estimate_tokens(text: str) -> int:
    """Approximate token count: about four characters per token."""
    return math.ceil(len(text) / 4)
