# src/nullmodel/types.py
"""Shared types used across the fault injector, emitters and server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Provider(StrEnum):
    """Wire protocol family being emulated."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


@dataclass(frozen=True, slots=True)
class UsageCounts:
    """Length-based usage estimate for one completion.

    Attributes:
        input_tokens: Prompt side estimate
        output_tokens: Completion side estimate
    """

    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
