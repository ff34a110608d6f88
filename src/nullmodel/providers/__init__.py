# src/nullmodel/providers/__init__.py
"""Protocol emitters, one per emulated provider."""

import random as random_module
from collections.abc import Callable

from nullmodel.providers.anthropic import AnthropicEmitter
from nullmodel.providers.base import Frame, ProtocolEmitter, StreamSession, generate_id
from nullmodel.providers.gemini import GeminiEmitter
from nullmodel.providers.openai import OpenAIEmitter
from nullmodel.types import Provider

EMITTER_CLASSES: dict[Provider, type[ProtocolEmitter]] = {
    Provider.OPENAI: OpenAIEmitter,
    Provider.ANTHROPIC: AnthropicEmitter,
    Provider.GEMINI: GeminiEmitter,
}


def build_emitters(
    *,
    rng: random_module.Random | None = None,
    time_func: Callable[[], float] | None = None,
) -> dict[Provider, ProtocolEmitter]:
    """Instantiate one emitter per provider, sharing the random source."""
    return {provider: cls(rng=rng, time_func=time_func) for provider, cls in EMITTER_CLASSES.items()}


__all__ = [
    "EMITTER_CLASSES",
    "AnthropicEmitter",
    "Frame",
    "GeminiEmitter",
    "OpenAIEmitter",
    "ProtocolEmitter",
    "StreamSession",
    "build_emitters",
    "generate_id",
]
