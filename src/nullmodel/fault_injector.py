# src/nullmodel/fault_injector.py
"""Fault injection for the nullmodel server.

The FaultInjector decides once per request, before any content work, whether
the request should fail, be slowed down, or complete normally. `render_fault()`
turns a failure kind into the exact error payload the real provider returns,
so client SDKs raise the same exception types they would in production.
"""

import copy
import random as random_module
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from nullmodel.config import ChaosConfig
from nullmodel.types import Provider


class FaultKind(StrEnum):
    """Per-request fault outcome."""

    NONE = "none"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    CONTEXT_LENGTH = "context_length"
    TIMEOUT = "timeout"
    SLOWDOWN = "slowdown"

    @property
    def is_error(self) -> bool:
        """True for outcomes that replace the response with an error payload."""
        return self not in (FaultKind.NONE, FaultKind.SLOWDOWN)


@dataclass(frozen=True, slots=True)
class FaultResponse:
    """A canned provider error response."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class FaultInjector:
    """Draws one fault outcome per request from configured rates.

    A single uniform roll in [0, 1) is compared against cumulative bands in
    fixed order: rate limit, then server error, then slowdown. Anything past
    the last band is a normal completion, so the outcomes partition the roll
    space exactly.

    Usage:
        injector = FaultInjector(ChaosConfig(enabled=True, rate_limit_rate=0.1))
        kind = injector.decide()
        if kind.is_error:
            fault = render_fault(kind, Provider.OPENAI)
    """

    def __init__(
        self,
        config: ChaosConfig,
        *,
        rng: random_module.Random | None = None,
    ) -> None:
        """Initialize the fault injector.

        Args:
            config: Chaos configuration
            rng: Random instance for testing (default: creates new Random instance).
                 Inject a seeded random.Random() for deterministic testing.
        """
        self._config = config
        self._rng = rng if rng is not None else random_module.Random()

    @property
    def config(self) -> ChaosConfig:
        return self._config

    def decide(self) -> FaultKind:
        """Decide the fault outcome for one request.

        Disabled injectors return NONE without consuming a random draw.
        """
        if not self._config.enabled:
            return FaultKind.NONE

        bands = (
            (self._config.rate_limit_rate, FaultKind.RATE_LIMIT),
            (self._config.error_rate, FaultKind.SERVER_ERROR),
            (self._config.slowdown_rate, FaultKind.SLOWDOWN),
        )
        roll = self._rng.random()
        threshold = 0.0
        for rate, kind in bands:
            threshold += rate
            if roll < threshold:
                return kind
        return FaultKind.NONE


# === Provider error payloads ===
#
# Keyed by fault kind, then provider. Values mirror each provider's published
# error schema: OpenAI {"error": {message, type, param, code}}, Anthropic
# {"type": "error", "error": {type, message}}, Gemini {"error": {code, message, status}}.

_FAULT_PAYLOADS: dict[str, dict[str, FaultResponse]] = {
    FaultKind.RATE_LIMIT: {
        Provider.OPENAI: FaultResponse(
            status_code=429,
            body={
                "error": {
                    "message": (
                        "Rate limit reached for gpt-4 in organization org-nullmodel on tokens per min (TPM): "
                        "Limit 40000, Used 39532, Requested 1024."
                    ),
                    "type": "tokens",
                    "param": None,
                    "code": "rate_limit_exceeded",
                }
            },
            headers={"retry-after": "2", "x-ratelimit-remaining-tokens": "468"},
        ),
        Provider.ANTHROPIC: FaultResponse(
            status_code=429,
            body={
                "type": "error",
                "error": {
                    "type": "rate_limit_error",
                    "message": "Number of request tokens has exceeded your per-minute rate limit.",
                },
            },
            headers={"retry-after": "2"},
        ),
        Provider.GEMINI: FaultResponse(
            status_code=429,
            body={
                "error": {
                    "code": 429,
                    "message": "Resource has been exhausted (e.g. check quota).",
                    "status": "RESOURCE_EXHAUSTED",
                }
            },
            headers={"retry-after": "2"},
        ),
    },
    FaultKind.SERVER_ERROR: {
        Provider.OPENAI: FaultResponse(
            status_code=500,
            body={
                "error": {
                    "message": "The server had an error while processing your request. Sorry about that!",
                    "type": "server_error",
                    "param": None,
                    "code": None,
                }
            },
        ),
        Provider.ANTHROPIC: FaultResponse(
            status_code=500,
            body={
                "type": "error",
                "error": {
                    "type": "api_error",
                    "message": "An unexpected error has occurred internal to Anthropic's systems.",
                },
            },
        ),
        Provider.GEMINI: FaultResponse(
            status_code=500,
            body={
                "error": {
                    "code": 500,
                    "message": "An internal error has occurred. Please retry or report in https://developers.generativeai.google/guide/troubleshooting",
                    "status": "INTERNAL",
                }
            },
        ),
    },
    FaultKind.CONTEXT_LENGTH: {
        Provider.OPENAI: FaultResponse(
            status_code=400,
            body={
                "error": {
                    "message": (
                        "This model's maximum context length is 128000 tokens. However, your messages "
                        "resulted in 129847 tokens. Please reduce the length of the messages."
                    ),
                    "type": "invalid_request_error",
                    "param": "messages",
                    "code": "context_length_exceeded",
                }
            },
        ),
        Provider.ANTHROPIC: FaultResponse(
            status_code=400,
            body={
                "type": "error",
                "error": {
                    "type": "invalid_request_error",
                    "message": "prompt is too long: 229847 tokens > 200000 maximum",
                },
            },
        ),
        Provider.GEMINI: FaultResponse(
            status_code=400,
            body={
                "error": {
                    "code": 400,
                    "message": "Request payload size exceeds the limit: 2097152 bytes.",
                    "status": "INVALID_ARGUMENT",
                }
            },
        ),
    },
    FaultKind.TIMEOUT: {
        Provider.OPENAI: FaultResponse(
            status_code=408,
            body={
                "error": {
                    "message": "Request timed out.",
                    "type": "timeout_error",
                    "param": None,
                    "code": "timeout",
                }
            },
        ),
        Provider.ANTHROPIC: FaultResponse(
            status_code=408,
            body={
                "type": "error",
                "error": {
                    "type": "timeout_error",
                    "message": "Request timed out.",
                },
            },
        ),
        Provider.GEMINI: FaultResponse(
            status_code=504,
            body={
                "error": {
                    "code": 504,
                    "message": "Deadline exceeded.",
                    "status": "DEADLINE_EXCEEDED",
                }
            },
        ),
    },
}


def render_fault(kind: str, provider: str) -> FaultResponse:
    """Render the canned error response for a fault kind and provider.

    Falls back to the provider's server error for kinds without a payload
    (including "none" and "slowdown"), and to the OpenAI server error for
    unknown providers. Never raises. Returns a fresh copy each call.
    """
    by_provider = _FAULT_PAYLOADS.get(kind, {})
    fault = by_provider.get(provider) or _FAULT_PAYLOADS[FaultKind.SERVER_ERROR].get(provider)
    if fault is None:
        fault = _FAULT_PAYLOADS[FaultKind.SERVER_ERROR][Provider.OPENAI]
    return FaultResponse(
        status_code=fault.status_code,
        body=copy.deepcopy(fault.body),
        headers=dict(fault.headers),
    )
