# src/nullmodel/providers/base.py
"""Shared framing for the protocol emitters.

Every emitter renders the same per-request inputs (a StreamSession holding
the selected content and usage estimate) in two modes:

- ``render(session)`` returns the complete non-streaming JSON document.
- ``opening``/``body``/``closing`` return the streaming plan as encoded SSE
  frames. Body frames are marked paced (one latency wait precedes them) or
  structural (written immediately after the previous frame).

Emitters only describe frames. Timing, liveness checks and cursor movement
belong to the StreamOrchestrator.
"""

import json
import random as random_module
import string
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from nullmodel.content import ResponseContent, ToolCallContent
from nullmodel.tokenizer import chunk_string
from nullmodel.types import Provider, UsageCounts

ID_ALPHABET = string.ascii_letters + string.digits
ID_LENGTH = 24

DONE_FRAME = b"data: [DONE]\n\n"


def generate_id(prefix: str, rng: random_module.Random) -> str:
    """Generate a provider-style identifier (prefix + 24 alphanumerics)."""
    return prefix + "".join(rng.choices(ID_ALPHABET, k=ID_LENGTH))


def encode_json(payload: dict[str, Any]) -> str:
    """Compact JSON, matching what the real APIs put on the wire."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def sse_data(payload: dict[str, Any]) -> bytes:
    """Encode a data-only SSE frame."""
    return f"data: {encode_json(payload)}\n\n".encode()


def sse_event(event: str, payload: dict[str, Any]) -> bytes:
    """Encode a named-event SSE frame."""
    return f"event: {event}\ndata: {encode_json(payload)}\n\n".encode()


@dataclass(frozen=True, slots=True)
class Frame:
    """One encoded wire frame in a stream body.

    Attributes:
        data: Encoded bytes, written as-is
        paced: Whether a per-unit latency wait precedes this frame
    """

    data: bytes
    paced: bool = True


@dataclass(slots=True)
class StreamSession:
    """Per-request state shared by rendering and streaming.

    The cursor counts body frames written so far. It only moves forward and
    never passes ``total`` (the number of planned body frames).
    """

    response_id: str
    model: str
    provider: Provider
    created: int
    content: ResponseContent
    usage: UsageCounts
    tool_call_id: str | None = None
    cursor: int = 0
    total: int = 0
    cancelled: bool = False

    def advance(self) -> None:
        """Move the cursor past one written body frame."""
        if self.cursor >= self.total:
            raise RuntimeError(f"Stream cursor overrun: cursor={self.cursor} total={self.total}")
        self.cursor += 1

    @property
    def exhausted(self) -> bool:
        return self.cursor >= self.total


class ProtocolEmitter(ABC):
    """Base class for the three provider emitters."""

    provider: ClassVar[Provider]
    default_model: ClassVar[str]
    response_id_prefix: ClassVar[str]
    tool_call_id_prefix: ClassVar[str]
    argument_chunk_size: ClassVar[int]

    def __init__(
        self,
        *,
        rng: random_module.Random | None = None,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the emitter.

        Args:
            rng: Random instance used for identifiers
            time_func: Time function for testing (default: time.time)
        """
        self._rng = rng if rng is not None else random_module.Random()
        self._time_func = time_func if time_func is not None else time.time

    def start_session(
        self,
        *,
        model: str | None,
        content: ResponseContent,
        usage: UsageCounts,
    ) -> StreamSession:
        """Create the session for one request, assigning identifiers up front.

        Identifiers are fixed here so the non-streaming document and every
        streamed frame of the same request agree on them.
        """
        tool_call_id = None
        if isinstance(content, ToolCallContent):
            tool_call_id = generate_id(self.tool_call_id_prefix, self._rng)
        return StreamSession(
            response_id=generate_id(self.response_id_prefix, self._rng),
            model=model or self.default_model,
            provider=self.provider,
            created=int(self._time_func()),
            content=content,
            usage=usage,
            tool_call_id=tool_call_id,
        )

    def argument_chunks(self, content: ToolCallContent) -> list[str]:
        """Split serialized tool arguments into streamed fragments."""
        return chunk_string(content.arguments_json, self.argument_chunk_size)

    @abstractmethod
    def render(self, session: StreamSession) -> dict[str, Any]:
        """Render the complete non-streaming response document."""
        ...

    @abstractmethod
    def opening(self, session: StreamSession) -> list[bytes]:
        """Frames written before the first-unit delay."""
        ...

    @abstractmethod
    def body(self, session: StreamSession) -> list[Frame]:
        """Frames written one by one after the first-unit delay."""
        ...

    @abstractmethod
    def closing(self, session: StreamSession) -> list[bytes]:
        """Terminal frames, written exactly once after the body completes."""
        ...
