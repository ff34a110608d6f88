# src/nullmodel/streaming.py
"""Paced emission of a provider stream.

The StreamOrchestrator is a small explicit state machine:

    announced -> emitting -> finished
        |           |
        +-----------+--> cancelled

announced: opening frames are written, then the first-unit delay is awaited.
emitting: each body frame is optionally preceded by a per-unit delay, then
    written once the peer is confirmed alive.
finished: closing frames are written exactly once.
cancelled: the peer went away; emission stops without error and no terminal
    frames are written.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import StrEnum
from typing import TypeAlias

import structlog

from nullmodel.latency_simulator import LatencySimulator
from nullmodel.providers.base import Frame, ProtocolEmitter, StreamSession

logger = structlog.get_logger(__name__)

SleepFunc: TypeAlias = Callable[[int], Awaitable[None]]
LivenessCheck: TypeAlias = Callable[[], Awaitable[bool]]


class StreamState(StrEnum):
    """Lifecycle of one streamed response."""

    PENDING = "pending"
    ANNOUNCED = "announced"
    EMITTING = "emitting"
    FINISHED = "finished"
    CANCELLED = "cancelled"


async def sleep_ms(delay_ms: int) -> None:
    """Suspend the current task for ``delay_ms`` milliseconds."""
    await asyncio.sleep(delay_ms / 1000.0)


async def _never_disconnected() -> bool:
    return False


class StreamOrchestrator:
    """Drives one emitter's streaming plan onto the wire.

    One orchestrator serves one request. ``run()`` is an async generator of
    encoded frames, suitable as the body iterator of a Starlette
    StreamingResponse.

    Usage:
        orchestrator = StreamOrchestrator(
            OpenAIEmitter(),
            LatencySimulator(config.latency),
            is_disconnected=request.is_disconnected,
        )
        return StreamingResponse(orchestrator.run(session), media_type="text/event-stream")
    """

    def __init__(
        self,
        emitter: ProtocolEmitter,
        latency: LatencySimulator,
        *,
        sleep: SleepFunc | None = None,
        is_disconnected: LivenessCheck | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            emitter: Protocol emitter providing the frames
            latency: Latency simulator (already slowed down if a slowdown fault fired)
            sleep: Awaitable delay in milliseconds (default: asyncio.sleep). Tests pass a no-op.
            is_disconnected: Liveness check polled before every write (default: never disconnected)
        """
        self._emitter = emitter
        self._latency = latency
        self._sleep = sleep if sleep is not None else sleep_ms
        self._is_disconnected = is_disconnected if is_disconnected is not None else _never_disconnected
        self._state = StreamState.PENDING
        self._plan: tuple[list[bytes], list[Frame], list[bytes]] | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    async def _peer_gone(self, session: StreamSession) -> bool:
        if not await self._is_disconnected():
            return False
        session.cancelled = True
        self._state = StreamState.CANCELLED
        logger.info(
            "Stream cancelled by peer",
            provider=session.provider,
            response_id=session.response_id,
            cursor=session.cursor,
            total=session.total,
        )
        return True

    def prepare(self, session: StreamSession) -> None:
        """Render every frame of the stream up front.

        Called before the response starts so that rendering failures can
        still be answered with an ordinary error response. ``run()`` calls
        it itself when the caller did not.
        """
        body = self._emitter.body(session)
        self._plan = (self._emitter.opening(session), body, self._emitter.closing(session))
        session.total = len(body)

    async def run(self, session: StreamSession) -> AsyncIterator[bytes]:
        """Yield the encoded frames of ``session`` with simulated pacing."""
        if self._state is not StreamState.PENDING:
            raise RuntimeError(f"StreamOrchestrator already used (state={self._state})")
        if self._plan is None:
            self.prepare(session)
        assert self._plan is not None
        opening, frames, closing = self._plan

        self._state = StreamState.ANNOUNCED
        for data in opening:
            if await self._peer_gone(session):
                return
            yield data

        await self._sleep(self._latency.first_token_delay())

        self._state = StreamState.EMITTING
        for frame in frames:
            if frame.paced:
                await self._sleep(self._latency.per_token_delay())
            if await self._peer_gone(session):
                return
            yield frame.data
            session.advance()

        if await self._peer_gone(session):
            return
        self._state = StreamState.FINISHED
        for data in closing:
            yield data
