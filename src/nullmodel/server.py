# src/nullmodel/server.py
"""Starlette ASGI application for the nullmodel server.

Serves OpenAI, Anthropic and Gemini compatible completion endpoints backed by
canned persona content, simulated latency and optional fault injection.

Usage:
    from nullmodel.server import create_app, NullModelServer
    from nullmodel.config import NullModelConfig

    config = NullModelConfig()
    app = create_app(config)

    # Or use the server class for more control
    server = NullModelServer(config)
    app = server.app
"""

import json
import os
import random as random_module
import time
from collections.abc import Callable
from typing import Any

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from nullmodel import __version__
from nullmodel.config import NullModelConfig
from nullmodel.config_loader import deep_merge
from nullmodel.content import ContentSelector, completion_text, parse_error_sentinel, wants_tool_call
from nullmodel.fault_injector import FaultInjector, FaultKind, FaultResponse, render_fault
from nullmodel.latency_simulator import LatencySimulator
from nullmodel.logging import configure_logging
from nullmodel.personas import list_personas, resolve_persona
from nullmodel.providers import ProtocolEmitter, StreamSession, build_emitters, generate_id
from nullmodel.providers.base import encode_json
from nullmodel.streaming import SleepFunc, StreamOrchestrator, sleep_ms
from nullmodel.tokenizer import estimate_tokens
from nullmodel.types import Provider, UsageCounts

logger = structlog.get_logger(__name__)

SERVICE_NAME = "nullmodel"
CONFIG_ENV_VAR = "NULLMODEL_CONFIG_JSON"
PERSONA_FIELD = "_persona"

UNKNOWN_ENDPOINT_HINT = (
    "nullmodel supports /v1/chat/completions (OpenAI), /v1/messages (Anthropic), "
    "and /v1beta/models/:model:generateContent (Gemini)"
)

# Gemini encodes the action in the last path segment: "<model>:<action>"
_GEMINI_ACTIONS = {
    "generateContent": False,
    "streamGenerateContent": True,
}

_CORS_HEADERS = ["Content-Type", "Authorization", "x-api-key", "anthropic-version"]

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class InvalidRequestBody(ValueError):
    """Request body is not a JSON object."""


class NullModelServer:
    """Main nullmodel server class.

    Owns the per-process components (fault injector, latency simulator,
    content selector, emitters) and the Starlette app that routes requests
    to them. All components share one random source.

    Attributes:
        app: The Starlette ASGI application
        config: Current configuration

    Usage:
        server = NullModelServer(config, rng=random.Random(42))
        # Use server.app with uvicorn or a test client

        # Runtime updates
        server.update_config({"chaos": {"enabled": True, "rate_limit_rate": 1.0}})
    """

    def __init__(
        self,
        config: NullModelConfig,
        *,
        rng: random_module.Random | None = None,
        sleep: SleepFunc | None = None,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the nullmodel server.

        Args:
            config: Server configuration
            rng: Shared random source (default: new Random instance)
            sleep: Awaitable millisecond delay (default: asyncio.sleep). Tests pass a no-op.
            time_func: Wall clock used for ``created`` timestamps (default: time.time)
        """
        self._config = config
        self._rng = rng if rng is not None else random_module.Random()
        self._sleep = sleep if sleep is not None else sleep_ms
        self._time_func = time_func
        self._started = time.monotonic()
        self._build_components()

        self._app = self._create_app()

    def _build_components(self) -> None:
        self._fault_injector = FaultInjector(self._config.chaos, rng=self._rng)
        self._latency_simulator = LatencySimulator(self._config.latency, rng=self._rng)
        self._content_selector = ContentSelector(rng=self._rng)
        self._emitters = build_emitters(rng=self._rng, time_func=self._time_func)

    def _create_app(self) -> Starlette:
        """Create the Starlette application with all routes."""
        routes = [
            # Metadata endpoints
            Route("/", self._health_endpoint, methods=["GET"]),
            Route("/health", self._health_endpoint, methods=["GET"]),
            Route("/personas", self._personas_endpoint, methods=["GET"]),
            Route("/config", self._config_endpoint, methods=["GET"]),
            # LLM endpoints
            Route("/v1/chat/completions", self._chat_completions_endpoint, methods=["POST"]),
            Route("/v1/messages", self._messages_endpoint, methods=["POST"]),
            Route("/v1beta/models/{target}", self._generate_content_endpoint, methods=["POST"]),
        ]
        middleware = []
        if self._config.cors:
            middleware.append(
                Middleware(
                    CORSMiddleware,
                    allow_origins=["*"],
                    allow_methods=["GET", "POST", "OPTIONS"],
                    allow_headers=_CORS_HEADERS,
                )
            )
        return Starlette(
            debug=False,
            routes=routes,
            middleware=middleware,
            exception_handlers={
                404: self._not_found_handler,
                405: self._method_not_allowed_handler,
            },
        )

    @property
    def app(self) -> Starlette:
        """Get the Starlette ASGI application."""
        return self._app

    @property
    def config(self) -> NullModelConfig:
        return self._config

    def update_config(self, updates: dict[str, Any]) -> None:
        """Update server configuration at runtime.

        Args:
            updates: Partial config dict (e.g. {"chaos": {"enabled": True}}),
                deep-merged over the current configuration and re-validated.
        """
        merged = deep_merge(self._config.model_dump(), updates)
        self._config = NullModelConfig.model_validate(merged)
        self._build_components()

    def _get_current_config(self) -> dict[str, Any]:
        """Get the runtime-relevant configuration sections as a dict."""
        return {
            "latency": self._config.latency.model_dump(),
            "defaults": self._config.defaults.model_dump(),
            "chaos": self._config.chaos.model_dump(),
            "preset": self._config.preset_name,
        }

    # === Endpoint handlers ===

    async def _health_endpoint(self, request: Request) -> JSONResponse:
        """Handle GET / and GET /health."""
        return JSONResponse(
            {
                "status": "ok",
                "service": SERVICE_NAME,
                "version": __version__,
                "uptime_sec": round(time.monotonic() - self._started, 3),
                "chaos": "enabled" if self._config.chaos.enabled else "disabled",
            }
        )

    async def _personas_endpoint(self, request: Request) -> JSONResponse:
        """Handle GET /personas."""
        return JSONResponse({"personas": list_personas()})

    async def _config_endpoint(self, request: Request) -> JSONResponse:
        """Handle GET /config."""
        return JSONResponse(self._get_current_config())

    async def _chat_completions_endpoint(self, request: Request) -> Response:
        """Handle POST /v1/chat/completions (OpenAI format)."""
        return await self._handle_completion_request(request, Provider.OPENAI)

    async def _messages_endpoint(self, request: Request) -> Response:
        """Handle POST /v1/messages (Anthropic format)."""
        return await self._handle_completion_request(request, Provider.ANTHROPIC)

    async def _generate_content_endpoint(self, request: Request) -> Response:
        """Handle POST /v1beta/models/{model}:generateContent and :streamGenerateContent."""
        target = request.path_params["target"]
        model, _, action = target.rpartition(":")
        if not model or action not in _GEMINI_ACTIONS:
            return self._unknown_endpoint(request)
        return await self._handle_completion_request(
            request,
            Provider.GEMINI,
            model=model,
            stream=_GEMINI_ACTIONS[action],
        )

    async def _not_found_handler(self, request: Request, exc: Exception) -> Response:
        return self._unknown_endpoint(request)

    async def _method_not_allowed_handler(self, request: Request, exc: Exception) -> Response:
        headers = exc.headers if isinstance(exc, HTTPException) else None
        return JSONResponse({"error": "Method not allowed"}, status_code=405, headers=headers)

    def _unknown_endpoint(self, request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "error": f"Unknown endpoint: {request.url.path}",
                "hint": UNKNOWN_ENDPOINT_HINT,
            },
            status_code=404,
        )

    # === Request handling ===

    async def _read_body(self, request: Request) -> dict[str, Any]:
        """Parse the request body; an empty body counts as ``{}``."""
        raw = await request.body()
        if not raw.strip():
            return {}
        try:
            body = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidRequestBody(str(exc)) from exc
        if not isinstance(body, dict):
            raise InvalidRequestBody(f"expected a JSON object, got {type(body).__name__}")
        return body

    async def _handle_completion_request(
        self,
        request: Request,
        provider: Provider,
        *,
        model: str | None = None,
        stream: bool | None = None,
    ) -> Response:
        """Handle a completion request for any provider.

        Request flow:
        1. Parse body (400 on malformed JSON)
        2. Decide fault outcome (error short-circuits, slowdown scales latency)
        3. Select persona content; translate error sentinels into faults
        4. Render one document, or stream paced frames
        """
        try:
            body = await self._read_body(request)
        except InvalidRequestBody as exc:
            logger.warning("Malformed request body", provider=provider, path=request.url.path, error=str(exc))
            return JSONResponse(
                {"error": {"message": "Invalid JSON body", "type": "invalid_request_error"}},
                status_code=400,
            )

        try:
            return await self._complete(request, provider, body, model=model, stream=stream)
        except Exception as exc:
            logger.exception("Internal error while rendering response", provider=provider, path=request.url.path)
            return JSONResponse(
                {"error": "Internal nullmodel error", "message": str(exc)},
                status_code=500,
            )

    async def _complete(
        self,
        request: Request,
        provider: Provider,
        body: dict[str, Any],
        *,
        model: str | None,
        stream: bool | None,
    ) -> Response:
        if model is None:
            requested_model = body.get("model")
            model = requested_model if isinstance(requested_model, str) else None
        if stream is None:
            stream = body.get("stream") is True

        logger.debug("Request received", provider=provider, model=model, stream=stream)

        fault = self._fault_injector.decide()
        latency = self._latency_simulator
        if fault is FaultKind.SLOWDOWN:
            multiplier = self._config.chaos.slowdown_multiplier
            logger.info("Fault injected", source="chaos", fault=fault, provider=provider, multiplier=multiplier)
            latency = latency.slowed(multiplier)
        elif fault.is_error:
            logger.info("Fault injected", source="chaos", fault=fault, provider=provider)
            return self._fault_response(render_fault(fault, provider))

        persona = resolve_persona(body.get(PERSONA_FIELD), fallback=self._config.defaults.persona)
        content = self._content_selector.select(persona, wants_tool_call=wants_tool_call(body, persona))

        text = completion_text(content)
        sentinel_kind = parse_error_sentinel(text)
        if sentinel_kind is not None:
            logger.info("Fault injected", source="persona", fault=sentinel_kind, provider=provider, persona=persona.name)
            return self._fault_response(render_fault(sentinel_kind, provider))

        prompt_field = "contents" if provider is Provider.GEMINI else "messages"
        prompt = body.get(prompt_field) or []
        usage = UsageCounts(
            input_tokens=estimate_tokens(encode_json(prompt)),
            output_tokens=estimate_tokens(text),
        )

        emitter = self._emitters[provider]
        session = emitter.start_session(model=model, content=content, usage=usage)

        if not stream:
            await self._sleep(latency.first_token_delay())
            return JSONResponse(emitter.render(session))

        return self._stream_response(request, emitter, latency, session)

    def _stream_response(
        self,
        request: Request,
        emitter: ProtocolEmitter,
        latency: LatencySimulator,
        session: StreamSession,
    ) -> StreamingResponse:
        orchestrator = StreamOrchestrator(
            emitter,
            latency,
            sleep=self._sleep,
            is_disconnected=request.is_disconnected,
        )
        orchestrator.prepare(session)
        return StreamingResponse(
            orchestrator.run(session),
            media_type="text/event-stream",
            headers={**_STREAM_HEADERS, "X-Request-Id": generate_id("req_", self._rng)},
        )

    def _fault_response(self, fault: FaultResponse) -> JSONResponse:
        return JSONResponse(fault.body, status_code=fault.status_code, headers=fault.headers)


def create_app(config: NullModelConfig) -> Starlette:
    """Create a Starlette ASGI application from config.

    This is a convenience function for simple use cases. For more control
    over the server (runtime config updates, injected random source), use
    the NullModelServer class directly.

    Args:
        config: nullmodel configuration

    Returns:
        Starlette ASGI application
    """
    server = NullModelServer(config)
    server.app.state.server = server
    return server.app


def app_from_environment() -> Starlette:
    """App factory for multi-worker uvicorn.

    Worker processes cannot receive a config object, so the CLI passes the
    validated configuration as JSON in ``NULLMODEL_CONFIG_JSON``.
    """
    raw = os.environ.get(CONFIG_ENV_VAR)
    config = NullModelConfig.model_validate_json(raw) if raw else NullModelConfig()
    configure_logging(json_output=config.logging.json_output, level=config.logging.level)
    return create_app(config)
