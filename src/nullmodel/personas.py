# src/nullmodel/personas.py
"""Built-in response personas.

Each persona is a static bag of canned content that exercises one category of
client-side rendering: short replies, long scrolling replies, code blocks,
markdown tables, tool calls and error states.

The catalog is an immutable mapping built once at import time. Lookups go
through `resolve_persona()`, which never fails: unknown names fall back to the
configured default and then to the built-in `balanced` persona.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

DEFAULT_PERSONA = "balanced"
TOOL_CALL_PERSONA = "tool_calls"
ERROR_PERSONA = "error_prone"


@dataclass(frozen=True, slots=True)
class ToolCallVariant:
    """A canned function call: tool name plus its argument object."""

    name: str
    arguments: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class PersonaDefinition:
    """A named response profile.

    Attributes:
        name: Unique catalog key
        description: One-line summary shown by /personas and the CLI
        responses: Text variants
        tool_calls: Tool-call variants, paired by index with ``responses``
    """

    name: str
    description: str
    responses: tuple[str, ...]
    tool_calls: tuple[ToolCallVariant, ...] = ()

    def __post_init__(self) -> None:
        if not self.responses:
            raise ValueError(f"Persona '{self.name}' must define at least one response")
        if self.tool_calls and len(self.tool_calls) != len(self.responses):
            raise ValueError(
                f"Persona '{self.name}' pairs tool calls with responses by index: "
                f"got {len(self.tool_calls)} tool calls for {len(self.responses)} responses"
            )

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


_BALANCED = PersonaDefinition(
    name="balanced",
    description="Medium-length, natural responses with light formatting",
    responses=(
        "Good question. The short version is that you want a clear boundary between "
        "fetching data and presenting it.\n\nStart with the happy path and get it solid. "
        "Once that works end to end, add handling for timeouts, partial results and "
        "malformed input one case at a time. Trying to cover everything up front usually "
        "produces code nobody wants to touch.",
        "Here is how I would approach it.\n\nFirst, keep your loading state separate from "
        "your data state. When they share a flag, every new edge case turns into another "
        "special branch. Second, make state transitions explicit so a reader can follow "
        "what happens after each event.\n\nWith those two habits the UI becomes much easier "
        "to predict.",
        "There are two reasonable options here.\n\nYou can call the API on every interaction, "
        "which is simple but gets slow under load. Or you can batch requests and process "
        "them in the background, which scales better but complicates error reporting.\n\n"
        "I would start with the simple version and measure before reaching for batching.",
    ),
)

_VERBOSE = PersonaDefinition(
    name="verbose",
    description="Long, detailed responses for scroll, overflow and rendering performance",
    responses=(
        "This deserves a thorough answer, so let me walk through it in stages.\n\n"
        "## Background\n\n"
        "The pattern you describe grew out of message passing between loosely coupled "
        "services. The core idea is old: separate the producer of work from the consumer "
        "so each side can scale, deploy and fail independently. Unix pipes did this decades "
        "ago; modern brokers do the same thing with more moving parts.\n\n"
        "## Options\n\n"
        "1. **Event-driven.** Services publish events and others react. Coupling is low, "
        "but tracing a single request through the system gets hard.\n\n"
        "2. **Request/response with queues.** Easier to reason about, at the cost of some "
        "flexibility.\n\n"
        "3. **Hybrid.** Synchronous on the critical path, asynchronous everywhere else. Most "
        "production systems end up here eventually.\n\n"
        "## Recommendation\n\n"
        "Given your constraints I would go with the hybrid approach:\n\n"
        "- The user-facing path needs a fast synchronous answer.\n"
        "- Analytics, indexing and notifications can happily lag by a few seconds.\n"
        "- Splitting them lets you tune each path on its own terms.\n\n"
        "Concretely, the gateway answers the request, then drops a message on a queue for "
        "everything downstream. Users see low latency and the slow work happens out of band.\n\n"
        "## Pitfalls\n\n"
        "- **Backpressure.** If consumers fall behind, queues grow without bound. Add "
        "dead-letter queues and alerts on queue depth early.\n"
        "- **Idempotency.** Messages will be delivered more than once. Consumers must "
        "tolerate duplicates.\n"
        "- **Tracing.** Propagate a correlation id through every hop or debugging becomes "
        "guesswork.\n\n"
        "That is a lot to take in, but getting these basics right early saves a great deal "
        "of pain later. Happy to go deeper on any of these areas.",
    ),
)

_TERSE = PersonaDefinition(
    name="terse",
    description="Very short responses for compact UI states",
    responses=(
        "Yes.",
        "No, use a dict instead.",
        "42.",
        "Wrap it in a try/except and log the failure.",
        "That's a bug.",
        "Correct.",
    ),
)

_CODE = PersonaDefinition(
    name="code",
    description="Code-heavy responses for syntax highlighting and code blocks",
    responses=(
        "Here's a small streaming client:\n\n"
        "```python\n"
        "import json\n\n"
        "import httpx\n\n\n"
        "def stream_completion(prompt: str, base_url: str = \"http://localhost:4000\"):\n"
        "    body = {\n"
        "        \"model\": \"gpt-4\",\n"
        "        \"stream\": True,\n"
        "        \"messages\": [{\"role\": \"user\", \"content\": prompt}],\n"
        "    }\n"
        "    with httpx.stream(\"POST\", f\"{base_url}/v1/chat/completions\", json=body) as response:\n"
        "        response.raise_for_status()\n"
        "        for line in response.iter_lines():\n"
        "            if not line.startswith(\"data: \"):\n"
        "                continue\n"
        "            payload = line[len(\"data: \"):]\n"
        "            if payload == \"[DONE]\":\n"
        "                return\n"
        "            delta = json.loads(payload)[\"choices\"][0][\"delta\"]\n"
        "            if delta.get(\"content\"):\n"
        "                yield delta[\"content\"]\n"
        "```\n\n"
        "The generator stops at the `[DONE]` sentinel, and closing the context manager "
        "is how you implement a stop button.",
        "Quick retry helper with exponential backoff:\n\n"
        "```python\n"
        "import time\n\n\n"
        "def retry(fn, attempts=3, base_delay=0.5):\n"
        "    for attempt in range(attempts):\n"
        "        try:\n"
        "            return fn()\n"
        "        except Exception:\n"
        "            if attempt == attempts - 1:\n"
        "                raise\n"
        "            time.sleep(base_delay * 2**attempt)\n"
        "```\n\n"
        "Tune `attempts` and `base_delay` to taste.",
    ),
)

_MARKDOWN = PersonaDefinition(
    name="markdown",
    description="Rich markdown with tables, lists and emphasis",
    responses=(
        "# Streaming Transports Compared\n\n"
        "| Transport | Latency | Complexity | Support |\n"
        "|-----------|---------|------------|---------|\n"
        "| **SSE** | Low | Low | ✅ All modern browsers |\n"
        "| **WebSocket** | Very low | Medium | ✅ All modern browsers |\n"
        "| **Long polling** | Medium | Low | ✅ Universal |\n"
        "| **WebTransport** | Very low | High | ⚠️ Limited |\n\n"
        "## Takeaways\n\n"
        "- **SSE is the default choice** for one-way token streaming.\n"
        "- **WebSockets** pay off when the client also streams to the server.\n"
        "- **Long polling** is the fallback for hostile proxies.\n\n"
        "> **Tip:** plan for reconnection. `EventSource` retries on its own, a raw "
        "`fetch` stream does not.\n\n"
        "### Decision list\n\n"
        "1. Server to client only? Use **SSE**.\n"
        "2. Bidirectional? Use **WebSocket**.\n"
        "3. Behind a proxy that kills idle connections? Use **long polling**.\n\n"
        "---\n\n"
        "*Compression (`gzip` or `brotli`) helps every option on token-heavy payloads.*",
    ),
)

_TOOL_CALLS = PersonaDefinition(
    name=TOOL_CALL_PERSONA,
    description="Tool/function call responses for tool call UI rendering",
    responses=(
        "Let me check the current weather for you.",
        "I'll search the order database for that.",
        "I'll create that document now.",
    ),
    tool_calls=(
        ToolCallVariant(
            name="get_weather",
            arguments={"location": "San Francisco, CA", "unit": "celsius"},
        ),
        ToolCallVariant(
            name="search_database",
            arguments={"query": "recent orders", "limit": 10, "status": "pending"},
        ),
        ToolCallVariant(
            name="create_document",
            arguments={
                "title": "Q4 Planning Notes",
                "content": "Initial draft for Q4 planning...",
                "tags": ["planning", "q4", "2025"],
            },
        ),
    ),
)

_ERROR_PRONE = PersonaDefinition(
    name=ERROR_PERSONA,
    description="Mostly provider errors, for error UI handling",
    responses=(
        "__ERROR__:rate_limit",
        "__ERROR__:context_length",
        "__ERROR__:server_error",
        "__ERROR__:timeout",
        "This response works fine though.",
    ),
)

PERSONAS: Mapping[str, PersonaDefinition] = MappingProxyType(
    {
        persona.name: persona
        for persona in (
            _BALANCED,
            _VERBOSE,
            _TERSE,
            _CODE,
            _MARKDOWN,
            _TOOL_CALLS,
            _ERROR_PRONE,
        )
    }
)


def resolve_persona(hint: object, fallback: str = DEFAULT_PERSONA) -> PersonaDefinition:
    """Look up a persona by name.

    ``hint`` comes straight from the request body, so anything that is not a
    known persona name (including non-strings) resolves to ``fallback``; an
    unknown fallback resolves to the built-in default. Never raises.
    """
    if isinstance(hint, str) and hint in PERSONAS:
        return PERSONAS[hint]
    if fallback in PERSONAS:
        return PERSONAS[fallback]
    return PERSONAS[DEFAULT_PERSONA]


def list_personas() -> list[dict[str, str]]:
    """Summarize the catalog as name/description pairs."""
    return [{"name": name, "description": persona.description} for name, persona in PERSONAS.items()]
