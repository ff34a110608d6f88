# src/nullmodel/content.py
"""Content selection for a single request.

The ContentSelector turns a persona into the concrete `ResponseContent` that
every protocol emitter renders. ResponseContent is a tagged variant: either a
plain text body, or a narration text paired with one tool call.
"""

import json
import random as random_module
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from nullmodel.personas import TOOL_CALL_PERSONA, PersonaDefinition, ToolCallVariant

ERROR_SENTINEL_PREFIX = "__ERROR__:"


@dataclass(frozen=True, slots=True)
class TextContent:
    """A plain text completion."""

    body: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True, slots=True)
class ToolCallContent:
    """A tool call plus the narration text that accompanies it."""

    text: str
    call: ToolCallVariant
    kind: Literal["tool_call"] = "tool_call"

    @property
    def arguments_json(self) -> str:
        """Serialized arguments, as streamed by chat-completion style APIs."""
        return json.dumps(dict(self.call.arguments), separators=(",", ":"), ensure_ascii=False)


ResponseContent: TypeAlias = TextContent | ToolCallContent


def completion_text(content: ResponseContent) -> str:
    """Text used for output usage estimates (body or narration)."""
    match content:
        case TextContent(body=body):
            return body
        case ToolCallContent(text=text):
            return text


def parse_error_sentinel(text: str) -> str | None:
    """Return the fault kind encoded as ``__ERROR__:<kind>``, or None."""
    if not text.startswith(ERROR_SENTINEL_PREFIX):
        return None
    return text[len(ERROR_SENTINEL_PREFIX) :]


def wants_tool_call(body: dict[str, Any], persona: PersonaDefinition) -> bool:
    """Whether the request signals tool use (declared tools or the tool persona)."""
    tools = body.get("tools")
    return persona.name == TOOL_CALL_PERSONA or (isinstance(tools, list) and len(tools) > 0)


class ContentSelector:
    """Picks one content variant per request.

    Usage:
        selector = ContentSelector(rng=random.Random(7))
        content = selector.select(resolve_persona("tool_calls"), wants_tool_call=True)
    """

    def __init__(self, *, rng: random_module.Random | None = None) -> None:
        """Initialize the selector.

        Args:
            rng: Random instance for deterministic testing
        """
        self._rng = rng if rng is not None else random_module.Random()

    def select(self, persona: PersonaDefinition, *, wants_tool_call: bool) -> ResponseContent:
        """Select content from a persona.

        When tool use is requested and the persona defines tool calls, one
        index is drawn and the text and tool call at that index are returned
        together so the narration always matches the tool invoked.
        """
        if wants_tool_call and persona.has_tool_calls:
            index = self._rng.randrange(len(persona.tool_calls))
            return ToolCallContent(text=persona.responses[index], call=persona.tool_calls[index])
        return TextContent(body=self._rng.choice(persona.responses))
