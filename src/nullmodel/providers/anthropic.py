# src/nullmodel/providers/anthropic.py
"""Anthropic messages emitter (/v1/messages).

Streams named events in the nesting order the SDK expects:
message_start, then per block content_block_start, content_block_delta...,
content_block_stop, then message_delta (stop reason and output usage) and
message_stop. Tool use adds a second block at index 1 whose input is
streamed as partial JSON fragments of at most twelve characters.
"""

from typing import Any

from nullmodel.content import TextContent, ToolCallContent, completion_text
from nullmodel.providers.base import Frame, ProtocolEmitter, StreamSession, sse_event
from nullmodel.tokenizer import segment
from nullmodel.types import Provider

TEXT_BLOCK_INDEX = 0
TOOL_BLOCK_INDEX = 1


class AnthropicEmitter(ProtocolEmitter):
    """Renders message documents and named-event message streams."""

    provider = Provider.ANTHROPIC
    default_model = "claude-sonnet-4-20250514"
    response_id_prefix = "msg_"
    tool_call_id_prefix = "toolu_"
    argument_chunk_size = 12

    def _stop_reason(self, session: StreamSession) -> str:
        return "tool_use" if isinstance(session.content, ToolCallContent) else "end_turn"

    def _event(self, event: str, **fields: Any) -> bytes:
        return sse_event(event, {"type": event, **fields})

    def _text_block_frames(self, text: str) -> list[Frame]:
        frames = [
            Frame(
                self._event(
                    "content_block_start",
                    index=TEXT_BLOCK_INDEX,
                    content_block={"type": "text", "text": ""},
                ),
                paced=False,
            )
        ]
        for token in segment(text):
            frames.append(
                Frame(
                    self._event(
                        "content_block_delta",
                        index=TEXT_BLOCK_INDEX,
                        delta={"type": "text_delta", "text": token},
                    )
                )
            )
        frames.append(Frame(self._event("content_block_stop", index=TEXT_BLOCK_INDEX), paced=False))
        return frames

    def render(self, session: StreamSession) -> dict[str, Any]:
        blocks: list[dict[str, Any]] = [{"type": "text", "text": completion_text(session.content)}]
        if isinstance(session.content, ToolCallContent):
            blocks.append(
                {
                    "type": "tool_use",
                    "id": session.tool_call_id,
                    "name": session.content.call.name,
                    "input": dict(session.content.call.arguments),
                }
            )
        return {
            "id": session.response_id,
            "type": "message",
            "role": "assistant",
            "model": session.model,
            "content": blocks,
            "stop_reason": self._stop_reason(session),
            "stop_sequence": None,
            "usage": {
                "input_tokens": session.usage.input_tokens,
                "output_tokens": session.usage.output_tokens,
            },
        }

    def opening(self, session: StreamSession) -> list[bytes]:
        message = {
            "id": session.response_id,
            "type": "message",
            "role": "assistant",
            "model": session.model,
            "content": [],
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": session.usage.input_tokens, "output_tokens": 0},
        }
        return [self._event("message_start", message=message)]

    def body(self, session: StreamSession) -> list[Frame]:
        frames = self._text_block_frames(completion_text(session.content))
        match session.content:
            case ToolCallContent() as content:
                frames.append(
                    Frame(
                        self._event(
                            "content_block_start",
                            index=TOOL_BLOCK_INDEX,
                            content_block={
                                "type": "tool_use",
                                "id": session.tool_call_id,
                                "name": content.call.name,
                                "input": {},
                            },
                        ),
                        paced=False,
                    )
                )
                for fragment in self.argument_chunks(content):
                    frames.append(
                        Frame(
                            self._event(
                                "content_block_delta",
                                index=TOOL_BLOCK_INDEX,
                                delta={"type": "input_json_delta", "partial_json": fragment},
                            )
                        )
                    )
                frames.append(Frame(self._event("content_block_stop", index=TOOL_BLOCK_INDEX), paced=False))
            case TextContent():
                pass
        return frames

    def closing(self, session: StreamSession) -> list[bytes]:
        return [
            self._event(
                "message_delta",
                delta={"stop_reason": self._stop_reason(session), "stop_sequence": None},
                usage={"output_tokens": session.usage.output_tokens},
            ),
            self._event("message_stop"),
        ]
