# src/nullmodel/providers/openai.py
"""OpenAI chat completions emitter (/v1/chat/completions).

Streaming wire shape::

    data: {"object":"chat.completion.chunk", ... "delta":{"role":"assistant","content":""}}
    data: {... "delta":{"content":"Hello"}}
    ...
    data: {... "delta":{},"finish_reason":"stop"}], "usage":{...}}
    data: [DONE]

Tool calls replace the content deltas with one header chunk naming the
function, then argument fragments of at most eight characters.
"""

from typing import Any

from nullmodel.content import TextContent, ToolCallContent
from nullmodel.providers.base import DONE_FRAME, Frame, ProtocolEmitter, StreamSession, sse_data
from nullmodel.tokenizer import segment
from nullmodel.types import Provider


class OpenAIEmitter(ProtocolEmitter):
    """Renders chat.completion documents and chat.completion.chunk streams."""

    provider = Provider.OPENAI
    default_model = "gpt-4"
    response_id_prefix = "chatcmpl-"
    tool_call_id_prefix = "call_"
    argument_chunk_size = 8

    def _usage(self, session: StreamSession) -> dict[str, int]:
        return {
            "prompt_tokens": session.usage.input_tokens,
            "completion_tokens": session.usage.output_tokens,
            "total_tokens": session.usage.total_tokens,
        }

    def _finish_reason(self, session: StreamSession) -> str:
        return "tool_calls" if isinstance(session.content, ToolCallContent) else "stop"

    def _chunk(
        self,
        session: StreamSession,
        delta: dict[str, Any],
        finish_reason: str | None = None,
    ) -> dict[str, Any]:
        return {
            "id": session.response_id,
            "object": "chat.completion.chunk",
            "created": session.created,
            "model": session.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": finish_reason,
                }
            ],
        }

    def render(self, session: StreamSession) -> dict[str, Any]:
        match session.content:
            case ToolCallContent() as content:
                message: dict[str, Any] = {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": session.tool_call_id,
                            "type": "function",
                            "function": {
                                "name": content.call.name,
                                "arguments": content.arguments_json,
                            },
                        }
                    ],
                }
            case TextContent(body=body):
                message = {"role": "assistant", "content": body}

        return {
            "id": session.response_id,
            "object": "chat.completion",
            "created": session.created,
            "model": session.model,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "finish_reason": self._finish_reason(session),
                }
            ],
            "usage": self._usage(session),
        }

    def opening(self, session: StreamSession) -> list[bytes]:
        return [sse_data(self._chunk(session, {"role": "assistant", "content": ""}))]

    def body(self, session: StreamSession) -> list[Frame]:
        match session.content:
            case ToolCallContent() as content:
                header = {
                    "tool_calls": [
                        {
                            "index": 0,
                            "id": session.tool_call_id,
                            "type": "function",
                            "function": {"name": content.call.name, "arguments": ""},
                        }
                    ]
                }
                frames = [Frame(sse_data(self._chunk(session, header)), paced=False)]
                for fragment in self.argument_chunks(content):
                    delta = {"tool_calls": [{"index": 0, "function": {"arguments": fragment}}]}
                    frames.append(Frame(sse_data(self._chunk(session, delta))))
                return frames
            case TextContent(body=body):
                return [Frame(sse_data(self._chunk(session, {"content": token}))) for token in segment(body)]

    def closing(self, session: StreamSession) -> list[bytes]:
        final = self._chunk(session, {}, self._finish_reason(session))
        if isinstance(session.content, TextContent):
            final["usage"] = self._usage(session)
        return [sse_data(final), DONE_FRAME]
