# src/nullmodel/providers/gemini.py
"""Gemini generateContent emitter (/v1beta/models/{model}:generateContent).

Gemini streams have no opening or closing frames. Each frame is a miniature
response document carrying one text part; only the last one adds the finish
reason, safety ratings and usage metadata. Function calls are never split:
the real API delivers them whole, so the stream is a single complete frame.
"""

from typing import Any

from nullmodel.content import TextContent, ToolCallContent
from nullmodel.providers.base import Frame, ProtocolEmitter, StreamSession, sse_data
from nullmodel.tokenizer import segment
from nullmodel.types import Provider

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def safety_ratings() -> list[dict[str, str]]:
    return [{"category": category, "probability": "NEGLIGIBLE"} for category in SAFETY_CATEGORIES]


class GeminiEmitter(ProtocolEmitter):
    """Renders generateContent documents and streamGenerateContent frames."""

    provider = Provider.GEMINI
    default_model = "gemini-2.0-flash"
    response_id_prefix = "resp_"
    tool_call_id_prefix = "call_"
    argument_chunk_size = 0  # function calls are delivered whole

    def _usage_metadata(self, session: StreamSession) -> dict[str, int]:
        return {
            "promptTokenCount": session.usage.input_tokens,
            "candidatesTokenCount": session.usage.output_tokens,
            "totalTokenCount": session.usage.total_tokens,
        }

    def _parts(self, session: StreamSession) -> list[dict[str, Any]]:
        match session.content:
            case ToolCallContent(call=call):
                return [{"functionCall": {"name": call.name, "args": dict(call.arguments)}}]
            case TextContent(body=body):
                return [{"text": body}]

    def _finish_reason(self, session: StreamSession) -> str:
        return "TOOL_CALLS" if isinstance(session.content, ToolCallContent) else "STOP"

    def _document(self, session: StreamSession, parts: list[dict[str, Any]], *, final: bool) -> dict[str, Any]:
        candidate: dict[str, Any] = {"content": {"parts": parts, "role": "model"}}
        if final:
            candidate["finishReason"] = self._finish_reason(session)
        candidate["index"] = 0
        if final:
            candidate["safetyRatings"] = safety_ratings()

        document: dict[str, Any] = {"candidates": [candidate]}
        if final:
            document["usageMetadata"] = self._usage_metadata(session)
        document["modelVersion"] = session.model
        return document

    def render(self, session: StreamSession) -> dict[str, Any]:
        return self._document(session, self._parts(session), final=True)

    def opening(self, session: StreamSession) -> list[bytes]:
        return []

    def body(self, session: StreamSession) -> list[Frame]:
        match session.content:
            case ToolCallContent():
                return [Frame(sse_data(self.render(session)), paced=False)]
            case TextContent(body=body):
                # Empty text still gets one terminal frame.
                tokens = segment(body) or [""]
                last = len(tokens) - 1
                return [
                    Frame(sse_data(self._document(session, [{"text": token}], final=i == last)))
                    for i, token in enumerate(tokens)
                ]

    def closing(self, session: StreamSession) -> list[bytes]:
        return []
