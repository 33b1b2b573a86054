"""
Agent LLM: completion service used identically by the classifier and every responder.

Backed by the OpenAI Responses API (AsyncOpenAI). A run takes a descriptor and
the full conversation history and returns the final output plus every item the
model produced, converted to MessageItem so it can be appended to history.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from app.core.config import LLM_API_TIMEOUT, OPENAI_API_KEY
from app.core.errors import ServiceUnavailableError
from app.core.history import ContentPart, ConversationHistory, MessageItem
from app.core.tracing import current_trace

if TYPE_CHECKING:
    from app.agent.responders import ResponderDescriptor

logger = logging.getLogger(__name__)

# model_settings keys forwarded to responses.create unchanged
FORWARDED_SETTINGS = ("temperature", "top_p", "max_output_tokens", "reasoning", "store")


@dataclass
class CompletionResult:
    final_output: Any = None
    new_items: tuple[MessageItem, ...] = field(default_factory=tuple)


class LanguageModelCompletionService(Protocol):
    async def run(self, descriptor: "ResponderDescriptor", history: ConversationHistory) -> CompletionResult: ...


def _to_input(history: ConversationHistory) -> list[dict[str, Any]]:
    """Map history to Responses API input. Tool items stay in history but are not resent."""
    out: list[dict[str, Any]] = []
    for item in history:
        if item.role == "user":
            parts = [{"type": "input_text", "text": p.text} for p in item.content if p.type == "input_text"]
            if parts:
                out.append({"role": "user", "content": parts})
        elif item.role == "assistant":
            text = "".join(p.text for p in item.content if p.type == "output_text")
            if text:
                out.append({"role": "assistant", "content": text})
    return out


def _items_from_output(output: Any) -> tuple[MessageItem, ...]:
    items: list[MessageItem] = []
    for raw in output or []:
        kind = getattr(raw, "type", None)
        if kind == "message":
            parts = tuple(
                ContentPart(type="output_text", text=getattr(c, "text", "") or "")
                for c in getattr(raw, "content", None) or []
                if getattr(c, "type", None) == "output_text"
            )
            items.append(MessageItem(role="assistant", content=parts))
        elif kind == "file_search_call":
            queries = getattr(raw, "queries", None) or []
            items.append(
                MessageItem(role="tool", content=(ContentPart(type="file_search_call", text="; ".join(queries)),))
            )
        elif kind == "reasoning":
            summary = " ".join(getattr(s, "text", "") or "" for s in getattr(raw, "summary", None) or [])
            items.append(MessageItem(role="assistant", content=(ContentPart(type="reasoning", text=summary),)))
        else:
            logger.debug("[llm:openai] skipping output item type=%r", kind)
    return tuple(items)


class OpenAICompletionService:
    """LanguageModelCompletionService over client.responses.create."""

    def __init__(self, client: Any = None, timeout: float = LLM_API_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    @property
    def client(self) -> Any:
        if self._client is None:
            if not OPENAI_API_KEY:
                raise ServiceUnavailableError("OPENAI_API_KEY is not set; the agent LLM is unavailable")
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=OPENAI_API_KEY, timeout=self._timeout)
        return self._client

    async def run(self, descriptor: "ResponderDescriptor", history: ConversationHistory) -> CompletionResult:
        logger.info("[llm:openai] IN  agent=%r model=%s history_len=%d", descriptor.name, descriptor.model, len(history))
        kwargs: dict[str, Any] = {
            "model": descriptor.model,
            "instructions": descriptor.instructions,
            "input": _to_input(history),
        }
        for key in FORWARDED_SETTINGS:
            if key in descriptor.model_settings:
                kwargs[key] = descriptor.model_settings[key]
        if descriptor.tools:
            kwargs["tools"] = [dict(t) for t in descriptor.tools]
        if descriptor.output_schema is not None:
            kwargs["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": descriptor.output_schema_name,
                    "schema": descriptor.output_schema,
                    "strict": True,
                }
            }
        active = current_trace()
        if active is not None:
            kwargs["metadata"] = active.request_metadata()

        response = await self.client.responses.create(**kwargs)
        items = _items_from_output(getattr(response, "output", None))
        text = (getattr(response, "output_text", None) or "").strip()
        logger.info("[llm:openai] OUT agent=%r items=%d output_len=%d", descriptor.name, len(items), len(text))

        if not text:
            return CompletionResult(final_output=None, new_items=items)
        if descriptor.output_schema is None:
            return CompletionResult(final_output=text, new_items=items)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("[llm:openai] agent=%r returned unparseable structured output", descriptor.name)
            parsed = None
        return CompletionResult(final_output=parsed, new_items=items)
