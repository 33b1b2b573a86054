"""
Conversation history for one workflow run.

The history is the literal context sent to every downstream call, so order
matters and entries never change once recorded. Each run owns its own
history; nothing here is shared between requests.
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant", "tool"]


class ContentPart(BaseModel):
    """One piece of message content. The core only produces input_text."""

    model_config = ConfigDict(frozen=True)

    type: str = "input_text"
    text: str = ""


class MessageItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: tuple[ContentPart, ...] = ()

    @classmethod
    def user_text(cls, text: str) -> "MessageItem":
        return cls(role="user", content=(ContentPart(type="input_text", text=text),))

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.content)


class ConversationHistory:
    """Ordered, append-only sequence of MessageItem."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[MessageItem] = ()) -> None:
        self._items: tuple[MessageItem, ...] = tuple(items)

    def extend(self, items: Iterable[MessageItem]) -> "ConversationHistory":
        """Return a history with ``items`` appended after the existing entries."""
        return ConversationHistory(self._items + tuple(items))

    def items(self) -> tuple[MessageItem, ...]:
        return self._items

    def as_input(self) -> list[dict[str, Any]]:
        """Plain dicts, in order, for the completion service."""
        return [item.model_dump(mode="json") for item in self._items]

    def __iter__(self) -> Iterator[MessageItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> MessageItem:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConversationHistory):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"ConversationHistory({len(self._items)} items)"


def append_history(current: Any, new_items: Any) -> ConversationHistory:
    """LangGraph reducer for the history channel: append, never replace."""
    base = current if isinstance(current, ConversationHistory) else ConversationHistory(current or ())
    if isinstance(new_items, MessageItem):
        new_items = (new_items,)
    updated = base.extend(new_items or ())
    logger.debug("[history:append] %d -> %d items", len(base), len(updated))
    return updated
