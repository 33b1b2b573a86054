"""
Responder registry and dispatcher.

The registry maps every classifier label to a responder, or explicitly to None
when no responder is wired for that label. Coverage is checked when the
registry is built, so dispatch never meets an unknown label at request time.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from app.agent.llm import LanguageModelCompletionService
from app.core.errors import RegistryCoverageError, ResponderOutputMissing
from app.core.history import ConversationHistory, MessageItem
from app.schemas.workflow import ResponderOutput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponderDescriptor:
    """A named capability: model, instructions, tools, and model parameters."""

    name: str
    instructions: str
    model: str
    tools: tuple[Mapping[str, Any], ...] = ()
    model_settings: Mapping[str, Any] = field(default_factory=dict)
    output_schema: Mapping[str, Any] | None = None
    output_schema_name: str = "output"


class ResponderRegistry:
    def __init__(self, labels: Iterable[str], entries: Mapping[str, ResponderDescriptor | None]) -> None:
        labels = tuple(labels)
        if not labels:
            raise RegistryCoverageError("label set is empty")
        if len(set(labels)) != len(labels):
            raise RegistryCoverageError(f"duplicate labels: {labels}")
        missing = [label for label in labels if label not in entries]
        unknown = [label for label in entries if label not in labels]
        if missing or unknown:
            raise RegistryCoverageError(f"registry does not cover labels exactly: missing={missing} unknown={unknown}")
        self.labels = labels
        self._entries = MappingProxyType({label: entries[label] for label in labels})

    def get(self, label: str) -> ResponderDescriptor | None:
        return self._entries.get(label)

    def has_responder(self, label: str) -> bool:
        return self._entries.get(label) is not None

    def entries(self) -> Mapping[str, ResponderDescriptor | None]:
        return self._entries

    def __contains__(self, label: object) -> bool:
        return label in self._entries


@dataclass(frozen=True)
class DispatchOutcome:
    output: ResponderOutput
    items: tuple[MessageItem, ...]
    responder: str


class Dispatcher:
    def __init__(self, registry: ResponderRegistry, completion: LanguageModelCompletionService) -> None:
        self.registry = registry
        self.completion = completion

    def has_responder(self, label: str) -> bool:
        return self.registry.has_responder(label)

    async def dispatch(self, label: str, history: ConversationHistory) -> DispatchOutcome | None:
        """
        Run the responder registered for ``label`` on the full history.

        Returns None for a label mapped to no responder; the caller falls back
        to the classification result. Raises ResponderOutputMissing when the
        responder finishes without a final output.
        """
        responder = self.registry.get(label)
        if responder is None:
            logger.info("[dispatch] label=%r has no responder", label)
            return None
        logger.info("[dispatch] IN  label=%r responder=%r history_len=%d", label, responder.name, len(history))
        result = await self.completion.run(responder, history)
        if not result.final_output:
            raise ResponderOutputMissing(responder.name, items=result.new_items)
        logger.info("[dispatch] OUT responder=%r items=%d", responder.name, len(result.new_items))
        return DispatchOutcome(
            output=ResponderOutput(output_text=str(result.final_output), classification=label),
            items=tuple(result.new_items),
            responder=responder.name,
        )
