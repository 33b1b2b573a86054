"""
Intent classifier: one completion call that picks exactly one label.

The output is constrained by a JSON schema to a single value of the closed
label set. Missing or out-of-set output is fatal for the run.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from app.agent.llm import LanguageModelCompletionService
from app.agent.responders import ResponderDescriptor
from app.core.errors import ClassifierOutputMissing
from app.core.history import ConversationHistory, MessageItem
from app.schemas.workflow import ClassificationResult

logger = logging.getLogger(__name__)


def classification_schema(labels: Iterable[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"classification": {"type": "string", "enum": list(labels)}},
        "required": ["classification"],
        "additionalProperties": False,
    }


@dataclass(frozen=True)
class ClassificationOutcome:
    result: ClassificationResult
    items: tuple[MessageItem, ...]


class IntentClassifier:
    def __init__(
        self,
        descriptor: ResponderDescriptor,
        labels: Iterable[str],
        completion: LanguageModelCompletionService,
    ) -> None:
        self.labels = tuple(labels)
        self.descriptor = replace(
            descriptor,
            output_schema=classification_schema(self.labels),
            output_schema_name="classifier",
        )
        self.completion = completion

    async def classify(self, history: ConversationHistory) -> ClassificationOutcome:
        logger.info("[classifier] IN  history_len=%d labels=%s", len(history), self.labels)
        result = await self.completion.run(self.descriptor, history)
        parsed = result.final_output
        if not isinstance(parsed, dict) or parsed.get("classification") not in self.labels:
            logger.warning("[classifier] no usable output: %r", parsed)
            raise ClassifierOutputMissing(items=result.new_items)
        classification = ClassificationResult.from_parsed(parsed)
        logger.info("[classifier] OUT label=%r items=%d", classification.label, len(result.new_items))
        return ClassificationOutcome(result=classification, items=tuple(result.new_items))
