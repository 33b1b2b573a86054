"""
Shared fakes: scripted completion and guardrail services, so tests never call OpenAI.
"""

from typing import Any

import pytest

from app.agent.llm import CompletionResult
from app.core.history import ContentPart, ConversationHistory, MessageItem
from app.guardrails.gate import GuardrailConfig, GuardrailSpec
from app.schemas.guardrails import GuardrailResult
from app.services.workflow_service import build_orchestrator


def assistant(text: str) -> MessageItem:
    return MessageItem(role="assistant", content=(ContentPart(type="output_text", text=text),))


class FakeCompletion:
    """Returns a scripted CompletionResult (or raises) per descriptor name and records calls."""

    def __init__(self, script: dict[str, Any]) -> None:
        self.script = script
        self.calls: list[tuple[str, ConversationHistory]] = []

    def calls_for(self, name: str) -> list[ConversationHistory]:
        return [h for n, h in self.calls if n == name]

    async def run(self, descriptor, history: ConversationHistory) -> CompletionResult:
        self.calls.append((descriptor.name, history))
        outcome = self.script[descriptor.name]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeGuardrails:
    def __init__(self, results: list[GuardrailResult] | None = None) -> None:
        self.results = results or []
        self.calls: list[tuple[str, bool]] = []

    async def evaluate(self, text, config, context, strict) -> list[GuardrailResult]:
        self.calls.append((text, strict))
        return list(self.results)


def classified(label: str, *extra_items: MessageItem) -> CompletionResult:
    return CompletionResult(final_output={"classification": label}, new_items=extra_items)


def answered(text: str, *extra_items: MessageItem) -> CompletionResult:
    return CompletionResult(final_output=text, new_items=extra_items + (assistant(text),))


@pytest.fixture
def guardrail_config() -> GuardrailConfig:
    return GuardrailConfig(guardrails=(GuardrailSpec("Jailbreak", {"confidence_threshold": 0.7}),))


@pytest.fixture
def make_orchestrator(guardrail_config):
    def _make(completion, guardrails=None, profile="rustx", timeout=None):
        return build_orchestrator(
            completion=completion,
            guardrail_service=guardrails or FakeGuardrails(),
            guardrail_config=guardrail_config,
            profile_name=profile,
            vector_store_id="vs_test",
            workflow_id="wf_test",
            trace_name="Test workflow",
            timeout=timeout,
        )

    return _make
