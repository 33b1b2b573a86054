"""
Workflow service: build the orchestrator once from configuration.

Responsibility: Wire the guardrail gate, classifier, responder registry and
trace settings for the configured profile. Called by the API through a
dependency; no HTTP here.
"""

import logging
from functools import lru_cache

from app.agent.classifier import IntentClassifier
from app.agent.graph import WorkflowOrchestrator
from app.agent.llm import LanguageModelCompletionService, OpenAICompletionService
from app.agent.profiles import build_profile
from app.agent.responders import Dispatcher
from app.core.config import (
    ENABLED_GUARDRAILS,
    TRACE_SOURCE,
    VECTOR_STORE_ID,
    WORKFLOW_ID,
    WORKFLOW_PROFILE,
    WORKFLOW_TIMEOUT_SECONDS,
    WORKFLOW_TRACE_NAME,
)
from app.guardrails.evaluator import OpenAIGuardrailEvaluator, default_guardrail_config
from app.guardrails.gate import GuardrailConfig, GuardrailEvaluationService, GuardrailGate

logger = logging.getLogger(__name__)


def build_orchestrator(
    completion: LanguageModelCompletionService,
    guardrail_service: GuardrailEvaluationService,
    guardrail_config: GuardrailConfig,
    profile_name: str = WORKFLOW_PROFILE,
    vector_store_id: str = VECTOR_STORE_ID,
    workflow_id: str = WORKFLOW_ID,
    trace_name: str = WORKFLOW_TRACE_NAME,
    timeout: float | None = WORKFLOW_TIMEOUT_SECONDS,
) -> WorkflowOrchestrator:
    profile = build_profile(profile_name, vector_store_id)
    logger.info(
        "[workflow_service] profile=%s labels=%d responders=%d guardrails=%s",
        profile.name,
        len(profile.labels),
        sum(1 for r in profile.registry.entries().values() if r is not None),
        [g.name for g in guardrail_config.guardrails],
    )
    return WorkflowOrchestrator(
        gate=GuardrailGate(guardrail_service, guardrail_config),
        classifier=IntentClassifier(profile.classifier, profile.labels, completion),
        dispatcher=Dispatcher(profile.registry, completion),
        workflow_id=workflow_id,
        trace_name=trace_name,
        trace_metadata={"__trace_source__": TRACE_SOURCE, "profile": profile.name},
        timeout=timeout or None,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> WorkflowOrchestrator:
    """Process-wide orchestrator backed by OpenAI; built on first use."""
    completion = OpenAICompletionService()
    return build_orchestrator(
        completion=completion,
        # Guardrails share the completion service's lazily created client.
        guardrail_service=OpenAIGuardrailEvaluator(client_provider=lambda: completion.client),
        guardrail_config=default_guardrail_config(ENABLED_GUARDRAILS),
    )
