"""
LangGraph workflow: init → guardrail_check → (blocked | classify) → (dispatch | unmatched) → END.

Each node runs at most once per request; there are no loops or retries. The
history channel only ever appends. Every terminal node sets exactly one
result: a GuardrailReport, the bare ClassificationResult, or a ResponderOutput.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Annotated, Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from app.agent.classifier import IntentClassifier
from app.agent.responders import Dispatcher
from app.core.errors import WorkflowTimeoutError
from app.core.history import ConversationHistory, MessageItem, append_history
from app.core.tracing import current_trace_id, trace
from app.guardrails.gate import GuardrailGate, build_failure_report, safe_text
from app.schemas.guardrails import GuardrailResult
from app.schemas.workflow import ClassificationResult, WorkflowResult

logger = logging.getLogger(__name__)


class WorkflowState(TypedDict, total=False):
    input_text: str
    history: Annotated[ConversationHistory, append_history]
    guardrail_results: list[GuardrailResult]
    safe_text: str
    classification: ClassificationResult
    responder: str
    result: Any
    outcome: str


@dataclass(frozen=True)
class WorkflowRun:
    """Everything one run produced; ``result`` is what the caller gets."""

    result: WorkflowResult
    outcome: Literal["blocked", "unmatched", "dispatched"]
    history: ConversationHistory
    guardrail_results: tuple[GuardrailResult, ...]
    trace_id: str


def _history(state: WorkflowState) -> ConversationHistory:
    return ConversationHistory(state.get("history") or ())


class WorkflowOrchestrator:
    def __init__(
        self,
        gate: GuardrailGate,
        classifier: IntentClassifier,
        dispatcher: Dispatcher,
        workflow_id: str,
        trace_name: str = "workflow",
        trace_metadata: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.gate = gate
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.workflow_id = workflow_id
        self.trace_name = trace_name
        self.trace_metadata = dict(trace_metadata or {})
        self.timeout = timeout
        self._graph = self._build_graph()

    # --- nodes ---

    async def _init(self, state: WorkflowState) -> dict:
        text = state.get("input_text") or ""
        logger.info("[graph:init] trace=%s input_len=%d", current_trace_id(), len(text))
        return {"history": [MessageItem.user_text(text)]}

    async def _guardrail_check(self, state: WorkflowState) -> dict:
        text = state.get("input_text") or ""
        results = await self.gate.evaluate(text)
        checked = safe_text(results, text)
        logger.info(
            "[graph:guardrail_check] trace=%s checks=%d safe_text_changed=%s",
            current_trace_id(),
            len(results),
            checked != text,
        )
        return {"guardrail_results": results, "safe_text": checked}

    async def _blocked(self, state: WorkflowState) -> dict:
        report = build_failure_report(state.get("guardrail_results"))
        logger.info("[graph:blocked] trace=%s report=%s", current_trace_id(), report.as_payload())
        return {"result": report, "outcome": "blocked"}

    async def _classify(self, state: WorkflowState) -> dict:
        outcome = await self.classifier.classify(_history(state))
        logger.info("[graph:classify] trace=%s label=%r", current_trace_id(), outcome.result.label)
        return {"history": outcome.items, "classification": outcome.result}

    async def _unmatched(self, state: WorkflowState) -> dict:
        classification = state["classification"]
        logger.info("[graph:unmatched] trace=%s label=%r -> classification only", current_trace_id(), classification.label)
        return {"result": classification, "outcome": "unmatched"}

    async def _dispatch(self, state: WorkflowState) -> dict:
        classification = state["classification"]
        dispatched = await self.dispatcher.dispatch(classification.label, _history(state))
        if dispatched is None:
            return {"result": classification, "outcome": "unmatched"}
        logger.info("[graph:dispatch] trace=%s responder=%r", current_trace_id(), dispatched.responder)
        return {
            "history": dispatched.items,
            "responder": dispatched.responder,
            "result": dispatched.output,
            "outcome": "dispatched",
        }

    # --- routing ---

    def _route_after_guardrails(self, state: WorkflowState) -> Literal["blocked", "classify"]:
        next_node = "blocked" if self.gate.blocks(state.get("guardrail_results")) else "classify"
        logger.info("[graph:route_after_guardrails] -> %s", next_node)
        return next_node

    def _route_after_classify(self, state: WorkflowState) -> Literal["dispatch", "unmatched"]:
        label = state["classification"].label
        next_node = "dispatch" if self.dispatcher.has_responder(label) else "unmatched"
        logger.info("[graph:route_after_classify] label=%r -> %s", label, next_node)
        return next_node

    def _build_graph(self):
        graph = StateGraph(WorkflowState)

        graph.add_node("init", self._init)
        graph.add_node("guardrail_check", self._guardrail_check)
        graph.add_node("blocked", self._blocked)
        graph.add_node("classify", self._classify)
        graph.add_node("unmatched", self._unmatched)
        graph.add_node("dispatch", self._dispatch)

        graph.set_entry_point("init")
        graph.add_edge("init", "guardrail_check")
        graph.add_conditional_edges("guardrail_check", self._route_after_guardrails, ["blocked", "classify"])
        graph.add_conditional_edges("classify", self._route_after_classify, ["dispatch", "unmatched"])
        graph.add_edge("blocked", END)
        graph.add_edge("unmatched", END)
        graph.add_edge("dispatch", END)

        return graph.compile()

    # --- entry points ---

    async def _invoke(self, initial: WorkflowState) -> dict:
        if not self.timeout:
            return await self._graph.ainvoke(initial)
        # A TimeoutError raised by a collaborator surfaces as itself, not as a deadline miss.
        task = asyncio.ensure_future(self._graph.ainvoke(initial))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task not in done:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise WorkflowTimeoutError(self.timeout)
        return task.result()

    async def execute(self, input_text: str) -> WorkflowRun:
        """Run the whole workflow inside one trace span."""
        with trace(self.trace_name, self.workflow_id, self.trace_metadata) as span:
            final = await self._invoke({"input_text": input_text})
            span.set_outcome(final["outcome"])
            return WorkflowRun(
                result=final["result"],
                outcome=final["outcome"],
                history=_history(final),
                guardrail_results=tuple(final.get("guardrail_results") or ()),
                trace_id=span.trace_id,
            )

    async def run(self, input_text: str) -> WorkflowResult:
        return (await self.execute(input_text)).result
