"""
Guardrail gate: run configured safety checks on raw input and aggregate results.

Evaluation itself is delegated to a GuardrailEvaluationService. Everything else
here is a pure function over the returned GuardrailResult sequence.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from app.schemas.guardrails import (
    GuardrailReport,
    GuardrailResult,
    HallucinationReport,
    JailbreakReport,
    ModerationReport,
    PiiReport,
)

logger = logging.getLogger(__name__)

# Category -> exact check name (case-sensitive)
PII_CHECK = "Contains PII"
MODERATION_CHECK = "Moderation"
JAILBREAK_CHECK = "Jailbreak"
HALLUCINATION_CHECK = "Hallucination Detection"

HALLUCINATION_FIELDS = ("reasoning", "hallucination_type", "hallucinated_statements", "verified_statements")


@dataclass(frozen=True)
class GuardrailSpec:
    """One configured check: its name and check-specific settings."""

    name: str
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GuardrailConfig:
    guardrails: tuple[GuardrailSpec, ...] = ()


class GuardrailEvaluationService(Protocol):
    async def evaluate(
        self,
        text: str,
        config: GuardrailConfig,
        context: dict[str, Any],
        strict: bool,
    ) -> list[GuardrailResult]: ...


def has_tripwire(results: Sequence[GuardrailResult] | None) -> bool:
    return any(r.tripwire_triggered for r in results or ())


def has_execution_failure(results: Sequence[GuardrailResult] | None) -> bool:
    return any(r.execution_failed for r in results or ())


def safe_text(results: Sequence[GuardrailResult] | None, fallback: str) -> str:
    """
    Text downstream stages may treat as checked.

    A generic checked_text always wins over PII anonymized_text, even when the
    checked_text result comes later in evaluation order.
    """
    results = results or ()
    for r in results:
        if "checked_text" in r.info:
            value = r.info["checked_text"]
            return fallback if value is None else value
    for r in results:
        if "anonymized_text" in r.info:
            value = r.info["anonymized_text"]
            return fallback if value is None else value
    return fallback


def _find(results: Sequence[GuardrailResult], name: str) -> GuardrailResult | None:
    for r in results:
        if name in (r.name, r.info.get("guardrail_name"), r.info.get("guardrailName")):
            return r
    return None


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


def _error(result: GuardrailResult | None) -> str | None:
    if result is None or not result.execution_failed:
        return None
    error = result.info.get("error")
    return str(error) if _present(error) else None


def _pii(result: GuardrailResult | None) -> PiiReport:
    if result is None:
        return PiiReport()
    entities = result.info.get("detected_entities") or {}
    counts = [
        f"{kind}:{len(values)}"
        for kind, values in entities.items()
        if isinstance(values, list) and values
    ]
    return PiiReport(
        failed=bool(counts) or result.tripwire_triggered,
        detected_counts=counts or None,
        error=_error(result),
    )


def _moderation(result: GuardrailResult | None) -> ModerationReport:
    if result is None:
        return ModerationReport()
    flagged = result.info.get("flagged_categories")
    return ModerationReport(
        failed=result.tripwire_triggered or bool(flagged),
        flagged_categories=list(flagged) if _present(flagged) else None,
        error=_error(result),
    )


def _jailbreak(result: GuardrailResult | None) -> JailbreakReport:
    if result is None:
        return JailbreakReport()
    return JailbreakReport(failed=result.tripwire_triggered, error=_error(result))


def _hallucination(result: GuardrailResult | None) -> HallucinationReport:
    if result is None:
        return HallucinationReport()
    extras = {k: result.info[k] for k in HALLUCINATION_FIELDS if _present(result.info.get(k))}
    return HallucinationReport(failed=result.tripwire_triggered, error=_error(result), **extras)


def build_failure_report(results: Sequence[GuardrailResult] | None) -> GuardrailReport:
    results = results or ()
    return GuardrailReport(
        pii=_pii(_find(results, PII_CHECK)),
        moderation=_moderation(_find(results, MODERATION_CHECK)),
        jailbreak=_jailbreak(_find(results, JAILBREAK_CHECK)),
        hallucination=_hallucination(_find(results, HALLUCINATION_CHECK)),
    )


class GuardrailGate:
    """Evaluate input text against the configured checks (strict, fail-closed)."""

    def __init__(
        self,
        service: GuardrailEvaluationService,
        config: GuardrailConfig,
        context: dict[str, Any] | None = None,
        strict: bool = True,
    ) -> None:
        self.service = service
        self.config = config
        self.context = dict(context or {})
        self.strict = strict

    async def evaluate(self, text: str) -> list[GuardrailResult]:
        logger.info(
            "[guardrails:evaluate] IN  text_len=%d checks=%s",
            len(text),
            [g.name for g in self.config.guardrails],
        )
        results = list(await self.service.evaluate(text, self.config, self.context, self.strict))
        logger.info(
            "[guardrails:evaluate] OUT tripped=%s failed=%s",
            [r.name for r in results if r.tripwire_triggered],
            [r.name for r in results if r.execution_failed],
        )
        return results

    def blocks(self, results: Sequence[GuardrailResult] | None) -> bool:
        """A tripwire blocks the run. In strict mode so does a check that failed to execute."""
        return has_tripwire(results) or (self.strict and has_execution_failure(results))
