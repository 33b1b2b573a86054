"""Schemas for guardrail evaluation results and the blocked-request report."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GuardrailResult(BaseModel):
    """Outcome of one configured check for one evaluation call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field("", description="Check name, e.g. 'Jailbreak' or 'Contains PII'.")
    tripwire_triggered: bool = Field(False, description="The check's failure condition was met.")
    execution_failed: bool = Field(False, description="The check itself errored; see info.error.")
    info: dict[str, Any] = Field(default_factory=dict, description="Sparse diagnostic fields.")


class _Category(BaseModel):
    failed: bool = False
    error: str | None = None


class PiiReport(_Category):
    detected_counts: list[str] | None = None


class ModerationReport(_Category):
    flagged_categories: list[str] | None = None


class JailbreakReport(_Category):
    pass


class HallucinationReport(_Category):
    reasoning: str | None = None
    hallucination_type: str | None = None
    hallucinated_statements: list[Any] | None = None
    verified_statements: list[Any] | None = None


class GuardrailReport(BaseModel):
    """Per-category summary returned when any guardrail tripped."""

    pii: PiiReport = Field(default_factory=PiiReport)
    moderation: ModerationReport = Field(default_factory=ModerationReport)
    jailbreak: JailbreakReport = Field(default_factory=JailbreakReport)
    hallucination: HallucinationReport = Field(default_factory=HallucinationReport)

    def as_payload(self) -> dict[str, Any]:
        # Optional diagnostics are None when absent and must not appear at all.
        return self.model_dump(exclude_none=True)
