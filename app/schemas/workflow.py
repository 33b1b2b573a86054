"""Schemas for workflow outputs. A run returns exactly one of these."""

import json
from typing import Any, Union

from pydantic import BaseModel, Field

from app.schemas.guardrails import GuardrailReport


class ClassificationResult(BaseModel):
    """Single label chosen by the classifier, plus the raw structured output."""

    raw_text: str = Field(..., description="Classifier output serialised as JSON text.")
    label: str = Field(..., description="One label from the configured closed set.")

    @classmethod
    def from_parsed(cls, parsed: dict[str, Any]) -> "ClassificationResult":
        return cls(raw_text=json.dumps(parsed, separators=(",", ":")), label=str(parsed["classification"]))

    def as_payload(self) -> dict[str, Any]:
        return {"output_text": self.raw_text, "output_parsed": {"classification": self.label}}


class ResponderOutput(BaseModel):
    """Final answer produced by the responder registered for a label."""

    output_text: str
    classification: str

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump()


WorkflowResult = Union[GuardrailReport, ClassificationResult, ResponderOutput]
