"""Schemas for the ask endpoint."""

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    """Request body for POST /ask. Presence of message is checked after auth."""

    message: str | None = Field(None, description="End-user question about the catalogue.")


class WorkflowInput(BaseModel):
    """Input accepted by the workflow core."""

    input_as_text: str = Field(..., description="Raw user text, before guardrails.")
