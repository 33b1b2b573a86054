"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (LLM, guardrail backend) is
misconfigured or unreachable. WorkflowError subclasses are fatal to a single
workflow run; the API maps them to one generic failure payload.
"""

from typing import Any


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. OpenAI client) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class WorkflowError(Exception):
    """Base class for errors that abort a workflow run."""


class ClassifierOutputMissing(WorkflowError):
    """Classifier produced no parsed label. Carries the items it did produce."""

    def __init__(self, message: str = "Classifier result is undefined", items: tuple[Any, ...] = ()) -> None:
        self.items = tuple(items)
        super().__init__(message)


class ResponderOutputMissing(WorkflowError):
    """Selected responder produced no final output."""

    def __init__(self, responder: str, items: tuple[Any, ...] = ()) -> None:
        self.responder = responder
        self.items = tuple(items)
        super().__init__(f"{responder} result is undefined")


class WorkflowTimeoutError(WorkflowError):
    """Run exceeded its deadline; pending external calls were cancelled."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Workflow did not finish within {timeout:g}s")


class RegistryCoverageError(ValueError):
    """Responder registry does not cover the classifier label set exactly."""
