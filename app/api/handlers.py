"""
API handlers: authenticate, run the workflow, and map results/errors to HTTP.

Responsibility: Bridge HTTP types and the workflow core. Marshalling and
exception-to-HTTP mapping live here so the core stays free of FastAPI types.
"""

import logging
import secrets
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.agent.graph import WorkflowOrchestrator
from app.core.config import AGENT_SERVER_TOKEN, SERVED_BY
from app.core.errors import WorkflowTimeoutError
from app.schemas.ask import AskRequest, WorkflowInput
from app.schemas.workflow import WorkflowResult

logger = logging.getLogger(__name__)


def is_authorized(x_agent_token: str, authorization: str, expected: str | None = None) -> bool:
    """Accept X-Agent-Token or an Authorization bearer token. No configured token means no access."""
    if expected is None:
        expected = AGENT_SERVER_TOKEN
    if not expected:
        return False
    token = x_agent_token
    if not token and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    return bool(token) and secrets.compare_digest(token, expected)


def normalize_result(result: WorkflowResult) -> dict[str, Any]:
    """Workflow result → response body. output_text is mirrored as text."""
    payload = result.as_payload()
    if "output_text" in payload:
        return {"text": payload["output_text"], **payload, "served_by": SERVED_BY}
    return {**payload, "served_by": SERVED_BY}


async def _read_body(request: Request) -> AskRequest | None:
    """Parse the JSON body after auth; anything unreadable counts as no message."""
    try:
        return AskRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return None


async def handle_ask(
    request: Request,
    x_agent_token: str,
    authorization: str,
    orchestrator: WorkflowOrchestrator,
) -> JSONResponse:
    if not is_authorized(x_agent_token, authorization):
        return JSONResponse(status_code=401, content={"error": "unauthorized"})

    body = await _read_body(request)
    if body is None or not body.message:
        return JSONResponse(status_code=400, content={"error": "message required"})
    message = body.message

    workflow_input = WorkflowInput(input_as_text=message)
    logger.info("[api:ask] IN  message_len=%d", len(message))
    try:
        result = await orchestrator.run(workflow_input.input_as_text)
    except WorkflowTimeoutError as e:
        logger.warning("[api:ask] workflow timed out: %s", e)
        return JSONResponse(status_code=504, content={"error": "timeout", "detail": str(e)})
    except Exception as e:
        logger.exception("Workflow failed")
        return JSONResponse(status_code=500, content={"error": "server_error", "detail": str(e)})
    content = normalize_result(result)
    logger.info("[api:ask] OUT keys=%s", sorted(content))
    return JSONResponse(content=content)
