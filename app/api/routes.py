"""
API route aggregator: register endpoints and delegate to handlers; no logic here.
"""

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from app.agent.graph import WorkflowOrchestrator
from app.api.handlers import handle_ask
from app.schemas.ask import AskRequest
from app.services.workflow_service import get_orchestrator

router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Catalogue assistant running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Ask ---

@router.get("/ask", tags=["ask"], summary="Usage hint for browsers")
def get_ask() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Use POST /ask with JSON { message } and header X-Agent-Token"},
    )


@router.post(
    "/ask",
    tags=["ask"],
    summary="Ask the catalogue assistant",
    description=(
        "Runs guardrails → classifier → responder. Returns the responder answer "
        "(text, output_text, classification), the classifier output for labels without "
        "a responder, or a guardrail report when the input was blocked. 401 without a "
        "valid token, 400 without a message, 500 when the workflow fails."
    ),
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": AskRequest.model_json_schema()}},
        }
    },
)
async def post_ask(
    request: Request,
    x_agent_token: str = Header(""),
    authorization: str = Header(""),
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    return await handle_ask(request, x_agent_token, authorization, orchestrator)
