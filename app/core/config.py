"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Read once at process start; nothing here is mutated afterwards.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


# OpenAI (classifier, responders, jailbreak + moderation guardrails)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()

# Shared secret expected in X-Agent-Token. Empty means every request is rejected.
AGENT_SERVER_TOKEN: str = os.getenv("AGENT_SERVER_TOKEN", "").strip()

# Workflow profile: "rustx" (two labels) or "catalogue" (full label set)
WORKFLOW_PROFILE: str = os.getenv("WORKFLOW_PROFILE", "rustx").strip() or "rustx"

# Tracing
WORKFLOW_ID: str = (
    os.getenv("WORKFLOW_ID", "wf_69084e231b9481908d1b67cb2ad1963700715719a58eafbb").strip()
    or "wf_69084e231b9481908d1b67cb2ad1963700715719a58eafbb"
)
WORKFLOW_TRACE_NAME: str = os.getenv("WORKFLOW_TRACE_NAME", "RustX workflow").strip() or "RustX workflow"
TRACE_SOURCE: str = "agent-builder"

# Models
CLASSIFIER_MODEL: str = os.getenv("CLASSIFIER_MODEL", "gpt-5").strip() or "gpt-5"
RESPONDER_MODEL: str = os.getenv("RESPONDER_MODEL", "gpt-4.1").strip() or "gpt-4.1"
RESPONDER_MAX_TOKENS: int = int(os.getenv("RESPONDER_MAX_TOKENS", "2048"))

# Product catalogue vector store used by the file search tool
VECTOR_STORE_ID: str = (
    os.getenv("VECTOR_STORE_ID", "vs_690850e09c4c8191aec35b8135362fed").strip()
    or "vs_690850e09c4c8191aec35b8135362fed"
)

# Guardrails
GUARDRAIL_MODEL: str = os.getenv("GUARDRAIL_MODEL", "gpt-4.1-mini").strip() or "gpt-4.1-mini"
JAILBREAK_CONFIDENCE_THRESHOLD: float = float(os.getenv("JAILBREAK_CONFIDENCE_THRESHOLD", "0.7"))
MODERATION_MODEL: str = os.getenv("MODERATION_MODEL", "omni-moderation-latest").strip() or "omni-moderation-latest"
# Checks run in this order; names must match the evaluator's check names.
ENABLED_GUARDRAILS: tuple[str, ...] = _csv(os.getenv("ENABLED_GUARDRAILS", "Jailbreak"))

# API timeouts (seconds)
LLM_API_TIMEOUT: float = float(os.getenv("LLM_API_TIMEOUT", "60"))
# Deadline for one whole workflow run; 0 disables it.
WORKFLOW_TIMEOUT_SECONDS: float = float(os.getenv("WORKFLOW_TIMEOUT_SECONDS", "120"))

# HTTP
CORS_ORIGINS: tuple[str, ...] = _csv(
    os.getenv("CORS_ORIGINS", "https://chat.openai.com,https://ai-pandit.com")
)
RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
SERVED_BY: str = os.getenv("SERVED_BY", "fuchs-agent@render").strip() or "fuchs-agent@render"
PORT: int = int(os.getenv("PORT", "3000"))
