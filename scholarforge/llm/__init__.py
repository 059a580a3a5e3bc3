"""Model invocation gateway for ScholarForge."""

from scholarforge.llm.gateway import (
    ModelGateway,
    normalize_message,
    normalize_response_format,
    normalize_tool_choice,
    resolve_chat_completions_url,
    resolve_provider,
)
from scholarforge.llm.models import CompletionResult, ToolCall, Usage
from scholarforge.llm.schemas import (
    FIGURES_TABLES_PLAN_SCHEMA,
    NOVELTY_ASSESSMENT_SCHEMA,
    QUALITY_ASSESSMENT_SCHEMA,
)

__all__ = [
    "ModelGateway",
    "normalize_message",
    "normalize_response_format",
    "normalize_tool_choice",
    "resolve_chat_completions_url",
    "resolve_provider",
    "CompletionResult",
    "ToolCall",
    "Usage",
    "FIGURES_TABLES_PLAN_SCHEMA",
    "NOVELTY_ASSESSMENT_SCHEMA",
    "QUALITY_ASSESSMENT_SCHEMA",
]
