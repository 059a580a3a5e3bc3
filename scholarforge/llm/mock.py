"""Canned responses served when LLM_MODE is mock, fake or offline."""

import json
import time
from typing import Any

from scholarforge.llm.models import Choice, ChoiceMessage, CompletionResult, Usage


MOCK_JSON_BY_SCHEMA: dict[str, dict[str, Any]] = {
    "novelty_assessment": {
        "score": 0.65,
        "classification": "moderate",
        "reasoning": "Mocked assessment (LLM_MODE=mock).",
    },
    "quality_assessment": {
        "score": 80,
        "feedback": "Mocked review (LLM_MODE=mock).",
    },
    "figures_tables_plan": {
        "figures": [],
        "tables": [],
    },
}


def mock_json_for_schema(schema_name: str) -> dict[str, Any]:
    return MOCK_JSON_BY_SCHEMA.get(schema_name, {"ok": True})


def make_mock_result(content: str) -> CompletionResult:
    return CompletionResult(
        id="mock",
        created=int(time.time()),
        model="mock",
        choices=[
            Choice(
                index=0,
                message=ChoiceMessage(role="assistant", content=content),
                finish_reason="stop",
            )
        ],
        usage=Usage(prompt_tokens=0, completion_tokens=0, total_tokens=0),
    )


def mock_completion(
    messages: list[dict[str, Any]],
    response_format: dict[str, Any] | None,
) -> CompletionResult:
    """Build the deterministic mock response for already-normalized input."""
    if response_format and response_format.get("type") == "json_schema":
        name = response_format["json_schema"]["name"]
        return make_mock_result(json.dumps(mock_json_for_schema(name)))
    
    last_user = next(
        (message for message in reversed(messages) if message.get("role") == "user"),
        None,
    )
    if last_user is not None and isinstance(last_user.get("content"), str):
        preview = last_user["content"][:200]
    else:
        preview = "Mocked response."
    
    return make_mock_result(
        f"# Mocked Output\n\nLLM_MODE=mock is enabled.\n\nPrompt preview:\n\n{preview}"
    )
