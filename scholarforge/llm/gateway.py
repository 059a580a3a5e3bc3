"""Model invocation gateway for chat-completion backends.

The gateway is the single path by which the pipeline and the revision
processor talk to a language model. It normalizes message payloads
(plain dicts or ``langchain_core`` message objects), validates structured
output requests, serves canned responses in mock mode and, in live mode,
posts to an OpenAI-compatible ``/v1/chat/completions`` endpoint under the
shared retry policy.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Sequence
from urllib.parse import urlparse

import httpx
from langchain_core.messages import BaseMessage

from scholarforge.config import Settings, settings as default_settings
from scholarforge.config.settings import MOCK_LLM_MODES
from scholarforge.errors import (
    ConfigurationError,
    LLMInvocationError,
    OutputSchemaError,
    RateLimitError,
    TransientAPIError,
    create_llm_retry_policy,
    parse_retry_after,
    retry_async,
)
from scholarforge.llm.mock import mock_completion
from scholarforge.llm.models import CompletionResult

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"

# langchain_core message types mapped to chat-completion roles
_ROLE_BY_MESSAGE_TYPE = {
    "system": "system",
    "human": "user",
    "ai": "assistant",
    "tool": "tool",
    "function": "function",
}

_CONTENT_PART_TYPES = ("text", "image_url", "file_url")

MessageInput = dict[str, Any] | BaseMessage


# =============================================================================
# Request normalization
# =============================================================================


def resolve_chat_completions_url(raw_url: str) -> str:
    """Complete a base URL to the chat-completions endpoint.

    Examples:
        >>> resolve_chat_completions_url("https://api.openai.com")
        'https://api.openai.com/v1/chat/completions'
        >>> resolve_chat_completions_url("https://host/v1/")
        'https://host/v1/chat/completions'
    """
    trimmed = (raw_url or "").strip() or DEFAULT_API_URL
    trimmed = trimmed.rstrip("/")
    if trimmed.endswith("/chat/completions"):
        return trimmed
    if trimmed.endswith("/v1"):
        return f"{trimmed}/chat/completions"
    return f"{trimmed}/v1/chat/completions"


def resolve_provider(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return "openai" if "api.openai.com" in host else "custom"


def remediation_hint(provider: str) -> str:
    if provider == "openai":
        return "Check network access and that your OpenAI key/model are valid."
    return (
        "If you're using OpenAI, set LLM_API_URL=https://api.openai.com "
        "and LLM_MODEL=gpt-4o-mini."
    )


def _normalize_content_part(part: Any) -> dict[str, Any]:
    if isinstance(part, str):
        return {"type": "text", "text": part}
    if isinstance(part, dict) and part.get("type") in _CONTENT_PART_TYPES:
        return part
    raise ValueError(f"Unsupported message content part: {part!r}")


def normalize_message(message: MessageInput) -> dict[str, Any]:
    """Convert a dict or langchain message to the chat-completion wire form."""
    if isinstance(message, BaseMessage):
        role = _ROLE_BY_MESSAGE_TYPE.get(message.type, "user")
        content = message.content
        name = message.name
        tool_call_id = getattr(message, "tool_call_id", None)
    else:
        role = message.get("role", "user")
        content = message.get("content", "")
        name = message.get("name")
        tool_call_id = message.get("tool_call_id")

    parts = content if isinstance(content, list) else [content]

    if role in ("tool", "function"):
        flattened = "\n".join(
            part if isinstance(part, str) else json.dumps(part)
            for part in parts
        )
        normalized = {"role": role, "content": flattened}
        if name:
            normalized["name"] = name
        if tool_call_id:
            normalized["tool_call_id"] = tool_call_id
        return normalized

    content_parts = [_normalize_content_part(part) for part in parts]
    normalized: dict[str, Any] = {"role": role}
    if name:
        normalized["name"] = name
    # A lone text part collapses to a plain string
    if len(content_parts) == 1 and content_parts[0]["type"] == "text":
        normalized["content"] = content_parts[0]["text"]
    else:
        normalized["content"] = content_parts
    return normalized


def normalize_tool_choice(
    tool_choice: str | dict[str, Any] | None,
    tools: Sequence[dict[str, Any]] | None,
) -> str | dict[str, Any] | None:
    """Resolve ``tool_choice`` to a value the backend accepts."""
    if not tool_choice:
        return None
    if tool_choice in ("none", "auto"):
        return tool_choice
    if tool_choice == "required":
        if not tools:
            raise ConfigurationError(
                "tool_choice 'required' was provided but no tools were configured"
            )
        if len(tools) > 1:
            raise ConfigurationError(
                "tool_choice 'required' needs a single tool or specify the tool name explicitly"
            )
        return {"type": "function", "function": {"name": tools[0]["function"]["name"]}}
    if isinstance(tool_choice, dict) and "name" in tool_choice:
        return {"type": "function", "function": {"name": tool_choice["name"]}}
    return tool_choice


def normalize_response_format(
    output_schema: dict[str, Any] | None = None,
    response_format: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Validate and merge the two ways of requesting structured output.

    Raises:
        OutputSchemaError: If a JSON-schema request lacks a name or schema
    """
    if response_format:
        if response_format.get("type") == "json_schema":
            json_schema = response_format.get("json_schema") or {}
            if not json_schema.get("name") or not json_schema.get("schema"):
                raise OutputSchemaError(
                    "response_format json_schema requires both name and schema",
                    setting="response_format",
                )
        return response_format

    if output_schema is None:
        return None

    if not output_schema.get("name") or not output_schema.get("schema"):
        raise OutputSchemaError(
            "output_schema requires both name and schema",
            setting="output_schema",
        )

    json_schema = {"name": output_schema["name"], "schema": output_schema["schema"]}
    if isinstance(output_schema.get("strict"), bool):
        json_schema["strict"] = output_schema["strict"]
    return {"type": "json_schema", "json_schema": json_schema}


# =============================================================================
# Gateway
# =============================================================================


class ModelGateway:
    """Chat-completion client with mock mode, retries and structured output."""

    def __init__(
        self,
        *,
        mode: str = "live",
        api_url: str = DEFAULT_API_URL,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        timeout_seconds: float = 120.0,
        max_retries: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.mode = mode
        self.url = resolve_chat_completions_url(api_url)
        self.provider = resolve_provider(self.url)
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.retry_policy = create_llm_retry_policy(max_retries)
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, config: Settings | None = None, **overrides: Any) -> "ModelGateway":
        config = config or default_settings
        kwargs: dict[str, Any] = {
            "mode": config.llm_mode,
            "api_url": config.llm_api_url,
            "api_key": config.llm_api_key,
            "model": config.llm_model,
            "max_tokens": config.llm_max_tokens,
            "timeout_seconds": config.llm_timeout_seconds,
            "max_retries": config.llm_max_retries,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def is_mock(self) -> bool:
        return self.mode.strip().lower() in MOCK_LLM_MODES

    @property
    def hint(self) -> str:
        return remediation_hint(self.provider)

    async def invoke(
        self,
        messages: Sequence[MessageInput],
        *,
        tools: Sequence[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        output_schema: dict[str, Any] | None = None,
        response_format: dict[str, Any] | None = None,
        max_tokens: int | None = None,
    ) -> CompletionResult:
        """Send one chat-completion request.

        Args:
            messages: Dict or langchain_core messages
            tools: Function tool definitions
            tool_choice: "none", "auto", "required" or {"name": ...}
            output_schema: {"name", "schema", "strict"?} for JSON output
            response_format: Explicit response_format payload
            max_tokens: Override for the configured completion budget

        Returns:
            Parsed CompletionResult

        Raises:
            OutputSchemaError: Malformed structured-output request
            ConfigurationError: Missing API key in live mode
            LLMInvocationError: Terminal HTTP error or exhausted retries
        """
        normalized_format = normalize_response_format(output_schema, response_format)
        wire_messages = [normalize_message(message) for message in messages]

        if self.is_mock:
            return mock_completion(wire_messages, normalized_format)

        if not self.api_key:
            raise ConfigurationError("LLM_API_KEY is not configured", setting="LLM_API_KEY")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": wire_messages,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if tools:
            payload["tools"] = list(tools)
        normalized_choice = normalize_tool_choice(tool_choice, tools)
        if normalized_choice:
            payload["tool_choice"] = normalized_choice
        if normalized_format:
            payload["response_format"] = normalized_format

        return await self._post_with_retry(payload)

    async def _post_with_retry(self, payload: dict[str, Any]) -> CompletionResult:
        headers = {
            "content-type": "application/json",
            "authorization": f"Bearer {self.api_key}",
        }

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        ) as client:

            async def attempt_request(attempt: int) -> CompletionResult:
                response = await client.post(self.url, headers=headers, json=payload)
                if response.is_success:
                    return CompletionResult.model_validate(response.json())

                message = (
                    f"LLM invoke failed: {response.status_code} "
                    f"{response.reason_phrase} - {response.text}"
                )
                if response.status_code == 429:
                    raise RateLimitError(
                        message,
                        service="llm",
                        retry_after=parse_retry_after(response.headers.get("retry-after")),
                        response_body=response.text,
                    )
                if response.status_code >= 500:
                    raise TransientAPIError(
                        message,
                        service="llm",
                        status_code=response.status_code,
                        retry_after=parse_retry_after(response.headers.get("retry-after")),
                        response_body=response.text,
                    )
                raise LLMInvocationError(
                    message,
                    status_code=response.status_code,
                    response_body=response.text,
                )

            try:
                return await retry_async(
                    attempt_request,
                    self.retry_policy,
                    sleep=self._sleep,
                    description=f"LLM call to {self.provider}",
                )
            except TransientAPIError as e:
                logger.error(f"LLM retries exhausted: {e.message[:200]}")
                raise LLMInvocationError(
                    e.message,
                    status_code=e.status_code,
                    response_body=e.response_body,
                    hint=self.hint,
                ) from e
            except httpx.TransportError as e:
                reason = "timeout" if isinstance(e, httpx.TimeoutException) else str(e)
                logger.error(f"LLM transport failure after retries: {reason}")
                raise LLMInvocationError(
                    f"LLM invoke failed: {reason} ({self.hint})",
                    hint=self.hint,
                ) from e
