"""Tests for the model gateway."""

import json

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from scholarforge.config import Settings
from scholarforge.errors import ConfigurationError, LLMInvocationError, OutputSchemaError
from scholarforge.llm import (
    NOVELTY_ASSESSMENT_SCHEMA,
    QUALITY_ASSESSMENT_SCHEMA,
    CompletionResult,
    ModelGateway,
    normalize_message,
    normalize_response_format,
    normalize_tool_choice,
    resolve_chat_completions_url,
    resolve_provider,
)


def completion_payload(content="Hello from the model", **extra):
    payload = {
        "id": "chatcmpl-1",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }
    payload.update(extra)
    return payload


class RecordingHandler:
    """MockTransport handler replaying a list of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


def live_gateway(handler, sleep, **kwargs) -> ModelGateway:
    return ModelGateway(
        mode="live",
        api_url=kwargs.pop("api_url", "https://api.openai.com"),
        api_key=kwargs.pop("api_key", "sk-test"),
        transport=httpx.MockTransport(handler),
        sleep=sleep,
        **kwargs,
    )


USER_MESSAGE = [{"role": "user", "content": "Say hello"}]


# =============================================================================
# URL and provider resolution
# =============================================================================


class TestResolution:
    """Tests for endpoint and provider resolution."""

    @pytest.mark.parametrize("raw,expected", [
        ("https://api.openai.com", "https://api.openai.com/v1/chat/completions"),
        ("https://api.openai.com/", "https://api.openai.com/v1/chat/completions"),
        ("https://host.example/v1", "https://host.example/v1/chat/completions"),
        ("https://host.example/v1/chat/completions", "https://host.example/v1/chat/completions"),
        ("", "https://api.openai.com/v1/chat/completions"),
    ])
    def test_chat_completions_url(self, raw, expected):
        assert resolve_chat_completions_url(raw) == expected

    def test_provider(self):
        assert resolve_provider("https://api.openai.com/v1/chat/completions") == "openai"
        assert resolve_provider("http://localhost:8000/v1/chat/completions") == "custom"

    def test_from_settings_overrides(self):
        config = Settings(llm_mode="mock", llm_api_url="http://localhost:9000", llm_model="m")
        gateway = ModelGateway.from_settings(config, model="other")
        assert gateway.is_mock
        assert gateway.url == "http://localhost:9000/v1/chat/completions"
        assert gateway.model == "other"
        assert gateway.provider == "custom"


# =============================================================================
# Message normalization
# =============================================================================


class TestNormalizeMessage:
    """Tests for message normalization."""

    def test_dict_text_message(self):
        assert normalize_message({"role": "user", "content": "hi"}) == {
            "role": "user",
            "content": "hi",
        }

    def test_single_text_part_collapses(self):
        message = {"role": "user", "content": [{"type": "text", "text": "hi"}]}
        assert normalize_message(message)["content"] == "hi"

    def test_mixed_parts_kept(self):
        message = {
            "role": "user",
            "content": ["look at this", {"type": "image_url", "image_url": {"url": "https://x/y.png"}}],
        }
        content = normalize_message(message)["content"]
        assert content[0] == {"type": "text", "text": "look at this"}
        assert content[1]["type"] == "image_url"

    def test_unsupported_part_rejected(self):
        with pytest.raises(ValueError):
            normalize_message({"role": "user", "content": [{"type": "audio"}]})

    def test_tool_message_flattened(self):
        message = {
            "role": "tool",
            "content": ["line one", {"value": 1}],
            "tool_call_id": "call_1",
        }
        assert normalize_message(message) == {
            "role": "tool",
            "content": 'line one\n{"value": 1}',
            "tool_call_id": "call_1",
        }

    def test_langchain_messages(self):
        assert normalize_message(SystemMessage(content="be brief"))["role"] == "system"
        assert normalize_message(HumanMessage(content="hi")) == {"role": "user", "content": "hi"}
        assert normalize_message(AIMessage(content="hello"))["role"] == "assistant"
        tool = normalize_message(ToolMessage(content="42", tool_call_id="call_9"))
        assert tool == {"role": "tool", "content": "42", "tool_call_id": "call_9"}


class TestNormalizeToolChoice:
    """Tests for tool_choice resolution."""

    TOOL = {"type": "function", "function": {"name": "lookup", "parameters": {}}}

    def test_passthrough(self):
        assert normalize_tool_choice(None, None) is None
        assert normalize_tool_choice("auto", [self.TOOL]) == "auto"
        assert normalize_tool_choice("none", None) == "none"

    def test_required_single_tool(self):
        assert normalize_tool_choice("required", [self.TOOL]) == {
            "type": "function",
            "function": {"name": "lookup"},
        }

    def test_required_without_tools(self):
        with pytest.raises(ConfigurationError):
            normalize_tool_choice("required", [])

    def test_required_with_many_tools(self):
        with pytest.raises(ConfigurationError):
            normalize_tool_choice("required", [self.TOOL, self.TOOL])

    def test_named_tool(self):
        assert normalize_tool_choice({"name": "lookup"}, [self.TOOL]) == {
            "type": "function",
            "function": {"name": "lookup"},
        }


class TestNormalizeResponseFormat:
    """Tests for structured-output validation."""

    def test_output_schema(self):
        fmt = normalize_response_format(NOVELTY_ASSESSMENT_SCHEMA)
        assert fmt["type"] == "json_schema"
        assert fmt["json_schema"]["name"] == "novelty_assessment"
        assert fmt["json_schema"]["strict"] is True

    def test_output_schema_missing_schema(self):
        with pytest.raises(OutputSchemaError):
            normalize_response_format({"name": "broken"})

    def test_response_format_missing_name(self):
        with pytest.raises(OutputSchemaError):
            normalize_response_format(
                response_format={"type": "json_schema", "json_schema": {"schema": {}}}
            )

    def test_response_format_wins(self):
        explicit = {"type": "json_object"}
        assert normalize_response_format(NOVELTY_ASSESSMENT_SCHEMA, explicit) is explicit


# =============================================================================
# Completion parsing
# =============================================================================


class TestCompletionResult:
    """Tests for completion response parsing."""

    def test_text_from_parts(self):
        result = CompletionResult.model_validate(completion_payload(
            content=[{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]
        ))
        assert result.text == "ab"

    def test_empty_choices(self):
        assert CompletionResult().text == ""
        assert CompletionResult().tool_calls == []

    def test_unknown_fields_ignored(self):
        result = CompletionResult.model_validate(completion_payload(system_fingerprint="fp"))
        assert result.model == "gpt-4o-mini"

    def test_parse_json_fenced(self):
        result = CompletionResult.model_validate(
            completion_payload(content='```json\n{"score": 0.7}\n```')
        )
        assert result.parse_json() == {"score": 0.7}

    def test_parse_json_rejects_non_objects(self):
        assert CompletionResult.model_validate(completion_payload(content="[1, 2]")).parse_json() is None
        assert CompletionResult.model_validate(completion_payload(content="not json")).parse_json() is None

    def test_tool_calls(self):
        payload = completion_payload(content=None)
        payload["choices"][0]["message"]["tool_calls"] = [
            {"id": "call_1", "type": "function", "function": {"name": "lookup", "arguments": "{}"}}
        ]
        result = CompletionResult.model_validate(payload)
        assert result.tool_calls[0].function.name == "lookup"
        assert result.text == ""


# =============================================================================
# Mock mode
# =============================================================================


class TestMockMode:
    """Tests for canned responses."""

    @pytest.mark.asyncio
    async def test_text_preview(self):
        gateway = ModelGateway(mode="mock")
        result = await gateway.invoke([{"role": "user", "content": "Write an introduction"}])
        assert result.model == "mock"
        assert result.text.startswith("# Mocked Output")
        assert "Write an introduction" in result.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["mock", "fake", "OFFLINE"])
    async def test_structured_output(self, mode):
        gateway = ModelGateway(mode=mode)
        novelty = await gateway.invoke(USER_MESSAGE, output_schema=NOVELTY_ASSESSMENT_SCHEMA)
        quality = await gateway.invoke(USER_MESSAGE, output_schema=QUALITY_ASSESSMENT_SCHEMA)
        assert novelty.parse_json()["score"] == 0.65
        assert quality.parse_json()["score"] == 80

    @pytest.mark.asyncio
    async def test_unknown_schema(self):
        gateway = ModelGateway(mode="mock")
        result = await gateway.invoke(
            USER_MESSAGE, output_schema={"name": "anything", "schema": {"type": "object"}}
        )
        assert result.parse_json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_schema_validated_in_mock_mode(self):
        gateway = ModelGateway(mode="mock")
        with pytest.raises(OutputSchemaError):
            await gateway.invoke(USER_MESSAGE, output_schema={"name": "broken"})


# =============================================================================
# Live mode
# =============================================================================


class TestLiveMode:
    """Tests for HTTP behavior against a mocked transport."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(200, json=completion_payload()))
        gateway = live_gateway(handler, sleep_recorder, api_key="")

        with pytest.raises(ConfigurationError, match="LLM_API_KEY"):
            await gateway.invoke(USER_MESSAGE)

        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_request_payload(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(200, json=completion_payload()))
        gateway = live_gateway(handler, sleep_recorder, model="gpt-4o-mini", max_tokens=512)

        result = await gateway.invoke(USER_MESSAGE, output_schema=NOVELTY_ASSESSMENT_SCHEMA)

        assert result.text == "Hello from the model"
        request = handler.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["max_tokens"] == 512
        assert body["messages"] == USER_MESSAGE
        assert body["response_format"]["json_schema"]["name"] == "novelty_assessment"
        assert "tools" not in body

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, sleep_recorder):
        handler = RecordingHandler(
            httpx.Response(429, headers={"retry-after": "2"}, text="slow down"),
            httpx.Response(200, json=completion_payload()),
        )
        gateway = live_gateway(handler, sleep_recorder)

        result = await gateway.invoke(USER_MESSAGE)

        assert result.text == "Hello from the model"
        assert len(handler.requests) == 2
        assert sleep_recorder.delays == [2.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(400, text="bad request body"))
        gateway = live_gateway(handler, sleep_recorder)

        with pytest.raises(LLMInvocationError) as exc_info:
            await gateway.invoke(USER_MESSAGE)

        assert exc_info.value.message == "LLM invoke failed: 400 Bad Request - bad request body"
        assert exc_info.value.status_code == 400
        assert len(handler.requests) == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(503, text="overloaded"))
        gateway = live_gateway(handler, sleep_recorder, max_retries=2)

        with pytest.raises(LLMInvocationError) as exc_info:
            await gateway.invoke(USER_MESSAGE)

        assert len(handler.requests) == 3
        assert len(sleep_recorder.delays) == 2
        assert exc_info.value.status_code == 503
        assert exc_info.value.hint == gateway.hint

    @pytest.mark.asyncio
    async def test_timeout_reported(self, sleep_recorder):
        handler = RecordingHandler(httpx.ReadTimeout("timed out"))
        gateway = live_gateway(handler, sleep_recorder, max_retries=1)

        with pytest.raises(LLMInvocationError) as exc_info:
            await gateway.invoke(USER_MESSAGE)

        assert len(handler.requests) == 2
        assert "timeout" in exc_info.value.message
        assert "OpenAI" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_custom_provider_hint(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(502, text="bad gateway"))
        gateway = live_gateway(
            handler, sleep_recorder, api_url="http://localhost:8000", max_retries=0
        )

        with pytest.raises(LLMInvocationError) as exc_info:
            await gateway.invoke(USER_MESSAGE)

        assert "LLM_API_URL=https://api.openai.com" in exc_info.value.hint

    @pytest.mark.asyncio
    async def test_tools_and_choice_sent(self, sleep_recorder):
        handler = RecordingHandler(httpx.Response(200, json=completion_payload()))
        gateway = live_gateway(handler, sleep_recorder)
        tool = {"type": "function", "function": {"name": "lookup", "parameters": {}}}

        await gateway.invoke(USER_MESSAGE, tools=[tool], tool_choice="required")

        body = json.loads(handler.requests[0].content)
        assert body["tools"] == [tool]
        assert body["tool_choice"] == {"type": "function", "function": {"name": "lookup"}}
