"""Tests for the chat-completions client, using httpx.MockTransport."""

import json

import httpx
import pytest

from src.config import LLMConfig
from src.llm.client import (
    ChatCompletionClient,
    get_first_tool_call,
    get_message_content,
    has_tool_calls,
)
from src.llm.errors import (
    LLMTimeoutError,
    NetworkError,
    UnexpectedLLMError,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamRateLimitError,
    UpstreamServerError,
)
from tests.conftest import text_response, tool_response

BASE_URL = "https://llm.test/api/v1"


def _config(**changes) -> LLMConfig:
    defaults = dict(api_key="test-key", base_url=BASE_URL, model="test/model", temperature=0.7, max_tokens=1000)
    defaults.update(changes)
    return LLMConfig(**defaults)


def _client(handler, **changes) -> ChatCompletionClient:
    return ChatCompletionClient(_config(**changes), transport=httpx.MockTransport(handler))


MESSAGES = [{"role": "user", "content": "Hola"}]


class TestRequest:
    @pytest.mark.asyncio
    async def test_posts_payload_with_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["title"] = request.headers["X-Title"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=text_response("¡Hola!"))

        client = _client(handler)
        tools = [{"type": "function", "function": {"name": "guardar_informacion"}}]
        response = await client.chat_with_tools(MESSAGES, tools)

        assert get_message_content(response) == "¡Hola!"
        assert seen["url"] == f"{BASE_URL}/chat/completions"
        assert seen["auth"] == "Bearer test-key"
        assert seen["title"]
        body = seen["body"]
        assert body["model"] == "test/model"
        assert body["messages"] == MESSAGES
        assert body["tools"] == tools
        assert body["tool_choice"] == "auto"
        assert body["stream"] is False

    def test_payload_drops_unset_tool_fields(self):
        client = ChatCompletionClient(_config())
        payload = client.build_payload(MESSAGES, tool_choice="auto")
        assert "tools" not in payload
        assert "tool_choice" not in payload
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 1000

    def test_payload_overrides(self):
        client = ChatCompletionClient(_config())
        payload = client.build_payload(MESSAGES, temperature=0.0, max_tokens=50, model="other/model")
        assert payload["temperature"] == 0.0
        assert payload["max_tokens"] == 50
        assert payload["model"] == "other/model"

    def test_constructor_overrides(self):
        client = ChatCompletionClient(_config(), model="override/model")
        assert client.config.model == "override/model"

    @pytest.mark.asyncio
    async def test_simple_chat_returns_text(self):
        client = _client(lambda request: httpx.Response(200, json=text_response("Claro")))
        assert await client.simple_chat(MESSAGES) == "Claro"


class TestErrorClassification:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [
            (401, UpstreamAuthError),
            (429, UpstreamRateLimitError),
            (400, UpstreamBadRequestError),
            (500, UpstreamServerError),
            (503, UnexpectedLLMError),
        ],
    )
    async def test_status_codes(self, status, error_type):
        client = _client(lambda request: httpx.Response(status, json={"error": {"message": "nope"}}))
        with pytest.raises(error_type) as exc_info:
            await client.create_chat_completion(MESSAGES)
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_bad_request_carries_upstream_message(self):
        client = _client(
            lambda request: httpx.Response(400, json={"error": {"message": "tools not supported"}})
        )
        with pytest.raises(UpstreamBadRequestError) as exc_info:
            await client.create_chat_completion(MESSAGES)
        assert exc_info.value.upstream_message == "tools not supported"
        assert "tools not supported" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_retryable_flags(self):
        assert UpstreamServerError("x").retryable is True
        assert NetworkError("x").retryable is True
        assert UpstreamAuthError("x").retryable is False
        assert UpstreamRateLimitError("x").retryable is False

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(LLMTimeoutError):
            await _client(handler).create_chat_completion(MESSAGES)

    @pytest.mark.asyncio
    async def test_timeout_is_a_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError):
            await _client(handler).create_chat_completion(MESSAGES)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await _client(handler).create_chat_completion(MESSAGES)
        assert not isinstance(exc_info.value, LLMTimeoutError)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(UnexpectedLLMError):
            await client.create_chat_completion(MESSAGES)


class TestResponseHelpers:
    def test_tool_call_extraction(self):
        response = tool_response("guardar_informacion", {"nombre": "Juan"})
        assert has_tool_calls(response)
        call = get_first_tool_call(response)
        assert call.id == "call_1"
        assert call.name == "guardar_informacion"
        assert json.loads(call.arguments) == {"nombre": "Juan"}

    def test_decoded_arguments_are_reencoded(self):
        response = tool_response("guardar_informacion", "{}")
        response["choices"][0]["message"]["tool_calls"][0]["function"]["arguments"] = {"año": 2018}
        assert json.loads(get_first_tool_call(response).arguments) == {"año": 2018}

    @pytest.mark.parametrize(
        "response",
        [None, {}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": None}]}, text_response("hi")],
    )
    def test_null_safe(self, response):
        assert has_tool_calls(response) is False
        assert get_first_tool_call(response) is None

    def test_content_missing(self):
        assert get_message_content(text_response(None)) == ""
        assert get_message_content({}) == ""


class TestIntrospection:
    def test_validate_config_ok(self):
        assert ChatCompletionClient(_config()).validate_config() == []

    def test_validate_config_problems(self):
        client = ChatCompletionClient(_config(api_key="", model="", temperature=2.5, max_tokens=0))
        errors = client.validate_config()
        assert "API key es requerida" in errors
        assert "Modelo es requerido" in errors
        assert "Temperature debe estar entre 0 y 2" in errors
        assert "Max tokens debe ser mayor a 0" in errors

    def test_get_config_masks_key(self):
        config = ChatCompletionClient(_config(api_key="sk-secret")).get_config()
        assert config["api_key"] == "[CONFIGURADA]"
        assert "sk-secret" not in json.dumps(config)

    def test_usage_stats(self):
        stats = ChatCompletionClient(_config()).get_usage_stats(text_response("hi"))
        assert stats == {
            "prompt_tokens": 10,
            "completion_tokens": 5,
            "total_tokens": 15,
            "model": "test/model",
        }
