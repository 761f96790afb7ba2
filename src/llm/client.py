"""
Minimal chat-completions client for OpenRouter-compatible endpoints.

Builds the request (messages, declared tools, sampling parameters), sends a
single POST per call, and classifies failures into the typed errors in
``src.llm.errors``. It never retries: rate limits and server errors are
surfaced to the orchestrator, which decides what the customer sees.

Usage:
    client = ChatCompletionClient()
    response = await client.chat_with_tools(messages, registry.get_function_definitions())
    if has_tool_calls(response):
        call = get_first_tool_call(response)
"""

import json
import logging
from dataclasses import replace
from typing import Any, Optional, Union

import httpx

from src.config import LLMConfig, settings
from src.llm.errors import (
    LLMError,
    LLMTimeoutError,
    NetworkError,
    UnexpectedLLMError,
    UpstreamAuthError,
    UpstreamBadRequestError,
    UpstreamRateLimitError,
    UpstreamServerError,
)
from src.schemas.function_schema import ToolCallInfo

logger = logging.getLogger(__name__)

ToolChoice = Union[str, dict[str, Any]]


def _first_message(response: Any) -> dict[str, Any]:
    if not isinstance(response, dict):
        return {}
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices:
        return {}
    first = choices[0]
    if not isinstance(first, dict):
        return {}
    message = first.get("message")
    return message if isinstance(message, dict) else {}


def _tool_calls(response: Any) -> list[Any]:
    calls = _first_message(response).get("tool_calls")
    return calls if isinstance(calls, list) else []


def has_tool_calls(response: Any) -> bool:
    """True if the first choice carries at least one tool call."""
    return len(_tool_calls(response)) > 0


def get_first_tool_call(response: Any) -> Optional[ToolCallInfo]:
    """Extract the first tool call, or None when absent or unusable."""
    calls = _tool_calls(response)
    if not calls or not isinstance(calls[0], dict):
        return None
    call = calls[0]
    function = call.get("function")
    if not isinstance(function, dict) or not function.get("name"):
        return None
    arguments = function.get("arguments")
    if arguments is None:
        arguments = ""
    elif not isinstance(arguments, str):
        # Some providers send the arguments already decoded.
        arguments = json.dumps(arguments, ensure_ascii=False)
    return ToolCallInfo(id=str(call.get("id") or ""), name=str(function["name"]), arguments=arguments)


def get_message_content(response: Any) -> str:
    """Text content of the first choice, or an empty string."""
    content = _first_message(response).get("content")
    return content if isinstance(content, str) else ""


def _upstream_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return ""


def _classify_status(response: httpx.Response) -> LLMError:
    status = response.status_code
    detail = _upstream_message(response)
    if status == 401:
        return UpstreamAuthError("API key inválida para OpenRouter", status)
    if status == 429:
        return UpstreamRateLimitError(
            "Límite de rate excedido. Intenta de nuevo en unos momentos.", status
        )
    if status == 400:
        return UpstreamBadRequestError(
            f"Error de request: {detail or 'Request inválido'}", detail, status
        )
    if status == 500:
        return UpstreamServerError("Error interno de OpenRouter. Intenta de nuevo.", status)
    return UnexpectedLLMError(f"Error de OpenRouter ({status}): {detail or response.reason_phrase}", status)


class ChatCompletionClient:
    """Async client for ``POST {base_url}/chat/completions``."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **overrides: Any,
    ) -> None:
        config = config or settings.llm
        self.config = replace(config, **overrides) if overrides else config
        self._transport = transport
        if not self.config.api_key:
            logger.warning("LLM API key is not configured; set OPENROUTER_API_KEY")

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def build_payload(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        tool_choice: Optional[ToolChoice] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> dict[str, Any]:
        """Assemble the request body, dropping unset fields."""
        payload: dict[str, Any] = {
            "model": model or self.config.model,
            "messages": messages,
            "tools": tools or None,
            "tool_choice": tool_choice if tools else None,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "presence_penalty": self.config.presence_penalty,
            "stream": False,
        }
        return {key: value for key, value in payload.items() if value is not None}

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.app_title,
        }

    async def create_chat_completion(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        tool_choice: Optional[ToolChoice] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Send one chat-completions request and return the decoded body.

        Raises:
            LLMError: a classified subclass for every failure mode.
        """
        payload = self.build_payload(messages, tools, tool_choice, temperature, max_tokens, model)
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        logger.debug(
            "Sending chat completion: model=%s messages=%d tools=%d tool_choice=%s",
            payload["model"],
            len(messages),
            len(payload.get("tools", [])),
            payload.get("tool_choice"),
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_ms / 1000, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException:
            raise LLMTimeoutError("Timeout: El modelo tardó demasiado en responder") from None
        except httpx.TransportError as exc:
            raise NetworkError(f"Error de red: {exc}") from exc
        except Exception as exc:
            raise UnexpectedLLMError(f"Error inesperado: {exc}") from exc

        if response.is_error:
            error = _classify_status(response)
            logger.warning("Chat completion failed (%d): %s", response.status_code, error)
            raise error

        try:
            body = response.json()
        except ValueError as exc:
            raise UnexpectedLLMError(f"Error inesperado: respuesta no es JSON ({exc})") from exc
        if not isinstance(body, dict):
            raise UnexpectedLLMError("Error inesperado: respuesta con formato desconocido")

        logger.debug(
            "Chat completion received: id=%s tool_calls=%s content_length=%d usage=%s",
            body.get("id"),
            has_tool_calls(body),
            len(get_message_content(body)),
            body.get("usage"),
        )
        return body

    async def simple_chat(self, messages: list[dict[str, Any]], **options: Any) -> str:
        """Plain chat without tools; returns the reply text."""
        response = await self.create_chat_completion(messages, **options)
        return get_message_content(response)

    async def chat_with_tools(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        tool_choice: ToolChoice = "auto",
        **options: Any,
    ) -> dict[str, Any]:
        """Chat with function declarations attached."""
        return await self.create_chat_completion(
            messages, tools=tools, tool_choice=tool_choice, **options
        )

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_usage_stats(self, response: Any) -> dict[str, Any]:
        usage = response.get("usage") if isinstance(response, dict) else None
        usage = usage if isinstance(usage, dict) else {}
        return {
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
            "total_tokens": usage.get("total_tokens", 0),
            "model": self.config.model,
        }

    def validate_config(self) -> list[str]:
        """Return human-readable configuration problems; empty when valid."""
        errors: list[str] = []
        if not self.config.api_key:
            errors.append("API key es requerida")
        if not self.config.model:
            errors.append("Modelo es requerido")
        if not self.config.base_url:
            errors.append("Base URL es requerida")
        if not 0 <= self.config.temperature <= 2:
            errors.append("Temperature debe estar entre 0 y 2")
        if self.config.max_tokens <= 0:
            errors.append("Max tokens debe ser mayor a 0")
        return errors

    def get_config(self) -> dict[str, Any]:
        """Current configuration with the API key masked."""
        return {
            "base_url": self.config.base_url,
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "timeout_ms": self.config.timeout_ms,
            "api_key": "[CONFIGURADA]" if self.config.api_key else "[NO CONFIGURADA]",
        }
