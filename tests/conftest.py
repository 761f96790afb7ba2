"""Shared test fixtures and helpers."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import pytest

from src.config import SessionConfig
from src.conversation.orchestrator import ConversationOrchestrator
from src.conversation.session_store import InMemorySessionStore
from src.conversation.slot_manager import SlotManager
from src.schemas.client_schema import ClientInfo, VehicleInfo
from src.schemas.conversation_schema import DataCollectionStatus
from src.schemas.function_schema import FunctionContext
from src.tools import quotes
from src.tools.autoparts import build_default_registry


def text_response(content: Optional[str]) -> dict[str, Any]:
    """A chat-completions body with a plain text reply."""
    return {
        "id": "gen-text",
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def tool_response(name: str, arguments: Union[str, dict[str, Any]]) -> dict[str, Any]:
    """A chat-completions body carrying one tool call."""
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments, ensure_ascii=False)
    return {
        "id": "gen-tool",
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": name, "arguments": arguments},
                        }
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ],
    }


class FakeLLMClient:
    """Scripted stand-in for ChatCompletionClient.

    Each call pops the next scripted item; exceptions are raised instead of returned.
    """

    def __init__(self, responses: Optional[list[Any]] = None, config_errors: Optional[list[str]] = None):
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []
        self.config_errors = config_errors or []

    def _next(self) -> dict[str, Any]:
        if not self.responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def chat_with_tools(self, messages, tools, tool_choice="auto", **options):
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        return self._next()

    async def create_chat_completion(self, messages, tools=None, tool_choice=None, **options):
        self.calls.append({"messages": messages, "tools": tools, "tool_choice": tool_choice})
        return self._next()

    def validate_config(self) -> list[str]:
        return list(self.config_errors)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def reset_quotes():
    quotes.reset()
    yield
    quotes.reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(session_timeout_sec=1800, sweep_interval_sec=300, clock=clock)


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def slot_manager():
    return SlotManager()


@pytest.fixture
def session_config():
    return SessionConfig(
        session_timeout_sec=1800,
        sweep_interval_sec=300,
        history_window=8,
        conversation_prefix="wa",
        serialize_turns=True,
    )


@pytest.fixture
def make_orchestrator(registry, store, session_config):
    """Build an orchestrator around a FakeLLMClient scripted with ``responses``."""

    def _make(responses: Optional[list[Any]] = None, **kwargs: Any) -> ConversationOrchestrator:
        llm = kwargs.pop("llm", None) or FakeLLMClient(responses)
        return ConversationOrchestrator(
            llm,
            registry=kwargs.pop("registry", registry),
            store=kwargs.pop("store", store),
            config=kwargs.pop("config", session_config),
        )

    return _make


def make_context(
    client_info: Optional[ClientInfo] = None,
    status: DataCollectionStatus = DataCollectionStatus.GREETING,
) -> FunctionContext:
    return FunctionContext(
        user_id="5215512345678",
        conversation_id="wa-5215512345678",
        current_client_info=client_info or ClientInfo(),
        current_status=status,
    )


def complete_client_info() -> ClientInfo:
    return ClientInfo(
        nombre="Juan Pérez",
        pieza_necesaria="pastillas de freno",
        vehiculo=VehicleInfo(
            marca="Toyota", modelo="Corolla", anio=2018, litraje="1.8L", numero_serie="ABC12345"
        ),
    )
