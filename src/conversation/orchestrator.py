"""
Turn orchestration for the auto-parts assistant.

One call to ``process_message`` is one customer turn:

    1. get or create the session (a new one is seeded with the welcome message)
    2. append the user message
    3. first model call with every exposed function declared
    4. tool stage: parse arguments, execute, merge the result into the session
    5. follow-up stage: second model call without tools for the reply text,
       falling back to a canned reply keyed by function name if it fails
    6. append the assistant reply

Any failure in steps 3-6 is turned into an apology turn; the customer always
gets an answer.

Usage:
    orchestrator = ConversationOrchestrator(ChatCompletionClient())
    result = await orchestrator.process_message("wa-5215512345678", "Hola", "5215512345678")
"""

import asyncio
import weakref
from dataclasses import dataclass
from typing import Any, Optional

from src.config import SessionConfig, settings
from src.conversation.session_store import InMemorySessionStore, SessionStore
from src.conversation.state_machine import next_status_after_update
from src.llm.client import ChatCompletionClient, get_first_tool_call, get_message_content, has_tool_calls
from src.llm.errors import LLMError
from src.logging_context import get_conversation_logger, set_conversation_id
from src.prompts.prompt_templates import build_client_context, build_fallback_response
from src.prompts.system_prompts import (
    APOLOGY_MESSAGE,
    COULD_NOT_PROCESS_MESSAGE,
    EMPTY_FOLLOWUP_MESSAGE,
    FUNCTION_FAILED_NOTE,
    FUNCTION_SAVED_NOTE,
    WELCOME_MESSAGE,
)
from src.schemas.client_schema import merge_client_info
from src.schemas.conversation_schema import ChatMessage, ConversationSession, Role
from src.schemas.function_schema import FunctionContext, FunctionResult, ToolCallInfo
from src.tools.autoparts import build_default_registry
from src.tools.registry import FunctionRegistry
from src.tools.tool_call_parser import parse_tool_arguments

logger = get_conversation_logger(__name__)


@dataclass
class TurnResult:
    """What the channel needs to reply to one customer message."""

    content: str
    conversation_state: ConversationSession
    function_called: bool = False
    function_name: Optional[str] = None
    error: Optional[str] = None


class ConversationOrchestrator:
    """Drives each turn through the model, the function registry and the session store."""

    def __init__(
        self,
        llm_client: ChatCompletionClient,
        registry: Optional[FunctionRegistry] = None,
        store: Optional[SessionStore] = None,
        config: Optional[SessionConfig] = None,
    ) -> None:
        self.llm = llm_client
        self.registry = registry if registry is not None else build_default_registry()
        self.store = store if store is not None else InMemorySessionStore()
        self.config = config if config is not None else settings.session
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------ #
    # Session lifecycle
    # ------------------------------------------------------------------ #

    def start_conversation(self, conversation_id: str, user_id: str) -> ConversationSession:
        """Create a session seeded with the welcome message and store it."""
        now = self.store.now()
        session = ConversationSession(
            conversation_id=conversation_id,
            user_id=user_id,
            created_at=now,
            last_activity=now,
        )
        session.append_message(Role.ASSISTANT, WELCOME_MESSAGE, timestamp=now)
        self.store.save(session)
        logger.info("Conversation started for user %s", user_id)
        return session

    def reset_conversation(self, conversation_id: str, user_id: str) -> ConversationSession:
        self.store.delete(conversation_id)
        return self.start_conversation(conversation_id, user_id)

    def get_conversation(self, conversation_id: str) -> Optional[ConversationSession]:
        return self.store.get(conversation_id)

    def get_conversation_history(self, conversation_id: str) -> list[ChatMessage]:
        session = self.store.get(conversation_id)
        return list(session.messages) if session else []

    # ------------------------------------------------------------------ #
    # Turn processing
    # ------------------------------------------------------------------ #

    async def process_message(
        self, conversation_id: str, user_text: str, user_id: str
    ) -> TurnResult:
        """Process one customer message and return the assistant's reply."""
        set_conversation_id(conversation_id)
        if not self.config.serialize_turns:
            return await self._process(conversation_id, user_text, user_id)
        async with self._lock_for(conversation_id):
            return await self._process(conversation_id, user_text, user_id)

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    async def _process(self, conversation_id: str, user_text: str, user_id: str) -> TurnResult:
        session = self.store.get(conversation_id)
        if session is None:
            session = self.start_conversation(conversation_id, user_id)

        now = self.store.now()
        session.touch(now)
        session.append_message(Role.USER, user_text, timestamp=now)
        self.store.save(session)

        try:
            messages = self.build_messages_for_llm(session)
            context = FunctionContext(
                user_id=user_id,
                conversation_id=conversation_id,
                current_client_info=session.client_info,
                current_status=session.status,
            )
            response = await self.llm.chat_with_tools(
                messages, self.registry.get_function_definitions(), tool_choice="auto"
            )

            call = get_first_tool_call(response) if has_tool_calls(response) else None
            if call is not None:
                content = await self._run_tool_stage(session, call, messages, context)
            else:
                content = get_message_content(response) or COULD_NOT_PROCESS_MESSAGE
        except Exception as exc:
            logger.exception("Turn failed")
            session.append_message(Role.ASSISTANT, APOLOGY_MESSAGE, timestamp=self.store.now())
            self.store.save(session)
            return TurnResult(
                content=APOLOGY_MESSAGE, conversation_state=session, error=str(exc)
            )

        function_name = call.name if call is not None else None
        session.append_message(
            Role.ASSISTANT, content, function_called=function_name, timestamp=self.store.now()
        )
        self.store.save(session)
        logger.info(
            "Turn complete: status=%s function=%s", session.status.value, function_name
        )
        return TurnResult(
            content=content,
            conversation_state=session,
            function_called=call is not None,
            function_name=function_name,
        )

    def build_messages_for_llm(self, session: ConversationSession) -> list[dict[str, Any]]:
        """System context followed by the most recent history window."""
        system = {
            "role": Role.SYSTEM.value,
            "content": build_client_context(session.client_info, session.status),
        }
        history = [
            {"role": m.role.value, "content": m.content}
            for m in session.messages[-self.config.history_window:]
        ]
        return [system, *history]

    async def _run_tool_stage(
        self,
        session: ConversationSession,
        call: ToolCallInfo,
        messages: list[dict[str, Any]],
        context: FunctionContext,
    ) -> str:
        parsed = parse_tool_arguments(call.arguments, call.name)
        logger.info("Tool call %s (arguments parsed at stage %s)", call.name, parsed.stage.value)
        result = await self.registry.execute_function(call.name, parsed.arguments, context)
        self._apply_function_result(session, result)

        if result.success:
            note = FUNCTION_SAVED_NOTE
        else:
            note = FUNCTION_FAILED_NOTE.format(error=result.error or "datos inválidos")
        followup = [*messages, {"role": Role.SYSTEM.value, "content": note}]
        return await self._run_followup_stage(call.name, result, followup)

    async def _run_followup_stage(
        self, function_name: str, result: FunctionResult, messages: list[dict[str, Any]]
    ) -> str:
        try:
            response = await self.llm.create_chat_completion(messages)
        except LLMError as exc:
            logger.warning("Follow-up call failed after %s, using fallback: %s", function_name, exc)
            return build_fallback_response(function_name, result)
        return get_message_content(response) or EMPTY_FOLLOWUP_MESSAGE

    def _apply_function_result(self, session: ConversationSession, result: FunctionResult) -> None:
        if not result.success:
            return
        if result.client_info is not None:
            session.client_info = merge_client_info(session.client_info, result.client_info)
        session.status = next_status_after_update(
            session.status, session.client_info, result.next_step
        )

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def validate_service(self) -> list[str]:
        """Configuration problems across the LLM client and the registry."""
        errors = [f"OpenRouter: {e}" for e in self.llm.validate_config()]
        errors.extend(f"Functions: {e}" for e in self.registry.validate_functions())
        return errors

    def get_stats(self) -> dict[str, Any]:
        return self.store.get_stats()
