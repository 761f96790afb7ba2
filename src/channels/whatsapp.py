"""
WhatsApp bridge: maps an inbound message to a conversation turn and delivers the reply.

Transport, persistence and live-dashboard push are out of scope here; they are
injected as the ``MessageSender``, ``MessageRecorder`` and ``MessageBroadcaster``
protocols so the webhook layer can plug in its own implementations.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from src.config import settings
from src.conversation.orchestrator import ConversationOrchestrator, TurnResult
from src.schemas.conversation_schema import Role
from src.utils import normalize_phone

logger = logging.getLogger(__name__)


class SendResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class MessageSender(Protocol):
    """Delivers a text message to a WhatsApp number."""

    async def send_message(self, to: str, message: str) -> SendResult:
        ...


@runtime_checkable
class MessageRecorder(Protocol):
    """Persists messages for the operator inbox."""

    async def record(
        self,
        conversation_id: str,
        phone_number: str,
        role: Role,
        content: str,
        contact_name: Optional[str] = None,
    ) -> None:
        ...


@runtime_checkable
class MessageBroadcaster(Protocol):
    """Pushes live updates to connected dashboards."""

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        ...


@dataclass
class BridgeResult:
    conversation_id: str
    turn: TurnResult
    send: SendResult

    @property
    def delivered(self) -> bool:
        return self.send.success


def conversation_id_for(phone_number: str, prefix: Optional[str] = None) -> str:
    """Stable conversation id for a phone number, e.g. ``wa-5215512345678``."""
    digits = normalize_phone(phone_number).lstrip("+")
    if not digits:
        raise ValueError(f"Invalid phone number: {phone_number!r}")
    return f"{prefix or settings.session.conversation_prefix}-{digits}"


class WhatsAppAssistantBridge:
    """Runs inbound WhatsApp messages through the orchestrator and sends the reply."""

    def __init__(
        self,
        orchestrator: ConversationOrchestrator,
        sender: MessageSender,
        recorder: Optional[MessageRecorder] = None,
        broadcaster: Optional[MessageBroadcaster] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.sender = sender
        self.recorder = recorder
        self.broadcaster = broadcaster

    async def handle_incoming(
        self, phone_number: str, text: str, contact_name: Optional[str] = None
    ) -> BridgeResult:
        """
        Process one inbound message end to end.

        Send failures are reported in ``BridgeResult.send``; they never raise.

        Raises:
            ValueError: If the phone number has no digits.
        """
        conversation_id = conversation_id_for(phone_number)
        user_id = normalize_phone(phone_number).lstrip("+")

        await self._record(conversation_id, user_id, Role.USER, text, contact_name)
        turn = await self.orchestrator.process_message(conversation_id, text, user_id)
        send = await self._send(user_id, turn.content)
        await self._record(conversation_id, user_id, Role.ASSISTANT, turn.content, contact_name)
        await self._emit(
            "new_message",
            {
                "conversationId": conversation_id,
                "phoneNumber": user_id,
                "content": turn.content,
                "status": turn.conversation_state.status.value,
                "functionName": turn.function_name,
                "delivered": send.success,
            },
        )
        return BridgeResult(conversation_id=conversation_id, turn=turn, send=send)

    async def _send(self, to: str, message: str) -> SendResult:
        try:
            result = await self.sender.send_message(to, message)
        except Exception as exc:
            logger.exception("WhatsApp send to %s failed", to)
            return SendResult(success=False, error=str(exc))
        if not result.success:
            logger.warning("WhatsApp send to %s rejected: %s", to, result.error)
        return result

    async def _record(
        self,
        conversation_id: str,
        phone_number: str,
        role: Role,
        content: str,
        contact_name: Optional[str],
    ) -> None:
        if self.recorder is None:
            return
        try:
            await self.recorder.record(conversation_id, phone_number, role, content, contact_name)
        except Exception:
            logger.exception("Recording %s message for %s failed", role.value, conversation_id)

    async def _emit(self, event: str, payload: dict[str, Any]) -> None:
        if self.broadcaster is None:
            return
        try:
            await self.broadcaster.emit(event, payload)
        except Exception:
            logger.exception("Broadcasting %s failed", event)
