"""Conversation session and chat message schemas."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.client_schema import ClientInfo


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class DataCollectionStatus(str, Enum):
    """Progress of one conversation's data gathering."""

    GREETING = "greeting"
    COLLECTING_NAME = "collecting_name"
    COLLECTING_PART = "collecting_part"
    COLLECTING_BRAND = "collecting_brand"
    COLLECTING_MODEL = "collecting_model"
    COLLECTING_YEAR = "collecting_year"
    COLLECTING_ENGINE = "collecting_engine"
    COLLECTING_SERIAL = "collecting_serial"
    COLLECTING_SPECIAL = "collecting_special"
    DATA_COMPLETE = "data_complete"
    GENERATING_QUOTE = "generating_quote"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """A single turn in a conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    function_called: Optional[str] = None


@dataclass
class ConversationSession:
    """
    Per-conversation state owned by the session store.

    Only the orchestrator mutates it, once per turn. ``messages`` is
    append-only.
    """

    conversation_id: str
    user_id: str
    status: DataCollectionStatus = DataCollectionStatus.GREETING
    client_info: ClientInfo = field(default_factory=ClientInfo)
    messages: list[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)

    def append_message(
        self,
        role: Role,
        content: str,
        function_called: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            role=role,
            content=content,
            function_called=function_called,
            timestamp=timestamp or _utcnow(),
        )
        self.messages.append(message)
        return message

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_activity = now or _utcnow()
