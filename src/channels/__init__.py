from src.channels.whatsapp import (
    BridgeResult,
    MessageBroadcaster,
    MessageRecorder,
    MessageSender,
    SendResult,
    WhatsAppAssistantBridge,
    conversation_id_for,
)

__all__ = [
    "WhatsAppAssistantBridge",
    "BridgeResult",
    "SendResult",
    "MessageSender",
    "MessageRecorder",
    "MessageBroadcaster",
    "conversation_id_for",
]
