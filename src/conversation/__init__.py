from src.conversation.session_store import InMemorySessionStore, SessionStore
from src.conversation.slot_manager import FieldValidationError, SlotManager
from src.conversation.state_machine import (
    REQUIRED_FIELDS,
    derive_status,
    get_missing_fields,
    is_client_info_complete,
)

# The orchestrator is imported from src.conversation.orchestrator directly:
# it depends on src.tools, which in turn imports this package.
__all__ = [
    "SessionStore",
    "InMemorySessionStore",
    "SlotManager",
    "FieldValidationError",
    "REQUIRED_FIELDS",
    "derive_status",
    "get_missing_fields",
    "is_client_info_complete",
]
