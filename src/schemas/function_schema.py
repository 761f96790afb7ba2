"""Tool-call and function execution data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.schemas.client_schema import ClientInfo
from src.schemas.conversation_schema import DataCollectionStatus


class ToolCallInfo(BaseModel):
    """Function call emitted by the model. Lives for one turn only."""

    id: str = ""
    name: str
    arguments: str = ""


class FieldStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"


class FieldOutcome(BaseModel):
    """Result of applying one field from a function call."""

    field: str
    status: FieldStatus
    value: Any = None
    reason: Optional[str] = None


class FunctionResult(BaseModel):
    """Outcome of executing a registered function."""

    success: bool
    data: Optional[dict[str, Any]] = None
    client_info: Optional[ClientInfo] = None
    next_step: Optional[DataCollectionStatus] = None
    message: Optional[str] = None
    error: Optional[str] = None
    field_outcomes: list[FieldOutcome] = Field(default_factory=list)

    @property
    def applied_fields(self) -> list[str]:
        return [o.field for o in self.field_outcomes if o.status == FieldStatus.APPLIED]


@dataclass
class FunctionContext:
    """Session snapshot handed to every function handler."""

    user_id: str
    conversation_id: str
    current_client_info: ClientInfo
    current_status: DataCollectionStatus
