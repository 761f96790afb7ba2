from src.llm.client import (
    ChatCompletionClient,
    get_first_tool_call,
    get_message_content,
    has_tool_calls,
)
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

__all__ = [
    "ChatCompletionClient",
    "has_tool_calls",
    "get_first_tool_call",
    "get_message_content",
    "LLMError",
    "NetworkError",
    "LLMTimeoutError",
    "UpstreamAuthError",
    "UpstreamRateLimitError",
    "UpstreamBadRequestError",
    "UpstreamServerError",
    "UnexpectedLLMError",
]
