"""Typed failures raised by the chat-completions client.

Messages are Spanish because the orchestrator logs them next to the
customer-facing conversation; they are never shown to the customer.
"""

from typing import Optional


class LLMError(Exception):
    """Base class for every failure surfaced by the LLM client."""

    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(LLMError):
    """Connection could not be established or was dropped."""

    retryable = True


class LLMTimeoutError(NetworkError):
    """The upstream did not answer within the configured timeout."""


class UpstreamAuthError(LLMError):
    """401: the API key was rejected. Fatal until configuration changes."""


class UpstreamRateLimitError(LLMError):
    """429: surfaced to the caller, never retried automatically."""


class UpstreamBadRequestError(LLMError):
    """400: the request was rejected; carries the upstream message."""

    def __init__(self, message: str, upstream_message: str = "", status_code: int = 400) -> None:
        super().__init__(message, status_code)
        self.upstream_message = upstream_message


class UpstreamServerError(LLMError):
    """500: upstream failure, safe to retry later."""

    retryable = True


class UnexpectedLLMError(LLMError):
    """Anything that does not fit the categories above."""
