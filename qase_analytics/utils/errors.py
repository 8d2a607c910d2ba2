"""
Custom error classes and user-facing error translation
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
import openai


class AgentError(Exception):
    """Base exception for engine errors"""
    pass


class QaseApiError(AgentError):
    """Qase API rejected the request"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_fields: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_fields = error_fields


class QaseAuthError(QaseApiError):
    """Qase API token is invalid or expired"""

    def __init__(self, message: str = "Invalid or expired Qase API token"):
        super().__init__(message, status_code=401)


class QaseRateLimitError(QaseApiError):
    """Qase API rate limit reached"""

    def __init__(self, retry_after: Optional[int] = None):
        super().__init__("Qase API rate limit exceeded", status_code=429)
        self.retry_after = retry_after


class MessageValidationError(AgentError):
    """User message rejected before reaching the orchestrator"""
    pass


QASE_AUTH_MESSAGE = "Invalid or expired Qase API token. Please reconnect your Qase account."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
TIMEOUT_MESSAGE = "Request timed out. Please try a simpler question."
LLM_AUTH_MESSAGE = "OpenAI API key is invalid. Please contact support."
GENERIC_MESSAGE = "I encountered an error processing your request. Please try again."

_TIMEOUT_TYPES = (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException, openai.APITimeoutError)


def describe_error(exc: BaseException) -> str:
    """
    Map an exception raised below the orchestrator to a user-facing message.

    Typed checks come first; the string checks catch errors that reach us
    wrapped by LangChain or re-raised as plain exceptions.
    """
    if isinstance(exc, QaseAuthError):
        return QASE_AUTH_MESSAGE
    if isinstance(exc, (openai.RateLimitError, QaseRateLimitError)):
        return RATE_LIMIT_MESSAGE
    if isinstance(exc, _TIMEOUT_TYPES):
        return TIMEOUT_MESSAGE
    if isinstance(exc, openai.AuthenticationError):
        return LLM_AUTH_MESSAGE

    text = str(exc)
    lowered = text.lower()
    if "429" in text or "rate_limit" in lowered or "rate limit" in lowered:
        return RATE_LIMIT_MESSAGE
    if "timeout" in lowered or "ETIMEDOUT" in text or "timed out" in lowered:
        return TIMEOUT_MESSAGE
    if "401" in text or "invalid_api_key" in lowered:
        return LLM_AUTH_MESSAGE
    return GENERIC_MESSAGE


def error_details(exc: BaseException) -> Dict[str, Any]:
    """Structured view of an exception for logging."""
    details: Dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, QaseApiError):
        details["status_code"] = exc.status_code
        if exc.error_fields:
            details["error_fields"] = exc.error_fields
    if isinstance(exc, QaseRateLimitError) and exc.retry_after is not None:
        details["retry_after"] = exc.retry_after
    return details
