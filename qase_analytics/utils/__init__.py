"""
Utilities - logging and error types
"""

from qase_analytics.utils.errors import (
    AgentError,
    MessageValidationError,
    QaseApiError,
    QaseAuthError,
    QaseRateLimitError,
    describe_error,
)
from qase_analytics.utils.logger import setup_logger

__all__ = [
    "AgentError",
    "MessageValidationError",
    "QaseApiError",
    "QaseAuthError",
    "QaseRateLimitError",
    "describe_error",
    "setup_logger",
]
