"""
OpenAI error types
"""

from typing import Optional
from enum import Enum


class OpenAIErrorType(str, Enum):
    """Types of OpenAI API errors"""
    RATE_LIMIT = "rate_limit"
    TOKEN_LIMIT = "token_limit"
    INVALID_REQUEST = "invalid_request"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    UNKNOWN = "unknown"


# Errors that retrying cannot fix
NON_RETRYABLE_ERRORS = frozenset({
    OpenAIErrorType.AUTHENTICATION,
    OpenAIErrorType.PERMISSION,
    OpenAIErrorType.INVALID_REQUEST,
    OpenAIErrorType.TOKEN_LIMIT,
})


class OpenAIError(Exception):
    """Custom OpenAI service error"""
    def __init__(self, message: str, error_type: OpenAIErrorType, retry_after: Optional[float] = None):
        self.message = message
        self.error_type = error_type
        self.retry_after = retry_after
        super().__init__(self.message)
