"""
Analysis error types
"""

from enum import Enum
from typing import Any, Optional


class AnalysisErrorType(str, Enum):
    """Kinds of analysis failures"""
    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_ERROR = "provider_error"
    VALIDATION = "validation"
    INSUFFICIENT_CONTENT = "insufficient_content"
    PREFERENCE = "preference"


class AnalysisError(Exception):
    """Base analysis error"""
    error_type = AnalysisErrorType.PROVIDER_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)


class ProviderTimeoutError(AnalysisError):
    """The AI analyzer did not answer within the configured timeout"""
    error_type = AnalysisErrorType.PROVIDER_TIMEOUT


class ProviderError(AnalysisError):
    """The AI analyzer failed or returned something unusable"""
    error_type = AnalysisErrorType.PROVIDER_ERROR


class AnalysisValidationError(AnalysisError):
    """The AI analyzer response violates the response contract"""
    error_type = AnalysisErrorType.VALIDATION


class InsufficientContentError(AnalysisError):
    """Quality gate veto, raised only when gating is enforced"""
    error_type = AnalysisErrorType.INSUFFICIENT_CONTENT

    def __init__(self, message: str, report: Any = None):
        self.report = report
        super().__init__(message)


class PreferenceError(AnalysisError):
    """Malformed preference set"""
    error_type = AnalysisErrorType.PREFERENCE


# Failures the orchestrator recovers from with the rule-based fallback
RECOVERABLE_ERRORS = (ProviderTimeoutError, ProviderError, AnalysisValidationError)


class NotFoundError(ValueError):
    """A referenced site, history entry or alert does not exist"""


class DecisionAlreadyRecordedError(ValueError):
    """A history entry's decision can be recorded once"""
