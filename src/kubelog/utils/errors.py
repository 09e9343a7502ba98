"""
Error handling framework for kubelog.

This module provides:
- Hierarchical exception classes
- Error context preservation
- Failure classification for the streaming retry path
- Structured error responses
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import traceback


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    NETWORK = "network"
    HTTP = "http"
    DECODE = "decode"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    CANCELLATION = "cancellation"
    EXPORT = "export"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None


class KubeLogError(Exception):
    """Base exception for all kubelog errors."""

    code: str = "KUBELOG_ERROR"
    default_message: str = "An error occurred in kubelog"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN
    is_retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None
    ):
        """Initialize kubelog error."""
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause

        if not self.context.stack_trace and cause is not None:
            self.context.stack_trace = "".join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )

        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "is_retryable": self.is_retryable,
                "suggestions": self.get_suggestions(),
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


class ConfigurationError(KubeLogError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Verify KUBELOG_* environment variables",
        ]


class ValidationError(KubeLogError):
    """Input validation errors."""
    code = "VALIDATION_ERROR"
    default_message = "Validation error"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING

    def __init__(self, field: str, value: Any, constraint: str, **kwargs):
        self.field = field
        self.value = value
        self.constraint = constraint
        message = f"Validation failed for field '{field}': {constraint}"
        super().__init__(message, **kwargs)


# Network errors

class NetworkError(KubeLogError):
    """Network-related errors."""
    code = "NETWORK_ERROR"
    default_message = "Network error occurred"
    category = ErrorCategory.NETWORK
    is_retryable = True


class ConnectionError(NetworkError):
    """DNS failure, refused connection, timeout or a dropped stream."""
    code = "CONNECTION_ERROR"
    default_message = "Failed to establish connection"

    def get_suggestions(self) -> List[str]:
        return [
            "Check your network connection",
            "Verify the API server address is reachable",
        ]


class DecodeError(ConnectionError):
    """Malformed byte sequence in the log stream."""
    code = "DECODE_ERROR"
    default_message = "Could not decode log stream"
    category = ErrorCategory.DECODE


class HttpStatusError(NetworkError):
    """Non-2xx response from the API server."""
    code = "HTTP_STATUS_ERROR"
    default_message = "Unexpected HTTP status"
    category = ErrorCategory.HTTP

    def __init__(self, status: int, reason: Optional[str] = None, message: Optional[str] = None, **kwargs):
        self.status = status
        self.reason = reason or ""
        if message is None:
            message = f"HTTP {status}: {self.reason}" if self.reason else f"HTTP {status}"
        super().__init__(message, **kwargs)
        self.is_retryable = status >= 500 or status == 429

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["error"]["status"] = self.status
        return data


class AuthenticationError(HttpStatusError):
    """401 from the API server."""
    code = "AUTH_ERROR"
    category = ErrorCategory.AUTHENTICATION

    def __init__(self, reason: Optional[str] = None, **kwargs):
        super().__init__(
            401, reason,
            message="Authentication failed. Please check your credentials.",
            **kwargs
        )


class AuthorizationError(HttpStatusError):
    """403 from the API server."""
    code = "AUTHZ_ERROR"
    category = ErrorCategory.AUTHORIZATION

    def __init__(self, reason: Optional[str] = None, **kwargs):
        super().__init__(
            403, reason,
            message="Permission denied. You do not have access to this resource.",
            **kwargs
        )


class NotFoundError(HttpStatusError):
    """404 from the API server."""
    code = "NOT_FOUND"

    def __init__(self, reason: Optional[str] = None, **kwargs):
        super().__init__(404, reason, message="Resource not found.", **kwargs)


class StreamCancelledError(KubeLogError):
    """The session tore the connection down on purpose."""
    code = "STREAM_CANCELLED"
    default_message = "Log stream cancelled"
    category = ErrorCategory.CANCELLATION
    severity = ErrorSeverity.DEBUG


class ExportError(KubeLogError):
    """Nothing could be exported."""
    code = "EXPORT_ERROR"
    default_message = "no lines"
    category = ErrorCategory.EXPORT
    severity = ErrorSeverity.WARNING


def http_error_for_status(status: int, reason: Optional[str] = None) -> HttpStatusError:
    """Map an HTTP status to the matching error class."""
    if status == 401:
        return AuthenticationError(reason)
    if status == 403:
        return AuthorizationError(reason)
    if status == 404:
        return NotFoundError(reason)
    return HttpStatusError(status, reason)


__all__ = [
    'KubeLogError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'ValidationError',
    'NetworkError',
    'ConnectionError',
    'DecodeError',
    'HttpStatusError',
    'AuthenticationError',
    'AuthorizationError',
    'NotFoundError',
    'StreamCancelledError',
    'ExportError',
    'http_error_for_status',
]
