"""
Exception hierarchy and error handling utilities for cqgateway.

Provides:
- Custom exception classes with error codes
- Error categorization (validation, recoverable, fatal, ...)
- Safe error message formatting (no sensitive data leak)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


class CqGatewayError(Exception):
    """Base exception for all cqgateway errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class DecoderError(CqGatewayError):
    """The decoder ran and exited with a non-zero status."""

    def __init__(self, stderr: str, exit_code: int):
        message = stderr.strip() or f"cq exited with code {exit_code}"
        super().__init__(
            message,
            code="DECODER_ERROR",
            category=ErrorCategory.RECOVERABLE,
            details={"exit_code": exit_code},
        )
        self.stderr = stderr
        self.exit_code = exit_code


class DecoderLaunchError(CqGatewayError):
    """The decoder process could not be started at all.

    The OS reason and binary path stay on the instance for logs; the message
    surfaced to callers is fixed.
    """

    def __init__(self, binary_path: str, reason: str):
        super().__init__(
            "Failed to spawn cq process",
            code="DECODER_LAUNCH_FAILED",
            category=ErrorCategory.FATAL,
        )
        self.binary_path = binary_path
        self.reason = reason


class DecoderNotFoundError(CqGatewayError):
    """Decoder binary is missing at the configured path."""

    def __init__(self, binary_path: str):
        super().__init__(
            f"cq binary not found at {binary_path}. Please ensure the binary is built and available.",
            code="DECODER_NOT_FOUND",
            category=ErrorCategory.FATAL,
            details={"binary_path": binary_path},
        )


class DecoderTimeoutError(CqGatewayError):
    """Decoder invocation exceeded its deadline and was killed."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"cq did not finish within {timeout_seconds}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"timeout_seconds": timeout_seconds},
        )


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: Exception) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Returns:
        Tuple of (error_code, category, should_retry)
    """
    if isinstance(exc, CqGatewayError):
        return exc.code, exc.category, exc.category in (ErrorCategory.RETRYABLE, ErrorCategory.RATE_LIMIT)

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND, False

    if isinstance(exc, PermissionError):
        return "PERMISSION_DENIED", ErrorCategory.PERMISSION, False

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, ValueError):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    if isinstance(exc, (KeyError, TypeError)):
        return "INVALID_ARGUMENT", ErrorCategory.VALIDATION, False

    if isinstance(exc, ConnectionError):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
