"""Utility functions for cqgateway."""

from cqgateway.utils.exceptions import (
    CqGatewayError,
    DecoderError,
    DecoderLaunchError,
    DecoderNotFoundError,
    DecoderTimeoutError,
    ErrorCategory,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "CqGatewayError",
    "DecoderError",
    "DecoderLaunchError",
    "DecoderNotFoundError",
    "DecoderTimeoutError",
    "ErrorCategory",
    "classify_exception",
    "sanitize_error_message",
]
