"""Shared helpers for consistent HTTP error body formatting."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cqgateway.utils.exceptions import ErrorCategory, classify_exception, sanitize_error_message

_CATEGORY_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.RECOVERABLE: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.PERMISSION: 403,
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.RETRYABLE: 503,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.FATAL: 500,
}


def classify_http_status(exc: Exception) -> int:
    """Map an exception to the HTTP status a decoder endpoint answers with."""
    _, category, _ = classify_exception(exc)
    return _CATEGORY_STATUS.get(category, 500)


def unknown_error_detail(exc: Exception | None) -> str:
    """Format generic unknown-error detail consistently across endpoints."""
    if exc is None:
        return "An unexpected error occurred"
    return sanitize_error_message(getattr(exc, "message", None) or str(exc)) or "An unexpected error occurred"


def validation_error_body(exc: PydanticValidationError) -> dict[str, Any]:
    """400 body for a request that failed schema validation."""
    return {"error": "Validation error", "details": json.loads(exc.json(include_url=False))}


def invalid_json_body(exc: Exception) -> dict[str, Any]:
    return {
        "error": "Validation error",
        "details": [{"type": "json_invalid", "loc": ["body"], "msg": f"Invalid JSON body: {exc}"}],
    }


def internal_error_body(exc: Exception | None) -> dict[str, Any]:
    return {"error": "Internal server error", "message": unknown_error_detail(exc)}
