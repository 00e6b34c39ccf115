"""Helpers for attaching rate-limit outcomes to HTTP responses."""

from __future__ import annotations

from typing import Any

from starlette.responses import Response

from cqgateway.gateway.rate_limit import RateLimitResult


def rate_limit_exceeded_body(result: RateLimitResult, window_ms: int) -> dict[str, Any]:
    """Build the 429 body naming the limit and the window."""
    window_seconds = window_ms / 1000
    window_text = f"{window_seconds:g}"
    return {
        "error": "Rate limit exceeded",
        "message": f"Too many requests. Limit: {result.limit} requests per {window_text} seconds",
    }


def apply_rate_limit_headers(response: Response, result: RateLimitResult) -> Response:
    """Set X-RateLimit-* headers; every response on a limited route carries them."""
    for name, value in result.headers().items():
        response.headers[name] = value
    return response
