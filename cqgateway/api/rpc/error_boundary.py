"""Common MCP error-boundary helpers for dispatch."""

from __future__ import annotations

from typing import Any, Callable

from cqgateway.api.rpc.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    RpcResult,
)
from cqgateway.utils.exceptions import (
    CqGatewayError,
    classify_exception,
    sanitize_error_message,
)

RpcErrorBuilder = Callable[[int, str, Any], dict[str, Any]]


def unknown_method_result(*, method: str, rpc_error: RpcErrorBuilder) -> RpcResult:
    """Build standardized unknown-method response."""
    return False, None, rpc_error(METHOD_NOT_FOUND, f"Method not found: {method}", None)


def unknown_tool_result(*, name: str, rpc_error: RpcErrorBuilder) -> RpcResult:
    return False, None, rpc_error(METHOD_NOT_FOUND, f"Tool not found: {name}", None)


def invalid_params_result(*, message: str, rpc_error: RpcErrorBuilder, data: Any = None) -> RpcResult:
    return False, None, rpc_error(INVALID_PARAMS, f"Invalid params: {message}", data)


def tool_failure_result(
    *,
    tool: str,
    exc: Exception,
    log_warning: Callable[[str, Any, Any], None],
    rpc_error: RpcErrorBuilder,
) -> RpcResult:
    """Map a failed tool run to INTERNAL_ERROR carrying the decoder's message."""
    message = exc.message if isinstance(exc, CqGatewayError) else sanitize_error_message(str(exc))
    log_warning("MCP tool {} failed: {}", tool, message)
    return False, None, rpc_error(INTERNAL_ERROR, "Tool execution failed", message)


def unhandled_exception_result(
    *,
    method: str,
    exc: Exception,
    log_exception: Callable[[str, Any, Any, Any], None],
    rpc_error: RpcErrorBuilder,
) -> RpcResult:
    """Map unexpected exceptions to standardized INTERNAL_ERROR responses."""
    code, _, _ = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc))
    log_exception("MCP method {} failed with [{}]: {}", method, code, sanitized)
    return False, None, rpc_error(INTERNAL_ERROR, "Internal error", sanitized)
