"""MCP request guard: body parsing and JSON-RPC envelope validation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from cqgateway.api.rpc.protocol import (
    INVALID_REQUEST,
    JSONRPC_VERSION,
    PARSE_ERROR,
    McpRequest,
    RpcId,
    rpc_error,
    salvage_request_id,
)


@dataclass(slots=True)
class McpRequestGuardResult:
    """Parsed request, or the error to send back (with whatever id could be salvaged)."""

    request: McpRequest | None
    req_id: RpcId
    error: dict[str, Any] | None


def _rejected(req_id: RpcId, error: dict[str, Any]) -> McpRequestGuardResult:
    return McpRequestGuardResult(request=None, req_id=req_id, error=error)


def prepare_mcp_request(raw_body: bytes | str) -> McpRequestGuardResult:
    """Parse the HTTP body and validate the JSON-RPC 2.0 envelope."""
    try:
        body = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return _rejected(None, rpc_error(PARSE_ERROR, "Parse error", str(e)))

    req_id = salvage_request_id(body)
    if not isinstance(body, dict):
        return _rejected(None, rpc_error(INVALID_REQUEST, "Invalid Request"))
    if body.get("jsonrpc") != JSONRPC_VERSION:
        return _rejected(req_id, rpc_error(INVALID_REQUEST, "Invalid Request"))

    method = body.get("method")
    if not isinstance(method, str) or not method:
        return _rejected(req_id, rpc_error(INVALID_REQUEST, "Invalid Request"))

    params = body.get("params")
    if params is not None and not isinstance(params, (dict, list)):
        return _rejected(req_id, rpc_error(INVALID_REQUEST, "Invalid Request", "params must be an object or array"))

    return McpRequestGuardResult(
        request=McpRequest(id=req_id, method=method, params=params),
        req_id=req_id,
        error=None,
    )
