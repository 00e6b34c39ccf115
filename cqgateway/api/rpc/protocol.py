"""JSON-RPC 2.0 envelope models, error codes and response builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
# Implementation-defined server error range (-32000..-32099).
SERVICE_DISABLED = -32000

RpcId = str | int | float | None
RpcResult = tuple[bool, Any | None, dict[str, Any] | None]


@dataclass(frozen=True, slots=True)
class McpRequest:
    """A well-formed JSON-RPC request after envelope checks."""

    id: RpcId
    method: str
    params: dict[str, Any] | list[Any] | None = field(default=None)


def salvage_request_id(body: Any) -> RpcId:
    """Pull a usable id out of an arbitrary body; None when there is none."""
    if not isinstance(body, dict):
        return None
    req_id = body.get("id")
    if isinstance(req_id, bool):
        return None
    if isinstance(req_id, (str, int, float)):
        return req_id
    return None


def rpc_error(code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC error object; `data` is omitted when None."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return error


def rpc_response(req_id: RpcId, *, result: Any = None, error: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a response envelope carrying exactly one of result/error."""
    envelope: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": req_id}
    if error is not None:
        envelope["error"] = error
    else:
        envelope["result"] = result
    return envelope


def envelope_from_result(req_id: RpcId, outcome: RpcResult) -> dict[str, Any]:
    ok, payload, error = outcome
    if ok:
        return rpc_response(req_id, result=payload)
    return rpc_response(req_id, error=error or rpc_error(INTERNAL_ERROR, "Internal error"))
