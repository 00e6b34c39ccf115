"""MCP method handlers: initialize, tools/list and tools/call routed to the decoder."""

from __future__ import annotations

import json
from functools import partial
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError as PydanticValidationError

from cqgateway import __version__
from cqgateway.api.rpc.dispatch_pipeline import run_handler_pipeline
from cqgateway.api.rpc.error_boundary import (
    RpcErrorBuilder,
    invalid_params_result,
    tool_failure_result,
    unhandled_exception_result,
    unknown_method_result,
    unknown_tool_result,
)
from cqgateway.api.rpc.protocol import McpRequest, RpcResult, envelope_from_result, rpc_error
from cqgateway.api.rpc.tool_catalog import (
    CQ_DECODE_ADDRESS,
    CQ_QUERY,
    CQ_VALIDATE,
    TOOL_ARGUMENT_MODELS,
    CqDecodeAddressArguments,
    CqQueryArguments,
    CqValidateArguments,
    find_tool,
    list_tool_payloads,
)
from cqgateway.decoder.client import DecoderClient, QueryOptions, coerce_transaction_input

MCP_PROTOCOL_VERSION = "2024-11-05"
MCP_SERVER_NAME = "cq-mcp-server"


def server_descriptor() -> dict[str, Any]:
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": MCP_SERVER_NAME, "version": __version__},
    }


def _text_content(text: str) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


async def try_handle_lifecycle_method(*, method: str) -> RpcResult | None:
    """Handle initialize. Return None when method is unrelated."""
    if method == "initialize":
        return True, server_descriptor(), None
    return None


async def run_tool(name: str, arguments: BaseModel, decoder: DecoderClient) -> str:
    """Run one catalog tool with already-validated arguments and return its text output."""
    if name == CQ_QUERY and isinstance(arguments, CqQueryArguments):
        return await decoder.query_transaction(
            coerce_transaction_input(arguments.input),
            arguments.query,
            QueryOptions(format=arguments.format, ada=arguments.ada),
        )
    if name == CQ_DECODE_ADDRESS and isinstance(arguments, CqDecodeAddressArguments):
        output = await decoder.decode_address(arguments.address, as_json=True)
        return json.dumps(json.loads(output), indent=2, ensure_ascii=False)
    if name == CQ_VALIDATE and isinstance(arguments, CqValidateArguments):
        is_valid = await decoder.validate_transaction(coerce_transaction_input(arguments.input))
        return json.dumps({"valid": is_valid}, separators=(",", ":"))
    raise ValueError(f"no dispatch for tool {name}")


async def try_handle_tools_method(
    *,
    method: str,
    params: Any,
    decoder: DecoderClient,
    rpc_error: RpcErrorBuilder,
) -> RpcResult | None:
    """Handle tools/list and tools/call. Return None when method is unrelated."""
    if method == "tools/list":
        return True, {"tools": list_tool_payloads()}, None

    if method != "tools/call":
        return None

    if not isinstance(params, dict):
        return invalid_params_result(message="params object required", rpc_error=rpc_error)
    raw_arguments = params.get("arguments")
    if raw_arguments is None:
        return invalid_params_result(message="arguments required", rpc_error=rpc_error)
    name = params.get("name")
    if not isinstance(name, str) or find_tool(name) is None:
        logger.info("MCP tools/call for unknown tool {!r}", name)
        return unknown_tool_result(name=str(name), rpc_error=rpc_error)
    if not isinstance(raw_arguments, dict):
        return invalid_params_result(message="arguments must be an object", rpc_error=rpc_error)

    try:
        arguments = TOOL_ARGUMENT_MODELS[name].model_validate(raw_arguments)
    except PydanticValidationError as e:
        return invalid_params_result(
            message=f"{name} arguments do not match its input schema",
            rpc_error=rpc_error,
            data=json.loads(e.json(include_url=False)),
        )

    try:
        text = await run_tool(name, arguments, decoder)
    except Exception as e:
        return tool_failure_result(tool=name, exc=e, log_warning=logger.warning, rpc_error=rpc_error)
    return True, _text_content(text), None


async def handle_mcp_request(request: McpRequest, *, decoder: DecoderClient) -> dict[str, Any]:
    """Dispatch one request and always return a response envelope."""
    method = request.method
    try:
        outcome = await run_handler_pipeline(
            (
                partial(try_handle_lifecycle_method, method=method),
                partial(
                    try_handle_tools_method,
                    method=method,
                    params=request.params,
                    decoder=decoder,
                    rpc_error=rpc_error,
                ),
            )
        )
        if outcome is None:
            logger.info("MCP unknown method {}", method)
            outcome = unknown_method_result(method=method, rpc_error=rpc_error)
    except Exception as e:
        outcome = unhandled_exception_result(
            method=method,
            exc=e,
            log_exception=logger.exception,
            rpc_error=rpc_error,
        )
    return envelope_from_result(request.id, outcome)
