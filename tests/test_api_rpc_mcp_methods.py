"""Dispatcher-level tests for initialize, tools/list and tools/call."""

import json

import pytest

from cqgateway.api.rpc.mcp_methods import handle_mcp_request, server_descriptor, try_handle_tools_method
from cqgateway.api.rpc.protocol import McpRequest, rpc_error
from cqgateway.api.rpc.tool_catalog import MCP_TOOLS, list_tool_payloads
from cqgateway.decoder.client import DecoderClient
from cqgateway.decoder.process import ProcessResult

TX_HEX = "84a400818258203b40265111d8bb3c"


def _client(make_bridge, handler=None):
    bridge = make_bridge(handler)
    return bridge, DecoderClient(bridge)


def _call(name, arguments, req_id=1):
    params = {"name": name}
    if arguments is not ...:
        params["arguments"] = arguments
    return McpRequest(id=req_id, method="tools/call", params=params)


@pytest.mark.asyncio
async def test_initialize_returns_server_descriptor(make_bridge):
    _, client = _client(make_bridge)
    envelope = await handle_mcp_request(McpRequest(id=1, method="initialize"), decoder=client)
    assert envelope == {"jsonrpc": "2.0", "id": 1, "result": server_descriptor()}
    assert envelope["result"]["protocolVersion"] == "2024-11-05"
    assert envelope["result"]["serverInfo"]["name"] == "cq-mcp-server"
    assert envelope["result"]["capabilities"] == {"tools": {}}


@pytest.mark.asyncio
async def test_tools_list_is_stable(make_bridge):
    _, client = _client(make_bridge)
    first = await handle_mcp_request(McpRequest(id=1, method="tools/list"), decoder=client)
    second = await handle_mcp_request(McpRequest(id=2, method="tools/list"), decoder=client)
    assert first["result"] == second["result"]
    names = [tool["name"] for tool in first["result"]["tools"]]
    assert names == ["cq_query", "cq_decode_address", "cq_validate"]
    assert first["result"]["tools"][0]["inputSchema"]["required"] == ["input"]


def test_tool_payloads_are_fresh_copies():
    payloads = list_tool_payloads()
    payloads[0]["name"] = "mutated"
    assert list_tool_payloads()[0]["name"] == MCP_TOOLS[0].name


@pytest.mark.asyncio
async def test_unknown_method(make_bridge):
    _, client = _client(make_bridge)
    envelope = await handle_mcp_request(McpRequest(id="x", method="resources/list"), decoder=client)
    assert envelope["id"] == "x"
    assert envelope["error"]["code"] == -32601
    assert "result" not in envelope


@pytest.mark.asyncio
async def test_unknown_tool(make_bridge):
    bridge, client = _client(make_bridge)
    envelope = await handle_mcp_request(_call("cq_nope", {}), decoder=client)
    assert envelope["error"] == {"code": -32601, "message": "Tool not found: cq_nope"}
    assert bridge.calls == []


@pytest.mark.asyncio
async def test_missing_arguments_is_invalid_params(make_bridge):
    bridge, client = _client(make_bridge)
    envelope = await handle_mcp_request(_call("cq_query", ...), decoder=client)
    assert envelope["error"]["code"] == -32602
    assert bridge.calls == []


@pytest.mark.asyncio
async def test_schema_mismatch_is_invalid_params(make_bridge):
    bridge, client = _client(make_bridge)
    envelope = await handle_mcp_request(_call("cq_query", {"input": TX_HEX, "format": "xml"}), decoder=client)
    assert envelope["error"]["code"] == -32602
    assert envelope["error"]["data"][0]["loc"] == ["format"]
    assert bridge.calls == []


@pytest.mark.asyncio
async def test_cq_query_returns_text_verbatim(make_bridge):
    bridge, client = _client(make_bridge, lambda args: ProcessResult(exit_code=0, stdout='"170000"'))
    envelope = await handle_mcp_request(
        _call("cq_query", {"input": "0x" + TX_HEX, "query": "fee", "format": "json", "ada": True}),
        decoder=client,
    )
    assert envelope["result"] == {"content": [{"type": "text", "text": '"170000"'}]}
    assert bridge.calls == [["--json", "--ada", "fee", TX_HEX]]


@pytest.mark.asyncio
async def test_cq_decode_address_reindents_json(make_bridge):
    bridge, client = _client(make_bridge, lambda args: ProcessResult(exit_code=0, stdout='{"network":"mainnet"}'))
    envelope = await handle_mcp_request(_call("cq_decode_address", {"address": "addr1q9"}), decoder=client)
    text = envelope["result"]["content"][0]["text"]
    assert text == json.dumps({"network": "mainnet"}, indent=2)
    assert bridge.calls == [["addr", "addr1q9", "--json"]]


@pytest.mark.asyncio
async def test_cq_validate_invalid_is_a_result(make_bridge):
    _, client = _client(make_bridge, lambda args: ProcessResult(exit_code=1, stderr="bad"))
    envelope = await handle_mcp_request(_call("cq_validate", {"input": "deadbeef"}), decoder=client)
    assert envelope["result"]["content"][0]["text"] == '{"valid":false}'


@pytest.mark.asyncio
async def test_tool_failure_is_internal_error(make_bridge):
    _, client = _client(make_bridge, lambda args: ProcessResult(exit_code=2, stderr="path not found: foo\n"))
    envelope = await handle_mcp_request(_call("cq_query", {"input": TX_HEX, "query": "foo"}), decoder=client)
    assert envelope["error"] == {
        "code": -32603,
        "message": "Tool execution failed",
        "data": "path not found: foo",
    }


@pytest.mark.asyncio
async def test_unexpected_exception_still_returns_envelope(make_bridge):
    def _explode(args):
        raise RuntimeError("boom")

    _, client = _client(make_bridge, _explode)
    envelope = await handle_mcp_request(_call("cq_validate", {"input": TX_HEX}), decoder=client)
    assert envelope["error"]["code"] == -32603


@pytest.mark.asyncio
async def test_tools_method_ignores_other_methods(make_bridge):
    _, client = _client(make_bridge)
    assert await try_handle_tools_method(method="initialize", params=None, decoder=client, rpc_error=rpc_error) is None
