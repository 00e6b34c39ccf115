from cqgateway.api.rpc.error_boundary import (
    invalid_params_result,
    tool_failure_result,
    unhandled_exception_result,
    unknown_method_result,
    unknown_tool_result,
)
from cqgateway.api.rpc.protocol import rpc_error
from cqgateway.utils.exceptions import (
    DecoderError,
    DecoderLaunchError,
)


def _rpc_error(code, message, data=None):
    return {"code": code, "message": message, "data": data}


def test_unknown_method_result():
    res = unknown_method_result(method="resources/list", rpc_error=_rpc_error)
    assert res == (False, None, {"code": -32601, "message": "Method not found: resources/list", "data": None})


def test_unknown_tool_result():
    res = unknown_tool_result(name="cq_nope", rpc_error=rpc_error)
    assert res[2] == {"code": -32601, "message": "Tool not found: cq_nope"}


def test_invalid_params_result_carries_data():
    res = invalid_params_result(message="arguments required", rpc_error=rpc_error, data=["x"])
    assert res[2] == {"code": -32602, "message": "Invalid params: arguments required", "data": ["x"]}


def test_tool_failure_uses_decoder_message():
    calls = []
    res = tool_failure_result(
        tool="cq_query",
        exc=DecoderError("unknown field foo\n", 2),
        log_warning=lambda fmt, tool, msg: calls.append((tool, msg)),
        rpc_error=rpc_error,
    )
    assert res == (False, None, {"code": -32603, "message": "Tool execution failed", "data": "unknown field foo"})
    assert calls == [("cq_query", "unknown field foo")]


def test_unhandled_exception_result_logs_and_maps():
    calls = []
    res = unhandled_exception_result(
        method="tools/call",
        exc=RuntimeError("boom token=abc123"),
        log_exception=lambda fmt, m, code, msg: calls.append((m, code, msg)),
        rpc_error=rpc_error,
    )
    assert res[0] is False
    assert res[2]["code"] == -32603
    assert "abc123" not in res[2]["data"]
    assert calls and calls[0][0] == "tools/call"


def test_tool_failure_for_launch_error_hides_os_reason():
    res = tool_failure_result(
        tool="cq_validate",
        exc=DecoderLaunchError("/srv/cq", "[Errno 13] Permission denied: '/srv/cq'"),
        log_warning=lambda fmt, tool, msg: None,
        rpc_error=rpc_error,
    )
    assert res[2] == {"code": -32603, "message": "Tool execution failed", "data": "Failed to spawn cq process"}
