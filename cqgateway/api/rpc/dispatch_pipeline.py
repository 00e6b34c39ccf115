"""Sequential MCP method handler pipeline."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Iterable

from cqgateway.api.rpc.protocol import RpcResult

HandlerResult = RpcResult | None
MethodHandler = Callable[[], Awaitable[HandlerResult] | HandlerResult]


async def run_handler_pipeline(handlers: Iterable[MethodHandler]) -> HandlerResult:
    """Call handlers in order; the first one that claims the method (non-None) wins."""
    for handler in handlers:
        outcome = handler()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if outcome is not None:
            return outcome
    return None
