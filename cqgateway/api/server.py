"""FastAPI server exposing the cq decoder over REST and MCP (JSON-RPC 2.0).

Every request on /api/* first passes the per-client rate limiter; admitted requests
reach either a REST helper or the MCP dispatcher, both of which call the decoder
through a single ProcessBridge.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import uvicorn

from cqgateway import __version__
from cqgateway.api.http.decoder_methods import address_response, query_response, validate_response
from cqgateway.api.http.rate_limit_methods import apply_rate_limit_headers, rate_limit_exceeded_body
from cqgateway.api.rpc.mcp_methods import handle_mcp_request
from cqgateway.api.rpc.protocol import (
    INVALID_REQUEST,
    SERVICE_DISABLED,
    rpc_error,
    rpc_response,
)
from cqgateway.api.rpc.request_guard import prepare_mcp_request
from cqgateway.config.loader import load_config
from cqgateway.config.schema import Config
from cqgateway.decoder.client import DecoderClient
from cqgateway.decoder.process import ProcessBridge
from cqgateway.gateway.runtime import build_runtime, load_runtime
from cqgateway.gateway.rate_limit import (
    RATE_LIMIT_SCOPE_DEFAULT,
    RATE_LIMIT_SCOPE_MCP,
    RateLimitSweeper,
    RequestRateLimiter,
    resolve_client_ip,
)
from cqgateway.utils.exceptions import classify_exception, sanitize_error_message

api_router = APIRouter()


def _state(request: Request) -> dict[str, Any]:
    return request.app.state.app_state


async def _with_rate_limit(
    request: Request,
    *,
    scope: str,
    window_ms: int,
    max_requests: int,
    handler: Callable[[], Awaitable[JSONResponse]],
) -> JSONResponse:
    """Admit or reject the call, then stamp X-RateLimit-* headers on whatever is returned."""
    app_state = _state(request)
    client_id = resolve_client_ip(request.headers, request.client.host if request.client else None)
    result = app_state["rate_limiter"].check(
        client_id,
        scope=scope,
        window_ms=window_ms,
        max_requests=max_requests,
    )
    if result.allowed:
        response = await handler()
    else:
        response = JSONResponse(status_code=429, content=rate_limit_exceeded_body(result, window_ms))
    return apply_rate_limit_headers(response, result)


async def _rest_call(request: Request, builder: Callable[..., Awaitable[tuple[int, dict[str, Any]]]]) -> JSONResponse:
    app_state = _state(request)
    config: Config = app_state["config"]

    async def _handle() -> JSONResponse:
        raw_body = await request.body()
        status_code, payload = await builder(decoder=app_state["decoder"], raw_body=raw_body)
        return JSONResponse(status_code=status_code, content=payload)

    return await _with_rate_limit(
        request,
        scope=RATE_LIMIT_SCOPE_DEFAULT,
        window_ms=config.rate_limit.window_ms,
        max_requests=config.rate_limit.max_requests,
        handler=_handle,
    )


@api_router.post("/query")
async def query_transaction(request: Request) -> JSONResponse:
    """Query a CBOR transaction, optionally by path."""
    return await _rest_call(request, query_response)


@api_router.post("/address")
async def decode_address(request: Request) -> JSONResponse:
    """Decode a Cardano address."""
    return await _rest_call(request, address_response)


@api_router.post("/validate")
async def validate_transaction(request: Request) -> JSONResponse:
    """Check whether a CBOR transaction is valid."""
    return await _rest_call(request, validate_response)


def _mcp_disabled_response() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content=rpc_response(None, error=rpc_error(SERVICE_DISABLED, "MCP server is disabled")),
    )


@api_router.post("/mcp")
async def mcp_endpoint(request: Request) -> JSONResponse:
    """JSON-RPC 2.0 endpoint for MCP clients."""
    app_state = _state(request)
    config: Config = app_state["config"]
    if not config.mcp.enabled:
        return _mcp_disabled_response()

    async def _handle() -> JSONResponse:
        raw_body = await request.body()
        guard = prepare_mcp_request(raw_body)
        if guard.error is not None or guard.request is None:
            return JSONResponse(status_code=400, content=rpc_response(guard.req_id, error=guard.error))
        envelope = await handle_mcp_request(guard.request, decoder=app_state["decoder"])
        return JSONResponse(status_code=200, content=envelope)

    return await _with_rate_limit(
        request,
        scope=RATE_LIMIT_SCOPE_MCP,
        window_ms=config.mcp.window_ms,
        max_requests=config.mcp.max_requests,
        handler=_handle,
    )


@api_router.api_route("/mcp", methods=["GET", "PUT", "PATCH", "DELETE"])
async def mcp_method_not_allowed(request: Request) -> JSONResponse:
    """Only POST carries JSON-RPC."""
    if not _state(request)["config"].mcp.enabled:
        return _mcp_disabled_response()
    return JSONResponse(
        status_code=405,
        content=rpc_response(None, error=rpc_error(INVALID_REQUEST, "Invalid Request")),
        headers={"Allow": "POST"},
    )


async def health(request: Request) -> dict[str, Any]:
    """Report decoder availability; not rate limited."""
    app_state = _state(request)
    bridge: ProcessBridge | None = app_state.get("bridge")
    version = await bridge.version() if bridge is not None else None
    return {
        "ok": version is not None,
        "version": __version__,
        "uptimeSeconds": int(time.time() - app_state["_start_time"]),
        "decoder": {
            "path": str(bridge.binary_path) if bridge is not None else None,
            "available": version is not None,
            "version": version,
        },
        "mcpEnabled": app_state["config"].mcp.enabled,
    }


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    code, _, _ = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc))
    logger.exception("Unhandled exception [{}]: {}", code, sanitized)
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred", "code": code},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the rate-limit sweeper on startup and stop it on shutdown."""
    app_state = app.state.app_state
    sweeper: RateLimitSweeper = app_state["sweeper"]
    logger.info("Starting cqgateway API server (decoder: {})", app_state["decoder_path"])
    sweeper.start()
    try:
        yield
    finally:
        sweeper.stop()
        logger.info("cqgateway API server stopped")


def create_app(
    config: Config | None = None,
    *,
    decoder: DecoderClient | None = None,
    rate_limiter: RequestRateLimiter | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    The decoder binary is resolved here, once; a missing binary raises
    DecoderNotFoundError before the app exists. Tests may pass a ready-made
    DecoderClient to skip resolution.
    """
    if decoder is None:
        runtime = build_runtime(config) if config is not None else load_runtime()
        config, decoder = runtime.config, runtime.decoder
    config = config or load_config()
    bridge = decoder.bridge if isinstance(decoder.bridge, ProcessBridge) else None

    limiter = rate_limiter or RequestRateLimiter(
        window_ms=config.rate_limit.window_ms,
        max_requests=config.rate_limit.max_requests,
    )

    app = FastAPI(
        title="cq gateway",
        description="REST and MCP access to the cq Cardano transaction decoder",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.app_state = {
        "config": config,
        "bridge": bridge,
        "decoder": decoder,
        "decoder_path": str(bridge.binary_path) if bridge is not None else "(injected)",
        "rate_limiter": limiter,
        "sweeper": RateLimitSweeper(limiter, interval_seconds=config.rate_limit.sweep_interval_seconds),
        "_start_time": time.time(),
    }
    app.add_exception_handler(Exception, generic_exception_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    app.add_api_route("/health", health, methods=["GET"])
    app.include_router(api_router, prefix="/api")
    return app


def run_server(app: FastAPI, host: str = "127.0.0.1", port: int = 3000, log_level: str = "warning") -> None:
    """Run the API server."""
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level=log_level,
    )
