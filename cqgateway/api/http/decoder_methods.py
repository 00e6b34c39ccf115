"""Helpers for the decoder REST endpoints (query, address, validate).

Each builder takes the already-read request body and returns (status_code, payload).
Schema failures and decoder failures are 400, a negative validation result is a
normal 200, and launch/configuration problems are 500.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from cqgateway.api.http.error_helpers import (
    classify_http_status,
    internal_error_body,
    invalid_json_body,
    unknown_error_detail,
    validation_error_body,
)
from cqgateway.api.http.schemas import AddressRequest, QueryRequest, ValidateRequest
from cqgateway.decoder.client import DecoderClient, QueryOptions, coerce_transaction_input
from cqgateway.utils.exceptions import CqGatewayError, DecoderTimeoutError

HttpPayload = tuple[int, dict[str, Any]]


def _parse_body(raw_body: bytes) -> tuple[Any, HttpPayload | None]:
    try:
        return json.loads(raw_body), None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return None, (400, invalid_json_body(e))


def _failure(label: str, exc: Exception) -> HttpPayload:
    """Gateway errors map by category; anything else (e.g. non-JSON decoder output) is a 500."""
    status_code = classify_http_status(exc) if isinstance(exc, CqGatewayError) else 500
    if status_code == 400:
        return 400, {"error": label, "message": exc.message}
    if status_code == 504:
        return 504, {"error": "Decoder timeout", "message": exc.message}
    logger.error("{}: {}", label, unknown_error_detail(exc))
    return status_code, internal_error_body(exc)


async def query_response(*, decoder: DecoderClient, raw_body: bytes) -> HttpPayload:
    """Build response for POST /api/query."""
    body, error = _parse_body(raw_body)
    if error:
        return error
    try:
        req = QueryRequest.model_validate(body)
    except PydanticValidationError as e:
        return 400, validation_error_body(e)

    try:
        output = await decoder.query_transaction(
            coerce_transaction_input(req.input),
            req.query,
            QueryOptions(format=req.format, ada=bool(req.ada)),
        )
        result: Any = json.loads(output) if req.format == "json" else output
    except Exception as e:
        return _failure("Query failed", e)
    return 200, {"success": True, "result": result}


async def address_response(*, decoder: DecoderClient, raw_body: bytes) -> HttpPayload:
    """Build response for POST /api/address."""
    body, error = _parse_body(raw_body)
    if error:
        return error
    try:
        req = AddressRequest.model_validate(body)
    except PydanticValidationError as e:
        return 400, validation_error_body(e)

    try:
        output = await decoder.decode_address(req.address, as_json=req.as_json)
        result: Any = json.loads(output) if req.as_json else output
    except Exception as e:
        return _failure("Address decode failed", e)
    return 200, {"success": True, "result": result}


async def validate_response(*, decoder: DecoderClient, raw_body: bytes) -> HttpPayload:
    """Build response for POST /api/validate."""
    body, error = _parse_body(raw_body)
    if error:
        return error
    try:
        req = ValidateRequest.model_validate(body)
    except PydanticValidationError as e:
        return 400, validation_error_body(e)

    try:
        is_valid = await decoder.validate_transaction(coerce_transaction_input(req.input))
    except DecoderTimeoutError as e:
        return _failure("Validation failed", e)
    except Exception as e:
        # Exit code 1 already became valid=False; any other decoder exit is a server-side problem here.
        logger.error("Validation failed: {}", unknown_error_detail(e))
        return 500, internal_error_body(e)
    return 200, {"success": True, "valid": is_valid}
