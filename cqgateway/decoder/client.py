"""Typed calls to the cq decoder: query, address decode and validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from cqgateway.decoder.process import ProcessResult
from cqgateway.utils.exceptions import DecoderError

OutputFormat = Literal["json", "raw", "pretty"]

# Shortest string treated as transaction hex rather than passed through verbatim.
MIN_HEX_INPUT_CHARS = 16
INVALID_TRANSACTION_EXIT_CODE = 1

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class DecoderBridge(Protocol):
    async def invoke(self, arguments: Sequence[str], input_payload: bytes | None = None) -> ProcessResult: ...


@dataclass(frozen=True, slots=True)
class QueryOptions:
    format: OutputFormat | None = None
    ada: bool = False


def coerce_transaction_input(value: str) -> str | bytes:
    """Turn a hex string (optional 0x, >= 16 hex chars) into raw bytes; leave anything else as-is.

    Only even-length hex is converted. An odd-length hex string cannot be split
    into bytes, so it is returned unchanged with any 0x prefix intact and the
    decoder reports the error.
    """
    hex_string = value[2:] if value.startswith("0x") else value
    if len(hex_string) >= MIN_HEX_INPUT_CHARS and len(hex_string) % 2 == 0 and _HEX_RE.match(hex_string):
        return bytes.fromhex(hex_string)
    return value


def prepare_input(value: str | bytes) -> str:
    """Hex-encode byte payloads; strings go to the decoder unchanged."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return value


def build_query_arguments(input_hex: str, query: str | None = None, options: QueryOptions | None = None) -> list[str]:
    """Flags first, then the query path (if any), then the input."""
    options = options or QueryOptions()
    args: list[str] = []
    if options.format == "json":
        args.append("--json")
    elif options.format == "raw":
        args.append("--raw")
    if options.ada:
        args.append("--ada")
    if query:
        args.append(query)
    args.append(input_hex)
    return args


class DecoderClient:
    """High-level decoder operations on top of a process bridge."""

    def __init__(self, bridge: DecoderBridge):
        self.bridge = bridge

    async def query_transaction(
        self,
        value: str | bytes,
        query: str | None = None,
        options: QueryOptions | None = None,
    ) -> str:
        """Return the decoder's text output verbatim."""
        args = build_query_arguments(prepare_input(value), query, options)
        result = await self.bridge.invoke(args)
        return result.unwrap()

    async def decode_address(self, address: str, as_json: bool = True) -> str:
        args = ["addr", address]
        if as_json:
            args.append("--json")
        result = await self.bridge.invoke(args)
        return result.unwrap()

    async def validate_transaction(self, value: str | bytes) -> bool:
        """True when valid, False on exit code 1; any other failure raises DecoderError."""
        result = await self.bridge.invoke(["--check", prepare_input(value)])
        if result.ok:
            return True
        if result.exit_code == INVALID_TRANSACTION_EXIT_CODE:
            return False
        raise DecoderError(result.stderr, result.exit_code)
