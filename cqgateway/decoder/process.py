"""Subprocess bridge to the external cq decoder.

Every call spawns its own process with three pipes. The optional payload is
written to stdin, stdin is closed, and stdout/stderr are drained concurrently
with the write, so a decoder that writes before it finishes reading cannot
deadlock the bridge. The process is always reaped before invoke() returns,
including when the caller is cancelled or the deadline expires.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Sequence

from loguru import logger

from cqgateway.utils.exceptions import (
    DecoderError,
    DecoderLaunchError,
    DecoderNotFoundError,
    DecoderTimeoutError,
    sanitize_error_message,
)


@dataclass(frozen=True, slots=True)
class ProcessInvocation:
    """One decoder run: argv (without the binary) and optional stdin bytes."""

    arguments: tuple[str, ...]
    input_payload: bytes | None = None


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of an invocation: stdout on exit 0, otherwise stderr plus exit code."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def unwrap(self) -> str:
        """Return stdout on success, raise DecoderError otherwise."""
        if self.ok:
            return self.stdout
        raise DecoderError(self.stderr, self.exit_code)


def resolve_decoder_path(binary_path: str | Path) -> Path:
    """Check the decoder exists at the given path; raise DecoderNotFoundError otherwise."""
    path = Path(binary_path).expanduser()
    if not path.exists():
        raise DecoderNotFoundError(str(path))
    return path


class ProcessBridge:
    """Runs the decoder binary and turns exit codes into results."""

    def __init__(self, binary_path: str | Path, *, timeout_seconds: float | None = None):
        self.binary_path = resolve_decoder_path(binary_path)
        self.timeout_seconds = timeout_seconds

    async def invoke(self, arguments: Sequence[str], input_payload: bytes | None = None) -> ProcessResult:
        """Run the decoder once.

        Returns a ProcessResult for any exit status. Raises DecoderLaunchError when the
        process cannot be started and DecoderTimeoutError when the deadline expires.
        """
        invocation = ProcessInvocation(arguments=tuple(arguments), input_payload=input_payload)
        logger.debug("cq invoke argc={} stdin_bytes={}", len(invocation.arguments), len(input_payload or b""))
        async with self._spawn(invocation) as process:
            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(input=invocation.input_payload or b""),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("cq timed out after {}s; killing pid {}", self.timeout_seconds, process.pid)
                raise DecoderTimeoutError(self.timeout_seconds or 0.0) from None

        exit_code = process.returncode if process.returncode is not None else -1
        result = ProcessResult(
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace") if exit_code == 0 else "",
            stderr=stderr.decode("utf-8", errors="replace") if exit_code != 0 else "",
        )
        if result.ok:
            logger.debug("cq exited 0 stdout_chars={}", len(result.stdout))
        else:
            logger.info("cq exited {}: {}", exit_code, sanitize_error_message(result.stderr.strip())[:200])
        return result

    async def run(self, arguments: Sequence[str], input_payload: bytes | None = None) -> str:
        """Run the decoder and return stdout, raising DecoderError on non-zero exit."""
        result = await self.invoke(arguments, input_payload)
        return result.unwrap()

    async def version(self) -> str | None:
        """Return the decoder's --version output, or None when it cannot be obtained."""
        try:
            result = await self.invoke(["--version"])
        except (DecoderLaunchError, DecoderTimeoutError) as e:
            logger.warning("cq version check failed: {}", e)
            return None
        return result.stdout.strip() if result.ok else None

    @asynccontextmanager
    async def _spawn(self, invocation: ProcessInvocation) -> AsyncIterator[asyncio.subprocess.Process]:
        """Start the process with stdin/stdout/stderr pipes and always reap it."""
        try:
            process = await asyncio.create_subprocess_exec(
                str(self.binary_path),
                *invocation.arguments,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("cq spawn failed for {}: {}", self.binary_path, e)
            raise DecoderLaunchError(str(self.binary_path), sanitize_error_message(str(e))) from e

        try:
            yield process
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
