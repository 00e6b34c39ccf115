"""Pytest hooks and fixtures."""

import os
import stat
import sys
import textwrap
from pathlib import Path
from typing import Callable, Sequence

import pytest

from cqgateway.decoder.process import ProcessResult

FAKE_DECODER_SOURCE = """
import json
import sys
import time

args = sys.argv[1:]
cmd = args[0] if args else ""

if cmd == "--version":
    print("cq 9.9.9")
elif cmd == "echo-args":
    sys.stdout.write(json.dumps(args[1:]))
elif cmd == "stdin":
    sys.stdout.write(sys.stdin.read())
elif cmd == "fail":
    sys.stderr.write("bad input: not a transaction\\n")
    sys.exit(2)
elif cmd == "fail-silent":
    sys.exit(3)
elif cmd == "sleep":
    time.sleep(30)
elif cmd == "big":
    sys.stdout.write("x" * (1024 * 1024))
elif cmd == "--check":
    if args[1] == "deadbeefdeadbeef":
        sys.stderr.write("invalid transaction\\n")
        sys.exit(1)
elif cmd == "addr":
    sys.stdout.write(json.dumps({"address": args[1], "network": "mainnet"}))
else:
    sys.stdout.write(json.dumps({"args": args}))
"""


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "subprocess: spawns the fake decoder script (skipped on Windows)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip subprocess tests where a shebang script cannot be executed."""
    if os.name != "nt":
        return
    skip = pytest.mark.skip(reason="Fake decoder relies on a POSIX shebang")
    for item in items:
        if "subprocess" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def fake_decoder(tmp_path: Path) -> Path:
    """Executable script standing in for the cq binary."""
    path = tmp_path / "cq"
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(FAKE_DECODER_SOURCE), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class FakeBridge:
    """In-memory bridge: records argument lists and answers through a handler."""

    def __init__(self, handler: Callable[[list[str]], ProcessResult] | None = None):
        self.calls: list[list[str]] = []
        self._handler = handler or (lambda args: ProcessResult(exit_code=0, stdout="{}"))

    async def invoke(self, arguments: Sequence[str], input_payload: bytes | None = None) -> ProcessResult:
        args = list(arguments)
        self.calls.append(args)
        return self._handler(args)


@pytest.fixture
def make_bridge() -> Callable[..., FakeBridge]:
    return FakeBridge


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and log files out of the real home directory."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in ("CQ_BINARY_PATH", "RATE_LIMIT_WINDOW_MS", "RATE_LIMIT_MAX_REQUESTS", "MCP_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    from cqgateway.gateway.runtime import forget_runtime

    forget_runtime()
