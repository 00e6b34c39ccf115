"""Process-wide gateway runtime: the loaded config and the decoder it resolves to.

One runtime per config file. Building it reads the file, applies deployment env
vars and resolves the decoder binary; a missing binary raises and nothing is
cached, so a later call retries.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from cqgateway.config.loader import get_config_path, load_config
from cqgateway.config.schema import Config
from cqgateway.decoder.client import DecoderClient
from cqgateway.decoder.process import ProcessBridge


@dataclass(frozen=True, slots=True)
class GatewayRuntime:
    config: Config
    bridge: ProcessBridge
    decoder: DecoderClient


_lock = threading.RLock()
_runtimes: dict[Path, GatewayRuntime] = {}


def build_runtime(config: Config) -> GatewayRuntime:
    """Resolve the decoder named by config and wrap it in a client."""
    bridge = ProcessBridge(config.decoder_path, timeout_seconds=config.decoder.timeout_seconds)
    return GatewayRuntime(config=config, bridge=bridge, decoder=DecoderClient(bridge))


def load_runtime(config_path: Path | None = None, *, reload: bool = False) -> GatewayRuntime:
    """Return the cached runtime for config_path, building it on first use or when reload is set."""
    path = (config_path or get_config_path()).expanduser().resolve()
    with _lock:
        runtime = None if reload else _runtimes.get(path)
        if runtime is None:
            runtime = build_runtime(load_config(path))
            _runtimes[path] = runtime
            logger.debug("Gateway runtime loaded from {} (decoder {})", path, runtime.bridge.binary_path)
        return runtime


def forget_runtime(config_path: Path | None = None) -> None:
    """Drop one cached runtime, or all of them when no path is given."""
    with _lock:
        if config_path is None:
            _runtimes.clear()
            return
        _runtimes.pop(config_path.expanduser().resolve(), None)
