"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from cqgateway.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".cqgateway" / "config.json"


def get_data_dir() -> Path:
    """Get the cqgateway data directory."""
    path = Path.home() / ".cqgateway"
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            cfg = Config(**convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to regenerate defaults."
            ) from e
    else:
        cfg = Config()

    _apply_deployment_env_vars(cfg)
    return cfg


def _apply_deployment_env_vars(cfg: Config) -> None:
    """Apply the plain deployment variables (CQ_BINARY_PATH, RATE_LIMIT_*, MCP_ENABLED) on top of file config."""
    binary_path = os.environ.get("CQ_BINARY_PATH", "").strip()
    if binary_path:
        cfg.decoder.binary_path = binary_path

    window_ms = _env_positive_int("RATE_LIMIT_WINDOW_MS")
    if window_ms is not None:
        cfg.rate_limit.window_ms = window_ms

    max_requests = _env_positive_int("RATE_LIMIT_MAX_REQUESTS")
    if max_requests is not None:
        cfg.rate_limit.max_requests = max_requests

    # Only the literal "false" disables the endpoint.
    if os.environ.get("MCP_ENABLED") == "false":
        cfg.mcp.enabled = False


def _env_positive_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw, 10)
    except ValueError:
        logger.warning("Ignoring non-integer {}={!r}", name, raw)
        return None
    if value <= 0:
        logger.warning("Ignoring non-positive {}={}", name, value)
        return None
    return value


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    from cqgateway.gateway.runtime import forget_runtime

    forget_runtime(path)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
