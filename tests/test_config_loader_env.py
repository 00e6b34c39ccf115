"""Tests for config file loading, key conversion and deployment env overrides."""

import json
from pathlib import Path

import pytest

from cqgateway.config.loader import (
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
    snake_to_camel,
)
from cqgateway.config.schema import Config


def test_defaults_without_file(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.json")
    assert cfg.rate_limit.window_ms == 60_000
    assert cfg.rate_limit.max_requests == 100
    assert cfg.mcp.enabled is True
    assert cfg.mcp.max_requests == 200
    assert cfg.decoder.timeout_seconds is None
    assert cfg.server.port == 3000
    assert cfg.decoder_path == Path.cwd() / "public" / "cq"


def test_camel_case_file_is_loaded(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "decoder": {"binaryPath": "/opt/cq/bin/cq", "timeoutSeconds": 5},
                "rateLimit": {"windowMs": 1000, "maxRequests": 3},
                "mcp": {"enabled": False},
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.decoder_path == Path("/opt/cq/bin/cq")
    assert cfg.decoder.timeout_seconds == 5
    assert cfg.rate_limit.window_ms == 1000
    assert cfg.rate_limit.max_requests == 3
    assert cfg.mcp.enabled is False


def test_invalid_json_raises_value_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(ValueError, match="Failed to load config"):
        load_config(path)


def test_non_object_root_raises(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_deployment_env_vars_override_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"rateLimit": {"maxRequests": 3}}), encoding="utf-8")
    monkeypatch.setenv("CQ_BINARY_PATH", "/usr/local/bin/cq")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "30000")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "50")
    monkeypatch.setenv("MCP_ENABLED", "false")
    cfg = load_config(path)
    assert cfg.decoder.binary_path == "/usr/local/bin/cq"
    assert cfg.rate_limit.window_ms == 30_000
    assert cfg.rate_limit.max_requests == 50
    assert cfg.mcp.enabled is False


@pytest.mark.parametrize("value", ["0", "FALSE", "no", ""])
def test_mcp_only_disabled_by_literal_false(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("MCP_ENABLED", value)
    assert load_config(tmp_path / "missing.json").mcp.enabled is True


def test_bad_numeric_env_is_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "soon")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "-4")
    cfg = load_config(tmp_path / "missing.json")
    assert cfg.rate_limit.window_ms == 60_000
    assert cfg.rate_limit.max_requests == 100


def test_nested_prefixed_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CQ_GATEWAY_MCP__MAX_REQUESTS", "7")
    assert Config().mcp.max_requests == 7


def test_save_config_writes_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "out" / "config.json"
    cfg = Config()
    cfg.rate_limit.max_requests = 42
    save_config(cfg, path)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["rateLimit"]["maxRequests"] == 42
    assert "sweepIntervalSeconds" in data["rateLimit"]
    assert load_config(path).rate_limit.max_requests == 42


def test_key_conversion_helpers() -> None:
    assert camel_to_snake("windowMs") == "window_ms"
    assert snake_to_camel("max_requests") == "maxRequests"
    assert convert_keys({"rateLimit": [{"windowMs": 1}]}) == {"rate_limit": [{"window_ms": 1}]}
    assert convert_to_camel({"rate_limit": {"window_ms": 1}}) == {"rateLimit": {"windowMs": 1}}
