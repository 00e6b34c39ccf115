"""Configuration schema using Pydantic.

Single data model and defaults, persisted to ~/.cqgateway/config.json.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class DecoderConfig(BaseModel):
    """External cq decoder configuration."""
    binary_path: str = ""  # Empty means <cwd>/public/cq
    # Deadline for a single invocation; None disables the deadline.
    timeout_seconds: float | None = Field(default=None, gt=0)


class RateLimitConfig(BaseModel):
    """Per-client limits for the REST endpoints."""
    window_ms: int = Field(default=60_000, gt=0)
    max_requests: int = Field(default=100, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)


class McpConfig(BaseModel):
    """JSON-RPC (MCP) endpoint configuration."""
    enabled: bool = True
    # Programmatic clients get a higher ceiling than the REST surface.
    window_ms: int = Field(default=60_000, gt=0)
    max_requests: int = Field(default=200, gt=0)


class ServerConfig(BaseModel):
    """HTTP server bind address."""
    host: str = "127.0.0.1"
    port: int = 3000


class Config(BaseSettings):
    """Root configuration for cqgateway."""
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @property
    def decoder_path(self) -> Path:
        """Get expanded decoder binary path (defaults to ./public/cq)."""
        raw = (self.decoder.binary_path or "").strip()
        if raw:
            return Path(raw).expanduser()
        return Path.cwd() / "public" / "cq"

    model_config = ConfigDict(
        env_prefix="CQ_GATEWAY_",
        env_nested_delimiter="__"
    )
