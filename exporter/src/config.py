"""
Exporter configuration loaded from environment variables and CLI overrides.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every field can be set through an ``EYEM4_``-prefixed environment variable or
a .env file; the ``serve`` command passes its flags as init kwargs, which take
precedence over the environment.

CHANGELOG:
- 2026-10-14: Add request_timeout_s for per-request WebSocket reads (STORY-006)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT_MS = 10_000
"""Deadline for one collection when none is configured."""


class ExporterSettings(BaseSettings):
    """Server-level configuration for the EyeM4 exporter.

    Attributes:
        ip: EyeM4 dongle IP address or hostname. Empty means "not set"; the
            CLI refuses to start without it.
        listen_host: Interface the HTTP server binds to.
        listen_port: Port the HTTP server listens on (default 8080).
        timeout_ms: Deadline for one collection in milliseconds. 0 disables
            the deadline entirely.
        ws_port: WebSocket port on the dongle (default 8082).
        username: Dongle login user.
        password: Dongle login password.
        request_timeout_s: Seconds to wait for each WebSocket reply.
    """

    ip: str = ""
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    ws_port: int = 8082
    username: str = "admin"
    password: str = "pw8888"
    request_timeout_s: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="EYEM4_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("ip")
    @classmethod
    def ip_strip(cls, v: str) -> str:
        """Strip surrounding whitespace so a blank value counts as unset."""
        return v.strip()

    @field_validator("listen_port", "ws_port")
    @classmethod
    def port_must_be_valid(cls, v: int) -> int:
        """Validate TCP ports are in range."""
        if v < 1 or v > 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("timeout_ms")
    @classmethod
    def timeout_must_be_non_negative(cls, v: int) -> int:
        """Validate the collection deadline is non-negative (0 = disabled)."""
        if v < 0:
            raise ValueError("TIMEOUT_MS must be >= 0 (0 disables the deadline)")
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def request_timeout_must_be_positive(cls, v: float) -> float:
        """Validate the per-request WebSocket timeout is positive."""
        if v <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        return v
