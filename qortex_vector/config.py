"""
Configuration surface for the qortex client.

Values come from keyword arguments first, then QORTEX_* environment
variables, then the defaults below. A pre-built MCP session replaces the
spawn settings entirely.

Decision: D-005
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mcp import ClientSession

CLIENT_NAME = "mastra-qortex"
CLIENT_VERSION = "0.1.0"

DEFAULT_SERVER_COMMAND = "uvx"
DEFAULT_SERVER_ARGS: tuple[str, ...] = ("qortex", "mcp-serve")
DEFAULT_CONNECT_TIMEOUT = 60.0
DEFAULT_SHUTDOWN_TIMEOUT = 5.0

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    if raw.lower() == "none":
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


@dataclass
class QortexClientConfig:
    """
    How to reach the qortex MCP server.

    Either spawn ``server_command server_args...`` over stdio with
    ``os.environ`` overridden by ``server_env``, or adopt ``session``, an
    already-initialized ``mcp.ClientSession`` owned by the caller.
    """

    server_command: str = DEFAULT_SERVER_COMMAND
    server_args: list[str] = field(default_factory=lambda: list(DEFAULT_SERVER_ARGS))
    server_env: dict[str, str] = field(default_factory=dict)
    session: ClientSession | None = None
    call_timeout: float | None = None
    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    client_name: str = CLIENT_NAME
    client_version: str = CLIENT_VERSION

    @classmethod
    def from_env(cls, **overrides: Any) -> "QortexClientConfig":
        """Build a config from QORTEX_* variables; keyword overrides win."""
        values: dict[str, Any] = {}

        command = os.environ.get("QORTEX_SERVER_COMMAND", "").strip()
        if command:
            values["server_command"] = command
        args = os.environ.get("QORTEX_SERVER_ARGS")
        if args is not None:
            values["server_args"] = shlex.split(args)

        values["call_timeout"] = _env_float("QORTEX_CALL_TIMEOUT", None)
        values["connect_timeout"] = _env_float("QORTEX_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)
        values["shutdown_timeout"] = _env_float("QORTEX_SHUTDOWN_TIMEOUT", DEFAULT_SHUTDOWN_TIMEOUT)
        if values["shutdown_timeout"] is None:
            values["shutdown_timeout"] = DEFAULT_SHUTDOWN_TIMEOUT

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def child_env(self) -> dict[str, str]:
        """The environment for a spawned server: ours, overridden by server_env."""
        env = dict(os.environ)
        env.update(self.server_env)
        return env


def configure_logging(level: str | None = None) -> None:
    """Root logging setup for command-line use. Library code never calls this."""
    chosen = (level or os.environ.get("QORTEX_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=chosen, format=LOG_FORMAT)
