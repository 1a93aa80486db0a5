"""
Error taxonomy for the qortex adapter.

Three families, one per layer that can fail:

- TransportError: the child process or channel (spawn, handshake, lost pipe,
  disconnect while a call was in flight, per-call timeout)
- ProtocolError: a response that cannot be interpreted (bad JSON, JSON-RPC
  error, missing required field)
- RemoteOperationError: the qortex server answered and reported a failure
  in its payload; ``str(exc)`` is the server's message verbatim

No layer retries. Decision: D-004
"""

from __future__ import annotations

from typing import Any


class QortexError(Exception):
    """Base exception for all adapter failures."""

    pass


class TransportError(QortexError):
    """The channel to the qortex server could not be used."""

    pass


class TransportClosedError(TransportError):
    """The transport was disconnected while the call was in flight."""

    pass


class RequestTimeoutError(TransportError):
    """The configured per-call timeout elapsed before a response arrived."""

    pass


class ProtocolError(QortexError):
    """A response could not be decoded into the expected structure."""

    pass


class RemoteOperationError(QortexError):
    """
    The remote tool reported a failure.

    The message is exactly the string the server supplied, so callers can
    match on known failure text (e.g. "Dimension mismatch").
    """

    def __init__(self, message: str, *, tool: str | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.tool = tool
        self.payload = payload
