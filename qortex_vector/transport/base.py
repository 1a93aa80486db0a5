"""
Abstract transport interface.

A Transport owns one duplex channel to one qortex server and exposes
``send(ToolRequest) -> ToolResponse``. Request/response matching is the
transport's job; the MCP transports get it from JSON-RPC ids, so several
calls may be in flight at once.

State machine: disconnected -> connecting -> connected -> disconnected.
``connecting`` only exists inside ``connect()``.

Follows the same ABC + factory pattern as the other pluggable backends.

Decision: D-001
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING

from qortex_vector.errors import TransportClosedError, TransportError
from qortex_vector.protocol import ToolRequest, ToolResponse

if TYPE_CHECKING:
    from qortex_vector.config import QortexClientConfig

LOG = logging.getLogger("qortex_vector.transport")


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Transport(ABC):
    """
    Base class handling connection status and in-flight bookkeeping.

    Subclasses implement ``_open``, ``_close`` and ``_send``. Every ``send``
    runs as its own task so that ``disconnect()`` can fail the pending
    calls with TransportClosedError instead of leaving them hanging.
    """

    #: True when this transport spawned (and must tear down) its server.
    owns_process: bool = False

    def __init__(self) -> None:
        self._status = ConnectionStatus.DISCONNECTED
        self._lost = False
        self._pending: set[asyncio.Task] = set()
        self._aborted: set[asyncio.Task] = set()
        self._opening: asyncio.Future | None = None
        # Bumped by every disconnect(); a connect() that straddles one is void.
        self._generation = 0

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """
        Open the channel. No-op when already connected.

        Raises TransportClosedError if disconnect() runs before the
        handshake finishes.
        """
        if self.connected:
            return
        if self._lost:
            # Release whatever is left of a channel that died under us.
            await self._close()
            self._lost = False

        generation = self._generation
        self._status = ConnectionStatus.CONNECTING
        opening = asyncio.ensure_future(self._open())
        self._opening = opening
        try:
            await opening
        except BaseException as exc:
            task = asyncio.current_task()
            own_cancel = isinstance(exc, asyncio.CancelledError) and task is not None and task.cancelling()
            if generation != self._generation and not own_cancel:
                raise TransportClosedError("transport disconnected while connecting") from None
            self._status = ConnectionStatus.DISCONNECTED
            if isinstance(exc, Exception) and not isinstance(exc, TransportError):
                raise TransportError(f"failed to connect: {exc}") from exc
            raise
        finally:
            if self._opening is opening:
                self._opening = None

        if generation != self._generation:
            # disconnect() ran while _open() was finishing; do not resurrect.
            await self._close()
            raise TransportClosedError("transport disconnected while connecting")
        self._status = ConnectionStatus.CONNECTED

    async def disconnect(self) -> None:
        """Close the channel, failing in-flight calls and connects. Idempotent."""
        opening = self._opening
        if (
            self._status is ConnectionStatus.DISCONNECTED
            and not self._lost
            and not self._pending
            and opening is None
        ):
            return
        self._generation += 1
        self._status = ConnectionStatus.DISCONNECTED
        self._lost = False

        if opening is not None and not opening.done():
            LOG.info("Cancelling connect in progress")
            opening.cancel()
            await asyncio.gather(opening, return_exceptions=True)

        pending = list(self._pending)
        for task in pending:
            self._aborted.add(task)
            task.cancel()
        if pending:
            LOG.info("Cancelling %d in-flight request(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

        await self._close()

    async def send(self, request: ToolRequest) -> ToolResponse:
        """Send one request and wait for the response that belongs to it."""
        if not self.connected:
            raise TransportError("transport is not connected")

        task = asyncio.ensure_future(self._send(request))
        self._pending.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            if task in self._aborted:
                raise TransportClosedError(
                    f"{request.name}: transport disconnected while the request was in flight"
                ) from None
            raise
        finally:
            self._pending.discard(task)
            self._aborted.discard(task)

    def _mark_lost(self, reason: str) -> None:
        """Record that the channel died; the next connect() starts fresh."""
        if self._status is ConnectionStatus.CONNECTED:
            LOG.warning("Connection to qortex server lost: %s", reason)
        self._status = ConnectionStatus.DISCONNECTED
        self._lost = True

    @abstractmethod
    async def _open(self) -> None:
        """Establish the channel and complete the handshake."""

    @abstractmethod
    async def _close(self) -> None:
        """Release the channel (and the process, if owned)."""

    @abstractmethod
    async def _send(self, request: ToolRequest) -> ToolResponse:
        """Perform one round trip on the open channel."""


def build_transport(config: QortexClientConfig) -> Transport:
    """
    Factory: create the Transport described by *config*.

    A pre-built session wins over the spawn settings.

    Returns:
        SessionTransport when ``config.session`` is set, else StdioTransport
    """
    from qortex_vector.transport.stdio import SessionTransport, StdioTransport

    if config.session is not None:
        LOG.debug("Using caller-supplied MCP session; spawn settings ignored")
        return SessionTransport(config.session, call_timeout=config.call_timeout)

    return StdioTransport(
        command=config.server_command,
        args=config.server_args,
        env=config.child_env(),
        call_timeout=config.call_timeout,
        connect_timeout=config.connect_timeout,
        shutdown_timeout=config.shutdown_timeout,
        client_name=config.client_name,
        client_version=config.client_version,
    )
