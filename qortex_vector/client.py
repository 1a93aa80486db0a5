"""
RPC client: one named tool call -> one correlated round trip -> decoded JSON.

The client connects lazily on first use. A single lock guards connection
setup so that concurrent first calls spawn the server once. Nothing is
cached, batched or retried; every call goes to the server.

Decision: D-002
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from qortex_vector.config import QortexClientConfig
from qortex_vector.protocol import ToolRequest, decode_response
from qortex_vector.transport.base import ConnectionStatus, Transport, build_transport

LOG = logging.getLogger("qortex_vector.client")


class QortexMcpClient:
    """
    Calls qortex MCP tools and returns their parsed JSON results.

    Args:
        config: how to reach the server (defaults to QortexClientConfig())
        transport: an explicit Transport, overriding *config*

    Usage::

        async with QortexMcpClient(QortexClientConfig.from_env()) as mcp:
            result = await mcp.call_tool("qortex_vector_list_indexes", {})
    """

    def __init__(
        self,
        config: QortexClientConfig | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config or QortexClientConfig()
        self._transport = transport if transport is not None else build_transport(self.config)
        self._connect_lock = asyncio.Lock()

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def status(self) -> ConnectionStatus:
        return self._transport.status

    @property
    def connected(self) -> bool:
        return self._transport.connected

    async def connect(self) -> None:
        """Establish the connection. No-op when already connected."""
        if self.connected:
            return
        async with self._connect_lock:
            if self.connected:
                return
            await self._transport.connect()

    async def disconnect(self) -> None:
        """Tear down the connection; in-flight calls fail with TransportClosedError."""
        await self._transport.disconnect()

    async def call_tool(self, name: str, arguments: Mapping[str, Any]) -> Any:
        """
        Call a qortex MCP tool and return the parsed result.

        Args:
            name: Tool name (e.g. "qortex_vector_query")
            arguments: Tool arguments, already in wire naming

        Returns:
            The decoded JSON value, verbatim. ``{}`` when the response has no
            text content. Interpreting an ``error`` field is up to the caller.

        Raises:
            TransportError: the server could not be reached
            ProtocolError: the response text is not JSON
        """
        if not self.connected:
            await self.connect()

        LOG.debug("call %s (%s)", name, ", ".join(arguments))
        response = await self._transport.send(ToolRequest(name=name, arguments=dict(arguments)))
        return decode_response(name, response)

    async def __aenter__(self) -> "QortexMcpClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()
