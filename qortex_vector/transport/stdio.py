"""
MCP transports: a spawned stdio server, or a caller-supplied session.

StdioTransport runs the MCP SDK's ``stdio_client`` + ``ClientSession`` inside
one dedicated task. The SDK's anyio task groups must be entered and exited
by the same task, so connect() and disconnect() talk to that task through
a ready future and a stop event instead of holding the context managers
themselves. That also lets connect() happen lazily inside whatever task
makes the first call.

Teardown: closing the session closes the child's stdin and lets it exit;
the SDK terminates it if it lingers. If the whole teardown exceeds
``shutdown_timeout`` the session task is cancelled.

Decision: D-001, D-006
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Sequence

import anyio
import httpx
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError
from mcp.types import CONNECTION_CLOSED, CallToolResult, Implementation

from qortex_vector.config import (
    CLIENT_NAME,
    CLIENT_VERSION,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_SHUTDOWN_TIMEOUT,
)
from qortex_vector.errors import ProtocolError, RequestTimeoutError, TransportClosedError, TransportError
from qortex_vector.protocol import ContentPart, ToolRequest, ToolResponse
from qortex_vector.transport.base import ConnectionStatus, Transport

LOG = logging.getLogger("qortex_vector.transport.stdio")

_CHANNEL_ERRORS = (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.EndOfStream)


def _to_response(result: CallToolResult) -> ToolResponse:
    return ToolResponse(
        content=[ContentPart(type=part.type, text=getattr(part, "text", None)) for part in result.content],
        is_error=bool(result.isError),
    )


class _McpSessionTransport(Transport):
    """Shared round trip over an initialized ``mcp.ClientSession``."""

    def __init__(self, call_timeout: float | None = None) -> None:
        super().__init__()
        self.call_timeout = call_timeout
        self._session: ClientSession | None = None

    async def _send(self, request: ToolRequest) -> ToolResponse:
        session = self._session
        if session is None:
            self._mark_lost("session is gone")
            raise TransportError(f"{request.name}: no open session")

        timeout = timedelta(seconds=self.call_timeout) if self.call_timeout is not None else None
        try:
            result = await session.call_tool(request.name, request.arguments, read_timeout_seconds=timeout)
        except McpError as exc:
            code = exc.error.code
            if code == httpx.codes.REQUEST_TIMEOUT:
                raise RequestTimeoutError(f"{request.name}: no response within {self.call_timeout}s") from exc
            if code == CONNECTION_CLOSED:
                self._mark_lost(exc.error.message)
                raise TransportError(f"{request.name}: {exc.error.message}") from exc
            raise ProtocolError(f"{request.name}: {exc.error.message}") from exc
        except _CHANNEL_ERRORS as exc:
            self._mark_lost(type(exc).__name__)
            raise TransportError(f"{request.name}: channel to qortex server closed") from exc

        return _to_response(result)


class StdioTransport(_McpSessionTransport):
    """
    Spawn the qortex MCP server and talk to it over stdin/stdout.

    The child's environment is exactly *env* (callers pass ``os.environ``
    merged with their overrides; see QortexClientConfig.child_env).
    """

    owns_process = True

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        env: dict[str, str] | None = None,
        *,
        call_timeout: float | None = None,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        client_name: str = CLIENT_NAME,
        client_version: str = CLIENT_VERSION,
    ) -> None:
        super().__init__(call_timeout=call_timeout)
        self.command = command
        self.args = list(args)
        self.env = env
        self.connect_timeout = connect_timeout
        self.shutdown_timeout = shutdown_timeout
        self._client_info = Implementation(name=client_name, version=client_version)
        self._runner: asyncio.Task | None = None
        self._ready: asyncio.Future | None = None
        self._stop: asyncio.Event | None = None

    async def _open(self) -> None:
        self._ready = asyncio.get_running_loop().create_future()
        self._stop = asyncio.Event()
        LOG.info("Starting qortex server: %s %s", self.command, " ".join(self.args))
        self._runner = asyncio.create_task(self._run_session(), name=f"qortex-stdio:{self.command}")

        try:
            await asyncio.wait_for(asyncio.shield(self._ready), timeout=self.connect_timeout)
        except TimeoutError:
            await self._stop_runner(graceful=False)
            raise TransportError(
                f"qortex server {self.command!r} did not complete the handshake within {self.connect_timeout}s"
            ) from None
        except TransportError:
            await self._stop_runner(graceful=False)
            raise
        except Exception as exc:
            await self._stop_runner(graceful=False)
            raise TransportError(f"failed to start qortex server {self.command!r}: {exc}") from exc
        except BaseException:
            await self._stop_runner(graceful=False)
            raise

        LOG.info("Connected to qortex server over stdio")

    async def _run_session(self) -> None:
        assert self._ready is not None and self._stop is not None
        ready, stop = self._ready, self._stop
        params = StdioServerParameters(command=self.command, args=self.args, env=self.env)
        try:
            async with AsyncExitStack() as stack:
                read, write = await stack.enter_async_context(stdio_client(params))
                session = await stack.enter_async_context(
                    ClientSession(read, write, client_info=self._client_info)
                )
                await session.initialize()
                self._session = session
                if not ready.done():
                    ready.set_result(None)
                await stop.wait()
                self._session = None
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            elif stop.is_set():
                LOG.debug("Error while closing qortex session: %s", exc)
            else:
                self._mark_lost(str(exc))
        finally:
            self._session = None
            if not ready.done():
                ready.set_exception(TransportClosedError("qortex session closed before the handshake completed"))

    async def _stop_runner(self, graceful: bool) -> None:
        runner, self._runner = self._runner, None
        if runner is None:
            return

        if graceful and not runner.done():
            assert self._stop is not None
            self._stop.set()
            try:
                await asyncio.wait_for(asyncio.shield(runner), timeout=self.shutdown_timeout)
            except TimeoutError:
                LOG.warning(
                    "qortex server did not shut down within %.1fs; cancelling session", self.shutdown_timeout
                )

        if not runner.done():
            runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)

        ready = self._ready
        if ready is not None and ready.done() and not ready.cancelled():
            ready.exception()  # mark retrieved
        self._session = None

    async def _close(self) -> None:
        if self._runner is None:
            return
        await self._stop_runner(graceful=True)
        LOG.info("qortex server stopped")


class SessionTransport(_McpSessionTransport):
    """
    Adopt an MCP session the caller already opened and initialized.

    Starts out connected. disconnect() only detaches; the caller keeps
    ownership of the session and whatever process or stream backs it.
    """

    owns_process = False

    def __init__(self, session: ClientSession, *, call_timeout: float | None = None) -> None:
        super().__init__(call_timeout=call_timeout)
        self._adopted = session
        self._session = session
        self._status = ConnectionStatus.CONNECTED

    async def _open(self) -> None:
        self._session = self._adopted

    async def _close(self) -> None:
        self._session = None
