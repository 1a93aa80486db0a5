"""
Mock transport for testing.

Answers requests from a handler callable or a queue of canned payloads and
records every request it sees. Payloads are converted the way a real server
would send them: a dict/list becomes one JSON text part, ``None`` becomes an
empty content list, a ``str`` is sent as raw text, and a ToolResponse is
passed through untouched.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Iterable

from qortex_vector.errors import TransportError
from qortex_vector.protocol import TEXT, ContentPart, ToolRequest, ToolResponse
from qortex_vector.transport.base import Transport

LOG = logging.getLogger("qortex_vector.transport.mock")

Handler = Callable[[str, dict[str, Any]], Any]


def as_response(payload: Any) -> ToolResponse:
    if isinstance(payload, ToolResponse):
        return payload
    if isinstance(payload, str):
        return ToolResponse(content=[ContentPart(type=TEXT, text=payload)])
    return ToolResponse.from_payload(payload)


class MockTransport(Transport):
    """
    In-process transport with scripted answers.

    Args:
        handler: ``(tool_name, arguments) -> payload`` (may be async)
        responses: payloads returned in order, one per request
        connect_error: raised from every connect() attempt
        connect_delay: seconds connect() sleeps before succeeding
        gate: when given, every request waits for this event before answering
    """

    def __init__(
        self,
        handler: Handler | None = None,
        responses: Iterable[Any] | None = None,
        *,
        connect_error: Exception | None = None,
        connect_delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ) -> None:
        super().__init__()
        self._handler = handler
        self._responses = list(responses or [])
        self.connect_error = connect_error
        self.connect_delay = connect_delay
        self.gate = gate
        self.started = asyncio.Event()
        self.requests: list[ToolRequest] = []
        self.connect_count = 0
        self.close_count = 0

    def queue(self, *payloads: Any) -> None:
        self._responses.extend(payloads)

    @property
    def last_request(self) -> ToolRequest:
        return self.requests[-1]

    async def _open(self) -> None:
        self.connect_count += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error

    async def _close(self) -> None:
        self.close_count += 1

    async def _send(self, request: ToolRequest) -> ToolResponse:
        # Snapshot arguments so later mutation by the caller cannot leak in.
        self.requests.append(ToolRequest(name=request.name, arguments=json.loads(json.dumps(request.arguments))))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()

        if self._handler is not None:
            payload = self._handler(request.name, request.arguments)
            if inspect.isawaitable(payload):
                payload = await payload
        elif self._responses:
            payload = self._responses.pop(0)
        else:
            raise TransportError(f"MockTransport has no response queued for {request.name}")

        LOG.debug("mock %s -> %r", request.name, payload)
        return as_response(payload)
