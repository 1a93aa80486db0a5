"""
Request/response envelopes exchanged with the qortex server.

A request names a tool and carries a flat argument mapping. A response
carries zero or more typed content parts; the first ``text`` part, if any,
holds a JSON-encoded result. Decoding is split in two explicit steps:

1. ``decode_response``: envelope -> raw JSON value (``{}`` when there is no
   text part, which idempotent tools legitimately return)
2. ``RemoteResult.from_payload(...).raise_for_error()``: raw value -> mapping,
   turning an ``error`` field into RemoteOperationError

Decision: D-003
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from qortex_vector.errors import ProtocolError, RemoteOperationError

LOG = logging.getLogger("qortex_vector.protocol")

TEXT = "text"


@dataclass
class ToolRequest:
    """One remote tool invocation."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments}


@dataclass
class ContentPart:
    """A typed part of a tool response (``text``, ``image``, ``resource``...)."""

    type: str
    text: str | None = None


@dataclass
class ToolResponse:
    """The envelope returned for a ToolRequest."""

    content: list[ContentPart] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def from_payload(cls, payload: Any, *, is_error: bool = False) -> "ToolResponse":
        """Wrap a JSON-able value as a single text part (``None`` -> no parts)."""
        if payload is None:
            return cls(content=[], is_error=is_error)
        return cls(content=[ContentPart(type=TEXT, text=json.dumps(payload))], is_error=is_error)

    def first_text(self) -> str | None:
        """Text of the first ``text`` part, or None if there is none or it is empty."""
        for part in self.content:
            if part.type == TEXT:
                return part.text or None
        return None


def decode_response(tool: str, response: ToolResponse) -> Any:
    """Turn a response envelope into the decoded JSON value, verbatim."""
    text = response.first_text()
    if text is None:
        if response.is_error:
            raise RemoteOperationError(f"{tool} failed without a message", tool=tool)
        return {}

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        if response.is_error:
            # Tool-level failures from MCP servers are often plain text.
            raise RemoteOperationError(text, tool=tool) from None
        raise ProtocolError(f"{tool}: response is not valid JSON: {exc}") from exc

    if response.is_error and not isinstance(payload, dict):
        raise RemoteOperationError(text, tool=tool)
    if response.is_error and not payload.get("error"):
        # An error-flagged envelope fails even without an ``error`` field.
        raise RemoteOperationError(text, tool=tool, payload=payload)
    return payload


@dataclass
class RemoteResult:
    """
    A decoded payload, classified.

    Either a result mapping (``error is None``) or a remote failure
    (``error`` holds the server's message). Each operation checks this
    explicitly via ``raise_for_error``.
    """

    tool: str
    data: dict[str, Any]
    error: str | None = None

    @classmethod
    def from_payload(cls, tool: str, payload: Any) -> "RemoteResult":
        if not isinstance(payload, dict):
            raise ProtocolError(f"{tool}: expected a JSON object, got {type(payload).__name__}")
        error = payload.get("error")
        if error:
            return cls(tool=tool, data=payload, error=error if isinstance(error, str) else json.dumps(error))
        return cls(tool=tool, data=payload)

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> dict[str, Any]:
        """Return the mapping, or raise RemoteOperationError with the remote message."""
        if self.error is not None:
            LOG.debug("%s reported error: %s", self.tool, self.error)
            raise RemoteOperationError(self.error, tool=self.tool, payload=self.data)
        return self.data

    def require(self, key: str) -> Any:
        """Fetch a field the operation cannot do without."""
        if key not in self.data:
            raise ProtocolError(f"{self.tool}: response has no {key!r} field")
        return self.data[key]
