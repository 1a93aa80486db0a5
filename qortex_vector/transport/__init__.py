"""
Transports carrying tool calls to the qortex server.

- StdioTransport: spawn the server, MCP over stdin/stdout
- SessionTransport: adopt a caller-owned ``mcp.ClientSession``
- MockTransport: scripted answers for tests
"""

from qortex_vector.transport.base import ConnectionStatus, Transport, build_transport
from qortex_vector.transport.mock import MockTransport
from qortex_vector.transport.stdio import SessionTransport, StdioTransport

__all__ = [
    "ConnectionStatus",
    "MockTransport",
    "SessionTransport",
    "StdioTransport",
    "Transport",
    "build_transport",
]
