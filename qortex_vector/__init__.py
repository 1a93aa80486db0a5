"""
qortex-vector: a vector store adapter backed by the qortex MCP server.

Every operation is forwarded as an MCP tool call to a qortex server, spawned
over stdio (``uvx qortex mcp-serve`` by default) or supplied as an existing
``mcp.ClientSession``.

Public API:
- QortexVector: the VectorStore implementation plus graph extras
- QortexRetrievalClient: text query, explore, rules, feedback
- QortexMcpClient: the underlying RPC client (``call_tool``)
- QortexClientConfig: connection settings (``from_env()``)
"""

from qortex_vector.client import QortexMcpClient
from qortex_vector.config import QortexClientConfig
from qortex_vector.errors import (
    ProtocolError,
    QortexError,
    RemoteOperationError,
    RequestTimeoutError,
    TransportClosedError,
    TransportError,
)
from qortex_vector.models import (
    ExploreResult,
    FeedbackOutcome,
    FeedbackResult,
    IndexStats,
    Metric,
    QortexEdge,
    QortexNode,
    QortexQueryItem,
    QortexQueryResult,
    QortexRule,
    QueryMode,
    QueryResult,
    RulesResult,
)
from qortex_vector.retrieval import QortexRetrievalClient
from qortex_vector.store import VectorStore
from qortex_vector.vector import QortexVector

__all__ = [
    # Store
    "QortexVector",
    "VectorStore",
    "QortexRetrievalClient",
    # Client
    "QortexMcpClient",
    "QortexClientConfig",
    # Errors
    "QortexError",
    "TransportError",
    "TransportClosedError",
    "RequestTimeoutError",
    "ProtocolError",
    "RemoteOperationError",
    # Models
    "ExploreResult",
    "FeedbackOutcome",
    "FeedbackResult",
    "IndexStats",
    "Metric",
    "QortexEdge",
    "QortexNode",
    "QortexQueryItem",
    "QortexQueryResult",
    "QortexRule",
    "QueryMode",
    "QueryResult",
    "RulesResult",
]
