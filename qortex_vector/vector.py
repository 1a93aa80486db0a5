"""
QortexVector: a VectorStore backed by qortex's knowledge graph.

Implements the nine VectorStore methods as MCP tool calls to the qortex
server, and adds the graph extras (text_query, explore, get_rules,
feedback) through QortexRetrievalClient on the same connection.

Usage::

    async with QortexVector(id="qortex") as qortex:
        await qortex.create_index(index_name="docs", dimension=384)
        await qortex.upsert(index_name="docs", vectors=[...], metadata=[...])
        results = await qortex.query(index_name="docs", query_vector=[...])

        explored = await qortex.explore(results[0].id)
        rules = await qortex.get_rules(domains=["security"])
        await qortex.feedback(query_id, {item_id: "accepted"})

Index state (count, dimension) is never cached: every read is a fresh
remote call, and result order is whatever the server returned.

Decision: D-002, D-007
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from qortex_vector.client import QortexMcpClient
from qortex_vector.config import QortexClientConfig
from qortex_vector.errors import ProtocolError
from qortex_vector.models import (
    ExploreResult,
    FeedbackOutcome,
    FeedbackResult,
    IndexStats,
    Metric,
    QortexQueryResult,
    QueryMode,
    QueryResult,
    RulesResult,
    parse_remote,
)
from qortex_vector.params import (
    TOOL_LIST_INDEXES,
    CreateIndexParams,
    DeleteIndexParams,
    DeleteVectorParams,
    DeleteVectorsParams,
    DescribeIndexParams,
    QueryParams,
    UpdateVectorParams,
    UpsertParams,
    VectorUpdate,
    invoke,
    resolve,
)
from qortex_vector.protocol import RemoteResult
from qortex_vector.retrieval import QortexRetrievalClient
from qortex_vector.store import VectorStore

LOG = logging.getLogger("qortex_vector.vector")


class QortexVector(VectorStore):
    """
    Vector store that forwards every operation to a qortex MCP server.

    Args:
        id: identifier of this store instance
        config: how to spawn or adopt the server connection
        client: an existing QortexMcpClient to share (overrides *config*)

    Failures:
        RemoteOperationError carries the server's message verbatim
        (e.g. "Dimension mismatch"); TransportError / ProtocolError come
        from the layers below; bad local arguments raise ValueError.
    """

    def __init__(
        self,
        id: str = "qortex",
        config: QortexClientConfig | None = None,
        *,
        client: QortexMcpClient | None = None,
    ) -> None:
        super().__init__(id)
        self.mcp = client if client is not None else QortexMcpClient(config)
        self.graph = QortexRetrievalClient(self.mcp)

    @property
    def connected(self) -> bool:
        return self.mcp.connected

    async def connect(self) -> None:
        """Ensure the MCP connection is established."""
        await self.mcp.connect()

    async def disconnect(self) -> None:
        """Disconnect from the MCP server."""
        await self.mcp.disconnect()

    async def close(self) -> None:
        await self.disconnect()

    async def __aenter__(self) -> "QortexVector":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # ─── VectorStore ────────────────────────────────────────────────────────

    async def create_index(self, *, index_name: str, dimension: int, metric: Metric | str | None = None) -> None:
        params = resolve(CreateIndexParams, index_name=index_name, dimension=dimension, metric=metric)
        await invoke(self.mcp, params)
        LOG.info("Created index %s (dim=%d, %s)", index_name, params.dimension, params.metric)

    async def list_indexes(self) -> List[str]:
        payload = await self.mcp.call_tool(TOOL_LIST_INDEXES, {})
        result = RemoteResult.from_payload(TOOL_LIST_INDEXES, payload)
        indexes = _require_list(result, "indexes")
        return [str(name) for name in indexes]

    async def describe_index(self, *, index_name: str) -> IndexStats:
        params = resolve(DescribeIndexParams, index_name=index_name)
        result = await invoke(self.mcp, params)
        return parse_remote(IndexStats, result.data, params.tool)

    async def delete_index(self, *, index_name: str) -> None:
        params = resolve(DeleteIndexParams, index_name=index_name)
        await invoke(self.mcp, params)
        LOG.info("Deleted index %s", index_name)

    async def upsert(
        self,
        *,
        index_name: str,
        vectors: List[List[float]],
        metadata: Optional[List[Dict[str, Any]]] = None,
        ids: Optional[List[str]] = None,
    ) -> List[str]:
        params = resolve(UpsertParams, index_name=index_name, vectors=vectors, metadata=metadata, ids=ids)
        result = await invoke(self.mcp, params)
        returned = [str(i) for i in _require_list(result, "ids")]
        if len(returned) != len(params.vectors):
            raise ProtocolError(
                f"{params.tool}: server returned {len(returned)} ids for {len(params.vectors)} vectors"
            )
        return returned

    async def query(
        self,
        *,
        index_name: str,
        query_vector: List[float],
        top_k: int | None = None,
        filter: Optional[Dict[str, Any]] = None,
        include_vector: bool | None = None,
    ) -> List[QueryResult]:
        params = resolve(
            QueryParams,
            index_name=index_name,
            query_vector=query_vector,
            top_k=top_k,
            filter=filter,
            include_vector=include_vector,
        )
        result = await invoke(self.mcp, params)
        rows = result.data.get("results") or []
        # Order is the server's; no re-sorting here.
        return [parse_remote(QueryResult, row, params.tool) for row in rows]

    async def update_vector(
        self,
        *,
        index_name: str,
        update: VectorUpdate | Mapping[str, Any],
        id: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        if isinstance(update, VectorUpdate):
            update = update.model_dump()
        params = resolve(UpdateVectorParams, index_name=index_name, id=id, filter=filter, update=dict(update))
        await invoke(self.mcp, params)

    async def delete_vector(self, *, index_name: str, id: str) -> None:
        params = resolve(DeleteVectorParams, index_name=index_name, id=id)
        await invoke(self.mcp, params)

    async def delete_vectors(
        self,
        *,
        index_name: str,
        ids: Optional[List[str]] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        params = resolve(DeleteVectorsParams, index_name=index_name, ids=ids, filter=filter)
        await invoke(self.mcp, params)

    # ─── Qortex extras ──────────────────────────────────────────────────────

    async def text_query(
        self,
        context: str,
        *,
        domains: Optional[Sequence[str]] = None,
        top_k: int | None = None,
        min_confidence: float | None = None,
        mode: QueryMode | str | None = None,
    ) -> QortexQueryResult:
        """See QortexRetrievalClient.text_query."""
        return await self.graph.text_query(
            context, domains=domains, top_k=top_k, min_confidence=min_confidence, mode=mode
        )

    async def explore(self, node_id: str, depth: int | None = None) -> ExploreResult | None:
        """See QortexRetrievalClient.explore."""
        return await self.graph.explore(node_id, depth)

    async def get_rules(
        self,
        *,
        domains: Optional[Sequence[str]] = None,
        concept_ids: Optional[Sequence[str]] = None,
        categories: Optional[Sequence[str]] = None,
        include_derived: bool | None = None,
        min_confidence: float | None = None,
    ) -> RulesResult:
        """See QortexRetrievalClient.get_rules."""
        return await self.graph.get_rules(
            domains=domains,
            concept_ids=concept_ids,
            categories=categories,
            include_derived=include_derived,
            min_confidence=min_confidence,
        )

    async def feedback(
        self,
        query_id: str,
        outcomes: Mapping[str, FeedbackOutcome | str],
        source: str | None = None,
    ) -> FeedbackResult:
        """See QortexRetrievalClient.feedback."""
        return await self.graph.feedback(query_id, outcomes, source)


def _require_list(result: RemoteResult, key: str) -> list[Any]:
    result.raise_for_error()
    value = result.require(key)
    if not isinstance(value, list):
        raise ProtocolError(f"{result.tool}: {key!r} is not a list")
    return value
