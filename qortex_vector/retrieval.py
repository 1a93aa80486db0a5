"""
Graph-enhanced retrieval on top of the qortex RPC client.

Four operations the plain vector interface has no room for:

- text_query: qortex embeds the text itself and may run graph-aware (PPR)
  ranking; returns scored items, linked rules and a query_id
- explore: a node's typed edges, neighbor nodes and rules (None if the
  node does not exist)
- get_rules: rules projected from the graph, filtered
- feedback: accepted/rejected/partial outcomes for a prior query_id, used by
  qortex to bias later rankings

Ranking, traversal and learning all happen server-side.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from qortex_vector.client import QortexMcpClient
from qortex_vector.models import (
    ExploreResult,
    FeedbackOutcome,
    FeedbackResult,
    QortexQueryResult,
    QueryMode,
    RulesResult,
    parse_remote,
)
from qortex_vector.params import (
    ExploreParams,
    FeedbackParams,
    RulesParams,
    TextQueryParams,
    invoke,
    resolve,
)

LOG = logging.getLogger("qortex_vector.retrieval")


class QortexRetrievalClient:
    """Text query, graph exploration, rule projection and feedback."""

    def __init__(self, mcp: QortexMcpClient) -> None:
        self.mcp = mcp

    async def text_query(
        self,
        context: str,
        *,
        domains: Optional[Sequence[str]] = None,
        top_k: int | None = None,
        min_confidence: float | None = None,
        mode: QueryMode | str | None = None,
    ) -> QortexQueryResult:
        """
        Text-level query using qortex's full retrieval pipeline.

        Unlike the vector-level ``query()`` (which takes raw embeddings),
        this uses qortex's embedding model and, depending on ``mode``,
        graph-enhanced ranking. Keep ``result.query_id`` to submit feedback;
        it has no client-side expiry.

        Defaults: top_k=20, min_confidence=0.0, mode="auto".
        """
        params = resolve(
            TextQueryParams,
            context=context,
            domains=_as_list(domains),
            top_k=top_k,
            min_confidence=min_confidence,
            mode=mode,
        )
        result = await invoke(self.mcp, params)
        return parse_remote(QortexQueryResult, result.data, params.tool)

    async def explore(self, node_id: str, depth: int | None = None) -> ExploreResult | None:
        """
        Explore a node's neighborhood in the knowledge graph.

        Use ``node_id`` values from text_query() items. ``depth`` is 1-3
        (default 1).

        Returns:
            ExploreResult, or None when qortex has no such node
        """
        params = resolve(ExploreParams, node_id=node_id, depth=depth)
        result = await invoke(self.mcp, params)
        if result.require("node") is None:
            LOG.debug("explore: no node %r", node_id)
            return None
        return parse_remote(ExploreResult, result.data, params.tool)

    async def get_rules(
        self,
        *,
        domains: Optional[Sequence[str]] = None,
        concept_ids: Optional[Sequence[str]] = None,
        categories: Optional[Sequence[str]] = None,
        include_derived: bool | None = None,
        min_confidence: float | None = None,
    ) -> RulesResult:
        """
        Get projected rules from the knowledge graph.

        Filters combine with AND; none at all asks for everything the
        server is willing to return. Defaults: include_derived=True,
        min_confidence=0.0.
        """
        params = resolve(
            RulesParams,
            domains=_as_list(domains),
            concept_ids=_as_list(concept_ids),
            categories=_as_list(categories),
            include_derived=include_derived,
            min_confidence=min_confidence,
        )
        result = await invoke(self.mcp, params)
        return parse_remote(RulesResult, result.data, params.tool)

    async def feedback(
        self,
        query_id: str,
        outcomes: Mapping[str, FeedbackOutcome | str],
        source: str | None = None,
    ) -> FeedbackResult:
        """
        Report outcomes for items of a prior text_query().

        Item ids are not checked against the query here; qortex decides.
        Nothing is retried, and there is no guarantee the bias is applied
        before the next query. Server-reported failures still raise.
        """
        params = resolve(FeedbackParams, query_id=query_id, outcomes=dict(outcomes), source=source)
        result = await invoke(self.mcp, params)
        LOG.debug("feedback for %s: %d outcome(s)", query_id, len(params.outcomes))
        return parse_remote(FeedbackResult, result.data, params.tool)


def _as_list(values: Optional[Sequence[Any]]) -> Optional[list[Any]]:
    return list(values) if values is not None else None
