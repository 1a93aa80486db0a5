"""
Result models for qortex tool responses.

Field names follow the server's snake_case JSON. Extra keys are kept, and
every field the server may leave out has a default, since the payloads are
owned by qortex and only shape-checked here.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from qortex_vector.errors import ProtocolError


class Metric(StrEnum):
    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOTPRODUCT = "dotproduct"


class QueryMode(StrEnum):
    VEC = "vec"
    GRAPH = "graph"
    AUTO = "auto"


class FeedbackOutcome(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PARTIAL = "partial"


class RemoteModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class IndexStats(RemoteModel):
    dimension: int
    count: int
    metric: Metric


class QueryResult(RemoteModel):
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    vector: Optional[List[float]] = None


# ── Graph extras ─────────────────────────────────────────────────────────────


class QortexNode(RemoteModel):
    """A concept node in the qortex knowledge graph."""

    id: str
    name: str = ""
    description: str = ""
    domain: str = ""
    confidence: float = 1.0
    properties: Dict[str, Any] = Field(default_factory=dict)


class QortexEdge(RemoteModel):
    """A typed edge, e.g. ``relation_type="REQUIRES"``."""

    source_id: str
    target_id: str
    relation_type: str
    confidence: float = 1.0
    properties: Dict[str, Any] = Field(default_factory=dict)


class QortexRule(RemoteModel):
    """A rule linked to one or more concepts."""

    id: str
    text: str
    domain: str = ""
    category: Optional[str] = None
    confidence: float = 1.0
    relevance: float = 0.0
    derivation: str = "explicit"
    source_concepts: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class QortexQueryItem(RemoteModel):
    id: str
    content: str = ""
    score: float
    domain: str = ""
    node_id: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class QortexQueryResult(RemoteModel):
    """Ranked items for a text query; keep ``query_id`` to send feedback."""

    items: List[QortexQueryItem] = Field(default_factory=list)
    query_id: str = ""
    rules: List[QortexRule] = Field(default_factory=list)


class ExploreResult(RemoteModel):
    node: QortexNode
    edges: List[QortexEdge] = Field(default_factory=list)
    rules: List[QortexRule] = Field(default_factory=list)
    neighbors: List[QortexNode] = Field(default_factory=list)


class RulesResult(RemoteModel):
    rules: List[QortexRule] = Field(default_factory=list)
    domain_count: int = 0
    projection: str = ""


class FeedbackResult(RemoteModel):
    status: str
    query_id: str
    outcome_count: int
    source: str


M = TypeVar("M", bound=BaseModel)


def parse_remote(model_cls: Type[M], data: Any, tool: str) -> M:
    """Validate a remote payload fragment, reporting shape problems as ProtocolError."""
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"{tool}: unexpected {model_cls.__name__} shape: {exc}") from exc
