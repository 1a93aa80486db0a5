"""
Per-operation parameters: defaults, local input checks, wire shaping.

Each operation resolves its arguments through one model here before any
remote call: unset values fall back to the model defaults (metric=cosine,
top_k=10, include_vector=False, ...), cheap input constraints are checked,
and ``to_arguments()`` produces the exact snake_case mapping sent to the
server. Optional fields that were not provided go out as ``null`` rather
than being dropped, so the server can tell "not provided" from an
explicitly empty value (``[]`` / ``{}``).

Tool names are a versioned contract with the qortex server; renaming one
is a breaking change.

Decision: D-007
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from qortex_vector.models import FeedbackOutcome, Metric, QueryMode
from qortex_vector.protocol import RemoteResult

if TYPE_CHECKING:
    from qortex_vector.client import QortexMcpClient

TOOL_CREATE_INDEX = "qortex_vector_create_index"
TOOL_LIST_INDEXES = "qortex_vector_list_indexes"
TOOL_DESCRIBE_INDEX = "qortex_vector_describe_index"
TOOL_DELETE_INDEX = "qortex_vector_delete_index"
TOOL_UPSERT = "qortex_vector_upsert"
TOOL_QUERY = "qortex_vector_query"
TOOL_UPDATE = "qortex_vector_update"
TOOL_DELETE = "qortex_vector_delete"
TOOL_DELETE_MANY = "qortex_vector_delete_many"

TOOL_TEXT_QUERY = "qortex_query"
TOOL_EXPLORE = "qortex_explore"
TOOL_RULES = "qortex_rules"
TOOL_FEEDBACK = "qortex_feedback"

DEFAULT_TOP_K = 10
DEFAULT_TEXT_TOP_K = 20
DEFAULT_FEEDBACK_SOURCE = "mastra"
MAX_EXPLORE_DEPTH = 3

Filter = Dict[str, Any]

P = TypeVar("P", bound="ToolParams")


class ToolParams(BaseModel):
    """Base for operation parameters. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    tool: ClassVar[str]

    def to_arguments(self) -> dict[str, Any]:
        raise NotImplementedError


def resolve(params_cls: type[P], **values: Any) -> P:
    """
    Build *params_cls* from keyword values, treating ``None`` as "not given".

    This is the single place defaults are applied.
    """
    return params_cls.model_validate({k: v for k, v in values.items() if v is not None})


class _IndexParams(ToolParams):
    index_name: str

    @field_validator("index_name")
    @classmethod
    def _index_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("index_name must be a non-empty string")
        return value


# ── Storage operations ───────────────────────────────────────────────────────


class CreateIndexParams(_IndexParams):
    tool: ClassVar[str] = TOOL_CREATE_INDEX

    dimension: int = Field(gt=0)
    metric: Metric = Metric.COSINE

    def to_arguments(self) -> dict[str, Any]:
        return {"index_name": self.index_name, "dimension": self.dimension, "metric": self.metric.value}


class DescribeIndexParams(_IndexParams):
    tool: ClassVar[str] = TOOL_DESCRIBE_INDEX

    def to_arguments(self) -> dict[str, Any]:
        return {"index_name": self.index_name}


class DeleteIndexParams(DescribeIndexParams):
    tool: ClassVar[str] = TOOL_DELETE_INDEX


class UpsertParams(_IndexParams):
    tool: ClassVar[str] = TOOL_UPSERT

    vectors: List[List[float]]
    metadata: Optional[List[Dict[str, Any]]] = None
    ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def _parallel_lengths(self) -> "UpsertParams":
        n = len(self.vectors)
        for name in ("metadata", "ids"):
            seq = getattr(self, name)
            if seq is not None and len(seq) != n:
                raise ValueError(f"{name} has {len(seq)} entries but vectors has {n}")
        return self

    def to_arguments(self) -> dict[str, Any]:
        return {
            "index_name": self.index_name,
            "vectors": self.vectors,
            "metadata": self.metadata,
            "ids": self.ids,
        }


class QueryParams(_IndexParams):
    tool: ClassVar[str] = TOOL_QUERY

    query_vector: List[float]
    top_k: int = Field(DEFAULT_TOP_K, gt=0)
    filter: Optional[Filter] = None
    include_vector: bool = False

    def to_arguments(self) -> dict[str, Any]:
        return {
            "index_name": self.index_name,
            "query_vector": self.query_vector,
            "top_k": self.top_k,
            "filter": self.filter,
            "include_vector": self.include_vector,
        }


class VectorUpdate(ToolParams):
    """New vector and/or metadata for the matched records."""

    vector: Optional[List[float]] = None
    metadata: Optional[Dict[str, Any]] = None


def _exactly_one(name_a: str, a: Any, name_b: str, b: Any) -> None:
    if (a is None) == (b is None):
        raise ValueError(f"exactly one of {name_a} or {name_b} must be given")


class UpdateVectorParams(_IndexParams):
    tool: ClassVar[str] = TOOL_UPDATE

    id: Optional[str] = None
    filter: Optional[Filter] = None
    update: VectorUpdate

    @model_validator(mode="after")
    def _one_selector(self) -> "UpdateVectorParams":
        _exactly_one("id", self.id, "filter", self.filter)
        return self

    def to_arguments(self) -> dict[str, Any]:
        return {
            "index_name": self.index_name,
            "id": self.id,
            "filter": self.filter,
            "vector": self.update.vector,
            "metadata": self.update.metadata,
        }


class DeleteVectorParams(_IndexParams):
    tool: ClassVar[str] = TOOL_DELETE

    id: str

    def to_arguments(self) -> dict[str, Any]:
        return {"index_name": self.index_name, "id": self.id}


class DeleteVectorsParams(_IndexParams):
    tool: ClassVar[str] = TOOL_DELETE_MANY

    ids: Optional[List[str]] = None
    filter: Optional[Filter] = None

    @model_validator(mode="after")
    def _one_selector(self) -> "DeleteVectorsParams":
        _exactly_one("ids", self.ids, "filter", self.filter)
        return self

    def to_arguments(self) -> dict[str, Any]:
        return {"index_name": self.index_name, "ids": self.ids, "filter": self.filter}


# ── Retrieval extension ──────────────────────────────────────────────────────


class TextQueryParams(ToolParams):
    tool: ClassVar[str] = TOOL_TEXT_QUERY

    context: str
    domains: Optional[List[str]] = None
    top_k: int = Field(DEFAULT_TEXT_TOP_K, gt=0)
    min_confidence: float = Field(0.0, ge=0.0, le=1.0)
    mode: QueryMode = QueryMode.AUTO

    def to_arguments(self) -> dict[str, Any]:
        return {
            "context": self.context,
            "domains": self.domains,
            "top_k": self.top_k,
            "min_confidence": self.min_confidence,
            "mode": self.mode.value,
        }


class ExploreParams(ToolParams):
    tool: ClassVar[str] = TOOL_EXPLORE

    node_id: str = Field(min_length=1)
    depth: int = Field(1, ge=1, le=MAX_EXPLORE_DEPTH)

    def to_arguments(self) -> dict[str, Any]:
        return {"node_id": self.node_id, "depth": self.depth}


class RulesParams(ToolParams):
    tool: ClassVar[str] = TOOL_RULES

    domains: Optional[List[str]] = None
    concept_ids: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    include_derived: bool = True
    min_confidence: float = Field(0.0, ge=0.0, le=1.0)

    def to_arguments(self) -> dict[str, Any]:
        return {
            "domains": self.domains,
            "concept_ids": self.concept_ids,
            "categories": self.categories,
            "include_derived": self.include_derived,
            "min_confidence": self.min_confidence,
        }


class FeedbackParams(ToolParams):
    tool: ClassVar[str] = TOOL_FEEDBACK

    query_id: str = Field(min_length=1)
    outcomes: Dict[str, FeedbackOutcome]
    source: str = DEFAULT_FEEDBACK_SOURCE

    def to_arguments(self) -> dict[str, Any]:
        return {
            "query_id": self.query_id,
            "outcomes": {item_id: outcome.value for item_id, outcome in self.outcomes.items()},
            "source": self.source,
        }


async def invoke(mcp: QortexMcpClient, params: ToolParams) -> RemoteResult:
    """Call the tool for *params* and raise if the server reported an error."""
    payload = await mcp.call_tool(params.tool, params.to_arguments())
    result = RemoteResult.from_payload(params.tool, payload)
    result.raise_for_error()
    return result
