"""Unit tests for QortexVector over a MockTransport.

Covers the nine VectorStore methods: tool names, wire arguments, default
resolution, error surfacing, and the full index lifecycle.
"""

from __future__ import annotations

import pytest

from qortex_vector import IndexStats, Metric, ProtocolError, RemoteOperationError
from qortex_vector.params import VectorUpdate
from qortex_vector.protocol import ContentPart, ToolResponse

# ─── Index lifecycle ────────────────────────────────────────────────────────


class TestCreateIndex:
    @pytest.mark.asyncio
    async def test_creates_with_dimension_and_metric(self, qortex, transport):
        transport.queue({"status": "created", "index_name": "docs"})
        await qortex.create_index(index_name="docs", dimension=384, metric="cosine")

        request = transport.last_request
        assert request.name == "qortex_vector_create_index"
        assert request.arguments == {"index_name": "docs", "dimension": 384, "metric": "cosine"}

    @pytest.mark.asyncio
    async def test_metric_defaults_to_cosine(self, qortex, transport):
        transport.queue({"status": "created"})
        await qortex.create_index(index_name="docs", dimension=8)
        assert transport.last_request.arguments["metric"] == "cosine"

    @pytest.mark.asyncio
    async def test_accepts_metric_enum(self, qortex, transport):
        transport.queue({"status": "created"})
        await qortex.create_index(index_name="docs", dimension=8, metric=Metric.DOTPRODUCT)
        assert transport.last_request.arguments["metric"] == "dotproduct"

    @pytest.mark.asyncio
    async def test_raises_remote_message_verbatim(self, qortex, transport):
        transport.queue({"error": "Dimension mismatch"})
        with pytest.raises(RemoteOperationError) as excinfo:
            await qortex.create_index(index_name="docs", dimension=384)
        assert str(excinfo.value) == "Dimension mismatch"
        assert excinfo.value.tool == "qortex_vector_create_index"

    @pytest.mark.asyncio
    async def test_rejects_bad_input_before_calling(self, qortex, transport):
        with pytest.raises(ValueError):
            await qortex.create_index(index_name="", dimension=4)
        with pytest.raises(ValueError):
            await qortex.create_index(index_name="docs", dimension=0)
        with pytest.raises(ValueError):
            await qortex.create_index(index_name="docs", dimension=4, metric="manhattan")
        assert transport.requests == []


class TestListIndexes:
    @pytest.mark.asyncio
    async def test_returns_names_in_server_order(self, qortex, transport):
        transport.queue({"indexes": ["docs", "code", "alpha"]})
        assert await qortex.list_indexes() == ["docs", "code", "alpha"]
        assert transport.last_request.arguments == {}

    @pytest.mark.asyncio
    async def test_missing_field_is_protocol_error(self, qortex, transport):
        transport.queue({})
        with pytest.raises(ProtocolError, match="indexes"):
            await qortex.list_indexes()

    @pytest.mark.asyncio
    async def test_error_payload(self, qortex, transport):
        transport.queue({"error": "store unavailable"})
        with pytest.raises(RemoteOperationError, match="^store unavailable$"):
            await qortex.list_indexes()


class TestDescribeIndex:
    @pytest.mark.asyncio
    async def test_returns_stats(self, qortex, transport):
        transport.queue({"dimension": 384, "count": 42, "metric": "cosine"})
        stats = await qortex.describe_index(index_name="docs")
        assert stats == IndexStats(dimension=384, count=42, metric=Metric.COSINE)
        assert transport.last_request.arguments == {"index_name": "docs"}

    @pytest.mark.asyncio
    async def test_every_call_goes_to_the_server(self, qortex, transport):
        transport.queue(
            {"dimension": 4, "count": 1, "metric": "cosine"},
            {"dimension": 4, "count": 7, "metric": "cosine"},
        )
        first = await qortex.describe_index(index_name="docs")
        second = await qortex.describe_index(index_name="docs")
        assert (first.count, second.count) == (1, 7)
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_unknown_index(self, qortex, transport):
        transport.queue({"error": "Index 'nope' not found"})
        with pytest.raises(RemoteOperationError, match="not found"):
            await qortex.describe_index(index_name="nope")

    @pytest.mark.asyncio
    async def test_malformed_stats(self, qortex, transport):
        transport.queue({"dimension": "many"})
        with pytest.raises(ProtocolError):
            await qortex.describe_index(index_name="docs")


class TestDeleteIndex:
    @pytest.mark.asyncio
    async def test_deletes(self, qortex, transport):
        transport.queue({"status": "deleted", "index_name": "docs"})
        await qortex.delete_index(index_name="docs")
        assert transport.last_request.name == "qortex_vector_delete_index"
        assert transport.last_request.arguments == {"index_name": "docs"}

    @pytest.mark.asyncio
    async def test_empty_response_is_success(self, qortex, transport):
        transport.queue(None)
        await qortex.delete_index(index_name="docs")

    @pytest.mark.asyncio
    async def test_error_flagged_response_without_error_field(self, qortex, transport):
        transport.queue(
            ToolResponse(content=[ContentPart(type="text", text='{"detail": "index is locked"}')], is_error=True)
        )
        with pytest.raises(RemoteOperationError, match="index is locked"):
            await qortex.delete_index(index_name="docs")


# ─── Record operations ──────────────────────────────────────────────────────


class TestUpsert:
    @pytest.mark.asyncio
    async def test_with_metadata_and_ids(self, qortex, transport):
        transport.queue({"ids": ["v1", "v2"]})
        ids = await qortex.upsert(
            index_name="docs",
            vectors=[[1, 0, 0], [0, 1, 0]],
            metadata=[{"source": "a"}, {"source": "b"}],
            ids=["v1", "v2"],
        )
        assert ids == ["v1", "v2"]
        assert transport.last_request.name == "qortex_vector_upsert"
        assert transport.last_request.arguments == {
            "index_name": "docs",
            "vectors": [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
            "metadata": [{"source": "a"}, {"source": "b"}],
            "ids": ["v1", "v2"],
        }

    @pytest.mark.asyncio
    async def test_omitted_optionals_go_out_as_null(self, qortex, transport):
        transport.queue({"ids": ["auto-1"]})
        ids = await qortex.upsert(index_name="docs", vectors=[[1, 0, 0]])
        assert ids == ["auto-1"]
        args = transport.last_request.arguments
        assert "metadata" in args and args["metadata"] is None
        assert "ids" in args and args["ids"] is None

    @pytest.mark.asyncio
    async def test_explicit_empty_metadata_is_kept(self, qortex, transport):
        transport.queue({"ids": ["a"]})
        await qortex.upsert(index_name="docs", vectors=[[1.0]], metadata=[{}])
        assert transport.last_request.arguments["metadata"] == [{}]

    @pytest.mark.asyncio
    async def test_parallel_length_mismatch_is_local_error(self, qortex, transport):
        with pytest.raises(ValueError, match="ids has 1 entries"):
            await qortex.upsert(index_name="docs", vectors=[[1.0], [2.0]], ids=["only-one"])
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_dimension_is_checked_remotely(self, qortex, transport):
        transport.queue({"error": "Dimension mismatch: expected 4, got 3"})
        with pytest.raises(RemoteOperationError, match=r"^Dimension mismatch"):
            await qortex.upsert(index_name="docs", vectors=[[1.0, 0.0, 0.0]])
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_id_count_must_match(self, qortex, transport):
        transport.queue({"ids": ["a"]})
        with pytest.raises(ProtocolError):
            await qortex.upsert(index_name="docs", vectors=[[1.0], [2.0]])


class TestQuery:
    @pytest.mark.asyncio
    async def test_returns_results(self, qortex, transport):
        transport.queue(
            {
                "results": [
                    {"id": "v1", "score": 0.95, "metadata": {"source": "a"}},
                    {"id": "v2", "score": 0.82, "metadata": {"source": "b"}},
                ]
            }
        )
        results = await qortex.query(index_name="docs", query_vector=[1, 0, 0], top_k=5)
        assert [r.id for r in results] == ["v1", "v2"]
        assert results[0].score == 0.95
        assert results[0].metadata == {"source": "a"}

    @pytest.mark.asyncio
    async def test_defaults(self, qortex, transport):
        transport.queue({"results": []})
        await qortex.query(index_name="docs", query_vector=[1, 0, 0])
        assert transport.last_request.arguments == {
            "index_name": "docs",
            "query_vector": [1.0, 0.0, 0.0],
            "top_k": 10,
            "filter": None,
            "include_vector": False,
        }

    @pytest.mark.asyncio
    async def test_passes_filter_through_unmodified(self, qortex, transport):
        transport.queue({"results": []})
        flt = {"$and": [{"source": "handbook"}, {"year": {"$gte": 2020}}]}
        await qortex.query(index_name="docs", query_vector=[1, 0, 0], filter=flt)
        assert transport.last_request.arguments["filter"] == flt

    @pytest.mark.asyncio
    async def test_does_not_reorder(self, qortex, transport):
        transport.queue(
            {
                "results": [
                    {"id": "low", "score": 0.1},
                    {"id": "high", "score": 0.9},
                ]
            }
        )
        results = await qortex.query(index_name="docs", query_vector=[1.0])
        assert [r.id for r in results] == ["low", "high"]

    @pytest.mark.asyncio
    async def test_include_vector(self, qortex, transport):
        transport.queue({"results": [{"id": "v1", "score": 1.0, "metadata": {}, "vector": [1.0, 0.0]}]})
        results = await qortex.query(index_name="docs", query_vector=[1.0, 0.0], include_vector=True)
        assert transport.last_request.arguments["include_vector"] is True
        assert results[0].vector == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_no_results_field_means_empty(self, qortex, transport):
        transport.queue({})
        assert await qortex.query(index_name="docs", query_vector=[1.0]) == []

    @pytest.mark.asyncio
    async def test_unknown_index(self, qortex, transport):
        transport.queue({"error": "Index 'docs' not found"})
        with pytest.raises(RemoteOperationError):
            await qortex.query(index_name="docs", query_vector=[1.0])


class TestUpdateVector:
    @pytest.mark.asyncio
    async def test_by_id(self, qortex, transport):
        transport.queue({"status": "updated", "count": 1})
        await qortex.update_vector(index_name="docs", id="v1", update={"metadata": {"reviewed": True}})
        assert transport.last_request.name == "qortex_vector_update"
        assert transport.last_request.arguments == {
            "index_name": "docs",
            "id": "v1",
            "filter": None,
            "vector": None,
            "metadata": {"reviewed": True},
        }

    @pytest.mark.asyncio
    async def test_by_filter_with_model(self, qortex, transport):
        transport.queue({"status": "updated", "count": 3})
        await qortex.update_vector(
            index_name="docs",
            filter={"source": "old"},
            update=VectorUpdate(vector=[0.5, 0.5]),
        )
        args = transport.last_request.arguments
        assert args["id"] is None
        assert args["filter"] == {"source": "old"}
        assert args["vector"] == [0.5, 0.5]
        assert args["metadata"] is None

    @pytest.mark.asyncio
    async def test_needs_exactly_one_selector(self, qortex, transport):
        with pytest.raises(ValueError, match="exactly one of id or filter"):
            await qortex.update_vector(index_name="docs", update={"metadata": {}})
        with pytest.raises(ValueError, match="exactly one of id or filter"):
            await qortex.update_vector(index_name="docs", id="v1", filter={"a": 1}, update={"metadata": {}})
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_target_not_found(self, qortex, transport):
        transport.queue({"error": "Vector 'v9' not found"})
        with pytest.raises(RemoteOperationError, match="v9"):
            await qortex.update_vector(index_name="docs", id="v9", update={"metadata": {"x": 1}})


class TestDeleteVector:
    @pytest.mark.asyncio
    async def test_by_id(self, qortex, transport):
        transport.queue({"status": "deleted", "id": "v1"})
        await qortex.delete_vector(index_name="docs", id="v1")
        assert transport.last_request.name == "qortex_vector_delete"
        assert transport.last_request.arguments == {"index_name": "docs", "id": "v1"}

    @pytest.mark.asyncio
    async def test_not_found(self, qortex, transport):
        transport.queue({"error": "Vector 'v1' not found"})
        with pytest.raises(RemoteOperationError):
            await qortex.delete_vector(index_name="docs", id="v1")


class TestDeleteVectors:
    @pytest.mark.asyncio
    async def test_by_ids(self, qortex, transport):
        transport.queue({"status": "deleted", "count": 2})
        await qortex.delete_vectors(index_name="docs", ids=["v1", "v2"])
        assert transport.last_request.name == "qortex_vector_delete_many"
        assert transport.last_request.arguments == {"index_name": "docs", "ids": ["v1", "v2"], "filter": None}

    @pytest.mark.asyncio
    async def test_by_filter(self, qortex, transport):
        transport.queue({"status": "deleted", "count": 3})
        await qortex.delete_vectors(index_name="docs", filter={"source": "old"})
        assert transport.last_request.arguments == {"index_name": "docs", "ids": None, "filter": {"source": "old"}}

    @pytest.mark.asyncio
    async def test_requires_a_selector(self, qortex, transport):
        with pytest.raises(ValueError):
            await qortex.delete_vectors(index_name="docs")
        assert transport.requests == []


# ─── Full lifecycle ─────────────────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_create_upsert_query_update_delete_cleanup(self, qortex, transport):
        transport.queue(
            {"status": "created"},
            {"ids": ["v1", "v2", "v3"]},
            {"dimension": 4, "count": 3, "metric": "cosine"},
            {"results": [{"id": "v1", "score": 0.99, "metadata": {"source": "doc1"}}]},
            {"status": "updated", "count": 1},
            {"status": "deleted", "id": "v2"},
            {"status": "deleted", "count": 1},
            {"indexes": ["test"]},
            {"status": "deleted"},
        )

        await qortex.create_index(index_name="test", dimension=4)
        ids = await qortex.upsert(
            index_name="test",
            vectors=[[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0]],
            metadata=[{"source": "doc1"}, {"source": "doc2"}, {"source": "doc3"}],
            ids=["v1", "v2", "v3"],
        )
        assert len(ids) == 3
        assert (await qortex.describe_index(index_name="test")).count == 3
        results = await qortex.query(index_name="test", query_vector=[1, 0, 0, 0], top_k=1)
        assert results[0].id == "v1"
        await qortex.update_vector(index_name="test", id="v1", update={"metadata": {"reviewed": True}})
        await qortex.delete_vector(index_name="test", id="v2")
        await qortex.delete_vectors(index_name="test", filter={"source": "doc3"})
        assert "test" in await qortex.list_indexes()
        await qortex.delete_index(index_name="test")

        assert len(transport.requests) == 9
        assert transport.connect_count == 1
