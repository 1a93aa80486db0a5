"""
Abstract vector store interface.

The storage-engine-agnostic contract every vector backend implements:
index lifecycle (create, list, describe, delete) and record operations
(upsert, query, update, delete one, delete many). Methods are async and
keyword-only.

Metadata filters are opaque predicates (equality, ``$gt``/``$in``-style
comparisons, ``$and``/``$or``) interpreted by the backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from qortex_vector.models import IndexStats, Metric, QueryResult


class VectorStore(ABC):
    """
    Abstract interface for named, dimensioned vector indexes.

    Implementations may be remote; nothing here assumes local state.
    """

    def __init__(self, id: str) -> None:
        self.id = id

    @abstractmethod
    async def create_index(self, *, index_name: str, dimension: int, metric: Metric | str | None = None) -> None:
        """Create an index. ``metric`` defaults to cosine."""

    @abstractmethod
    async def list_indexes(self) -> List[str]:
        """Return index names in backend order."""

    @abstractmethod
    async def describe_index(self, *, index_name: str) -> IndexStats:
        """Return dimension, record count and metric of an existing index."""

    @abstractmethod
    async def delete_index(self, *, index_name: str) -> None:
        """Drop an index and all its records."""

    @abstractmethod
    async def upsert(
        self,
        *,
        index_name: str,
        vectors: List[List[float]],
        metadata: Optional[List[Dict[str, Any]]] = None,
        ids: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Insert or replace records.

        ``metadata`` and ``ids`` run parallel to ``vectors``. Returns one id
        per vector; ids are assigned by the backend where not supplied.
        """

    @abstractmethod
    async def query(
        self,
        *,
        index_name: str,
        query_vector: List[float],
        top_k: int | None = None,
        filter: Optional[Dict[str, Any]] = None,
        include_vector: bool | None = None,
    ) -> List[QueryResult]:
        """Nearest records, best first. ``top_k`` defaults to 10."""

    @abstractmethod
    async def update_vector(
        self,
        *,
        index_name: str,
        update: Dict[str, Any] | Any,
        id: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replace the vector and/or merge metadata of the record(s) selected by exactly one of id/filter."""

    @abstractmethod
    async def delete_vector(self, *, index_name: str, id: str) -> None:
        """Delete one record by id."""

    @abstractmethod
    async def delete_vectors(
        self,
        *,
        index_name: str,
        ids: Optional[List[str]] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Delete the records selected by exactly one of ids/filter."""

    async def close(self) -> None:
        """Release resources. Override if needed."""
        pass
