"""
Base protocol and types for the graph store abstraction.

This module defines the GraphStore protocol that all backends must implement,
along with the row and response types they return.

Row layout:
    Every vertex, property and edge is a single row keyed by (Node, Type).
    - Node rows: Type is the node type, Target == Node, MaxGSIK is set
    - Property rows: Type is the property name, no Target
    - Edge rows: Type is the relation, Target is the linked node and Data
      holds a copy of the target's key data taken at link time
    - List edge rows: Type is "<relation>#<discriminator>"

Invariants:
    - (node, type) uniquely identifies a row; writes to it are upserts
    - GSIK is computed by the store from (tenant, node, max_gsik)
    - Reads never raise for missing rows, they return empty results

How to change safely:
    - Protocol changes require updating all implementations
    - Keep response types immutable, they end up in Snapshot history
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import (
    Any,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

LIST_EDGE_SEPARATOR = "#"


class GraphStoreError(Exception):
    """Base exception for store backends."""
    pass


class ConditionalCheckFailedError(GraphStoreError):
    """A conditional write found a conflicting row."""
    pass


class ThroughputExceededError(GraphStoreError):
    """The backend rejected the request for lack of capacity."""
    pass


@dataclass(frozen=True)
class Row:
    """A single row of the graph table.

    Attributes:
        node: Node the row belongs to
        type: Node type, property name or edge relation
        data: Row payload (key data for nodes and edges)
        target: Linked node for edges, the node itself for node rows
        gsik: Secondary index partition label
        max_gsik: Partition count, only stored on node rows
    """

    node: str
    type: str
    data: Any = None
    target: Optional[str] = None
    gsik: Optional[str] = None
    max_gsik: Optional[int] = None

    @property
    def relation(self) -> str:
        """Type without the list edge discriminator."""
        return self.type.split(LIST_EDGE_SEPARATOR, 1)[0]

    @property
    def discriminator(self) -> Optional[str]:
        """List edge discriminator, None for scalar rows."""
        parts = self.type.split(LIST_EDGE_SEPARATOR, 1)
        return parts[1] if len(parts) == 2 else None


@dataclass(frozen=True)
class NodeView:
    """A node row joined with its property and edge rows."""

    node: str
    type: str
    data: Any
    max_gsik: Optional[int]
    properties: Tuple[Row, ...] = ()
    edges: Tuple[Row, ...] = ()


@dataclass(frozen=True)
class ItemResponse:
    """Single row result. ``item`` is None when the row does not exist."""

    item: Optional[Row]


@dataclass(frozen=True)
class QueryResponse:
    """Multi-row result, in sort key order."""

    items: Tuple[Row, ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class BatchResponse:
    """Result of a batched write."""

    items: Tuple[Row, ...] = ()


@dataclass(frozen=True)
class CollectionResponse:
    """Nodes of one type joined with their properties and edges."""

    items: Tuple[NodeView, ...] = ()


@dataclass(frozen=True)
class DeleteResponse:
    """Acknowledgement of a delete.

    Attributes:
        node: Node the delete targeted
        type: Row type for single row deletes, None for whole nodes
        deleted: Number of rows removed
    """

    node: str
    type: Optional[str]
    deleted: int


@runtime_checkable
class GraphStore(Protocol):
    """Protocol for graph table backends.

    The modeling layer only shapes reads and writes; row encoding, index
    queries and batch mechanics belong to the backend.

    Example:
        >>> store = InMemoryGraphStore(table="GraphTable")
        >>> response = await store.create_node(
        ...     node="n1", tenant="t1", type="Book", data="Elantris", max_gsik=4
        ... )
        >>> response.item.gsik.startswith("t1#")
        True
    """

    @property
    @abstractmethod
    def table(self) -> str:
        """Name of the backing table."""
        ...

    @abstractmethod
    async def create_node(
        self,
        *,
        tenant: str,
        type: str,
        data: Any,
        max_gsik: int,
        node: Optional[str] = None,
    ) -> ItemResponse:
        """Write a node row. Generates the node id when none is given."""
        ...

    @abstractmethod
    async def create_property(
        self,
        *,
        tenant: str,
        node: str,
        type: str,
        data: Any,
        max_gsik: int,
    ) -> ItemResponse:
        """Upsert a property row."""
        ...

    @abstractmethod
    async def create_edge(
        self,
        *,
        tenant: str,
        node: str,
        type: str,
        target: str,
        max_gsik: int,
    ) -> ItemResponse:
        """Upsert an edge row, copying the target's key data onto it."""
        ...

    @abstractmethod
    async def create_properties(
        self,
        *,
        tenant: str,
        node: str,
        max_gsik: int,
        properties: Sequence[Tuple[str, Any]],
    ) -> BatchResponse:
        """Upsert several property rows of one node."""
        ...

    @abstractmethod
    async def create_edges(
        self,
        *,
        tenant: str,
        node: str,
        max_gsik: int,
        edges: Sequence[Tuple[str, str]],
    ) -> BatchResponse:
        """Upsert several edge rows of one node, as (type, target) pairs."""
        ...

    @abstractmethod
    async def get_node(self, node: str) -> QueryResponse:
        """Node row including its partition count."""
        ...

    @abstractmethod
    async def get_node_data(self, node: str) -> QueryResponse:
        """Node row only."""
        ...

    @abstractmethod
    async def get_node_properties(self, node: str) -> QueryResponse:
        """Every property row of a node."""
        ...

    @abstractmethod
    async def get_node_edges(self, node: str) -> QueryResponse:
        """Every edge row of a node, list edges included."""
        ...

    @abstractmethod
    async def get_node_type(self, *, node: str, type: str) -> ItemResponse:
        """A single (node, type) row."""
        ...

    @abstractmethod
    async def get_node_types(
        self,
        *,
        node: str,
        limit: int,
        begins_with: str,
    ) -> QueryResponse:
        """Up to ``limit`` rows of a node whose type starts with ``begins_with``."""
        ...

    @abstractmethod
    async def get_nodes_with_properties_and_edges(
        self,
        *,
        type: str,
        tenant: str,
        max_gsik: int,
    ) -> CollectionResponse:
        """Every node of a type across all tenant partitions, already joined."""
        ...

    @abstractmethod
    async def delete_node(self, node: str) -> DeleteResponse:
        """Delete a node with all its property and edge rows."""
        ...

    @abstractmethod
    async def delete_property_or_edge(self, *, node: str, type: str) -> DeleteResponse:
        """Delete a single (node, type) row."""
        ...
