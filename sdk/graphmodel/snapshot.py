"""
Immutable node snapshots.

A Snapshot is one version of a node's visible state plus the history of
store calls that produced it. Every operation returns a new Snapshot;
none of them writes into the receiver.

Lifecycle:
    EMPTY --create()/get(node)/update(doc)--> BOUND
    BOUND --get()/update()/connect()/set()/remove()--> BOUND (new instance)
    BOUND --destroy()--> EMPTY

Invariants:
    - A Snapshot with node None is EMPTY
    - history only grows along a chain of Snapshots and is never shared
      as a mutable object between two of them
    - max_gsik, once resolved, is carried by every derived Snapshot
    - Snapshots compare and hash by identity; compare fields to compare
      states

Example:
    >>> Book = ModelSchema(key="Name", properties=("Genre",))
    >>> empty = Snapshot(store, type="Book", schema=Book, tenant="t1", max_gsik=4)
    >>> book = await empty.create({"Name": "Elantris", "Genre": "Fantasy"})
    >>> book.document["Genre"]
    'Fantasy'
    >>> empty.node is None
    True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .config import Settings
from .create import SchemaCreateEngine
from .documents import EdgeRef, edge_map, property_map
from .errors import ValidationError
from .history import HistoryEntry
from .ids import new_node_id
from .query import EdgeListQuery, QueryEngine
from .schema import ModelSchema
from .store.base import GraphStore, Row
from .update import SchemaUpdateEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Immutable view of a graph node.

    Attributes:
        store: Graph store handle
        type: Node type
        schema: Document schema of the node type
        node: Node id, None while EMPTY
        tenant: Tenant namespace
        data: Node key data
        properties: Property rows
        edges: Edge rows, list edges included
        document: Denormalized document (read-only)
        max_gsik: Partition count, None until known
        history: Store calls that produced this Snapshot
        log: Whether writes add CreatedAt/UpdatedAt properties
        page_limit: Default page size for edge list reads
        node_generator: Builds new node ids from the tenant
    """

    store: GraphStore
    type: str
    schema: ModelSchema
    node: Optional[str] = None
    tenant: str = ""
    data: Any = None
    properties: Tuple[Row, ...] = ()
    edges: Tuple[Row, ...] = ()
    document: Mapping[str, Any] = field(default_factory=dict)
    max_gsik: Optional[int] = None
    history: Tuple[HistoryEntry, ...] = ()
    log: bool = False
    page_limit: int = 10
    node_generator: Callable[[str], str] = new_node_id

    def __post_init__(self) -> None:
        """Validate configuration and freeze collections."""
        if not self.type:
            raise ValidationError("Type is undefined", field_name="type")
        if self.max_gsik is not None:
            if isinstance(self.max_gsik, bool) or not isinstance(self.max_gsik, int):
                raise ValidationError("Max GSIK is not a number", field_name="max_gsik")
            if self.max_gsik < 0:
                raise ValidationError("Max GSIK cannot be negative", field_name="max_gsik")
        if self.store is None:
            raise ValidationError("Store is undefined", field_name="store")
        if self.schema is None:
            raise ValidationError("Schema is undefined", field_name="schema")

        object.__setattr__(self, "properties", tuple(self.properties))
        object.__setattr__(self, "edges", tuple(self.edges))
        object.__setattr__(self, "history", tuple(self.history))
        object.__setattr__(self, "document", MappingProxyType(dict(self.document)))

    @classmethod
    def from_settings(
        cls,
        store: GraphStore,
        type: str,
        schema: ModelSchema,
        settings: Optional[Settings] = None,
        **overrides: Any,
    ) -> Snapshot:
        """Create an EMPTY Snapshot using configured defaults.

        Args:
            store: Graph store handle
            type: Node type
            schema: Document schema
            settings: Configuration, read from the environment if omitted
            **overrides: Explicit field values taking precedence

        Returns:
            EMPTY Snapshot
        """
        settings = settings or Settings()
        values: Dict[str, Any] = {
            "tenant": settings.tenant,
            "max_gsik": settings.max_gsik,
            "log": settings.log_changes,
            "page_limit": settings.page_limit,
        }
        values.update(overrides)
        return cls(store=store, type=type, schema=schema, **values)

    # Read-only views

    @property
    def is_empty(self) -> bool:
        return self.node is None

    @property
    def property_map(self) -> Dict[str, Any]:
        """Properties as a type -> data mapping."""
        return property_map(self.properties)

    @property
    def edge_map(self) -> Dict[str, EdgeRef]:
        """Edges as a type -> EdgeRef mapping."""
        return edge_map(self.edges)

    # Versioning

    def evolve(self, **overrides: Any) -> Snapshot:
        """Return a new Snapshot with some fields replaced.

        ``history`` in ``overrides`` is appended to the receiver's history
        instead of replacing it. The receiver is left untouched.

        Args:
            **overrides: Field values for the new Snapshot

        Returns:
            New Snapshot
        """
        history = self.history + tuple(overrides.pop("history", ()))
        max_gsik = overrides.get("max_gsik")
        if isinstance(max_gsik, int) and self.max_gsik is not None and max_gsik < self.max_gsik:
            logger.warning(
                "Max GSIK decreased",
                extra={"node": self.node, "from": self.max_gsik, "to": max_gsik},
            )
        return replace(self, history=history, **overrides)

    def require_node(self) -> str:
        """Node id of a BOUND Snapshot.

        Raises:
            ValidationError: If the Snapshot is EMPTY
        """
        if self.node is None:
            raise ValidationError("Node is undefined", field_name="node")
        return self.node

    # Operations

    async def create(self, doc: Mapping[str, Any]) -> Snapshot:
        """Create a node with its properties and edges from a flat document."""
        return await SchemaCreateEngine(self).create(doc)

    async def update(self, doc: Mapping[str, Any]) -> Snapshot:
        """Upsert the schema fields present in ``doc`` on node ``doc["id"]``."""
        return await SchemaUpdateEngine(self).update(doc)

    async def set(self, type: str, data: Any) -> Snapshot:
        """Upsert a single property."""
        return await SchemaUpdateEngine(self).set(type, data)

    async def connect(self, type: str, target: Union[str, Snapshot, None]) -> Snapshot:
        """Create an edge to ``target`` (a node id or a bound Snapshot)."""
        return await SchemaUpdateEngine(self).connect(type, target)

    async def get(
        self,
        node: Optional[str] = None,
        *,
        properties: Union[str, Sequence[str], None] = None,
        edges: Union[str, Sequence[str], None] = None,
        edge_lists: Optional[Sequence[EdgeListQuery]] = None,
    ) -> Snapshot:
        """Read a node. See QueryEngine.get for the selection arguments."""
        return await QueryEngine(self).get(
            node, properties=properties, edges=edges, edge_lists=edge_lists
        )

    async def collection(self) -> List[Snapshot]:
        """Every node of this Snapshot's type in its tenant."""
        return await QueryEngine(self).collection()

    async def remove(self, type: str) -> Snapshot:
        """Delete one property or edge row."""
        return await QueryEngine(self).remove(type)

    disconnect = remove

    async def destroy(self, node: Optional[str] = None) -> Snapshot:
        """Delete the node with all its rows and return an EMPTY Snapshot."""
        return await QueryEngine(self).destroy(node)
