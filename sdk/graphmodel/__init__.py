"""
graphmodel - Immutable, schema-driven graph nodes over a key-value table.

This package models a directed, typed property graph stored as rows of a
partitioned key-value table:
- Schema definitions (ModelSchema, EdgeDef, edge)
- Snapshot, the immutable node value with create/get/update/... operations
- GraphStore protocol and an in-memory backend
- Settings loaded from the environment

Example:
    >>> from sdk.graphmodel import InMemoryGraphStore, ModelSchema, Snapshot, edge
    >>>
    >>> Book = ModelSchema(
    ...     key="Name",
    ...     properties=("Genre",),
    ...     edges=(edge("Author"), edge("Likes", many=True)),
    ... )
    >>> store = InMemoryGraphStore()
    >>> empty = Snapshot(store, type="Book", schema=Book, tenant="t1", max_gsik=4)
    >>> book = await empty.create({"Name": "Elantris", "Genre": "Fantasy"})
    >>> book = await book.connect("Likes", reader)

Invariants:
    - Snapshots are never mutated; operations return new Snapshots
    - max_gsik is known before any write
    - Writes are not transactional across rows

Version: 0.1.0
"""

__version__ = "0.1.0"

from .config import Settings
from .documents import EdgeRef
from .errors import (
    DataMissingError,
    GraphModelError,
    IdMissingError,
    NodeAlreadyExistsError,
    PartitionResolutionError,
    PartitionUndefinedError,
    StoreError,
    ValidationError,
)
from .history import HistoryEntry, HistoryTracker
from .logs import setup_logging
from .partition import compute_key
from .query import ALL, EdgeListQuery
from .schema import Cardinality, EdgeDef, ModelSchema, edge
from .snapshot import Snapshot
from .store import GraphStore, InMemoryGraphStore, Row

__all__ = [
    # Version
    "__version__",
    # Schema
    "ModelSchema",
    "EdgeDef",
    "Cardinality",
    "edge",
    # Snapshot
    "Snapshot",
    "EdgeRef",
    "EdgeListQuery",
    "ALL",
    "HistoryEntry",
    "HistoryTracker",
    # Store
    "GraphStore",
    "InMemoryGraphStore",
    "Row",
    "compute_key",
    # Configuration
    "Settings",
    "setup_logging",
    # Errors
    "GraphModelError",
    "ValidationError",
    "NodeAlreadyExistsError",
    "DataMissingError",
    "IdMissingError",
    "PartitionUndefinedError",
    "PartitionResolutionError",
    "StoreError",
]
