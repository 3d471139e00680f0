"""
Graph store backends for graphmodel.

The modeling layer talks to the graph table through the GraphStore
protocol. Production backends live outside this package; the in-memory
backend here is for tests and local development.
"""

from .base import (
    BatchResponse,
    CollectionResponse,
    ConditionalCheckFailedError,
    DeleteResponse,
    GraphStore,
    GraphStoreError,
    ItemResponse,
    NodeView,
    QueryResponse,
    Row,
    ThroughputExceededError,
)
from .memory import InMemoryGraphStore

__all__ = [
    "GraphStore",
    "InMemoryGraphStore",
    "Row",
    "NodeView",
    "ItemResponse",
    "QueryResponse",
    "BatchResponse",
    "CollectionResponse",
    "DeleteResponse",
    "GraphStoreError",
    "ConditionalCheckFailedError",
    "ThroughputExceededError",
]
