"""
In-memory graph store implementation for testing.

This module provides a simple in-memory GraphStore backend for:
- Unit tests
- Integration tests
- Local development without a provisioned table

Invariants:
    - All data is lost on process exit
    - Same row layout and partition labels as production backends
    - Safe to use from multiple coroutines

How to change safely:
    - This is test-only code, changes don't affect production backends
    - Keep interface compatible with the GraphStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from ..partition import compute_key, partition_label
from .base import (
    BatchResponse,
    CollectionResponse,
    ConditionalCheckFailedError,
    DeleteResponse,
    ItemResponse,
    NodeView,
    QueryResponse,
    Row,
)

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class InMemoryGraphStore:
    """In-memory implementation of GraphStore for testing.

    Stores node rows and their property/edge rows in dictionaries and
    records every call so tests can assert on the exact requests made.

    Attributes:
        calls: (operation, params) of every call, in arrival order
        max_in_flight: Highest number of calls observed in progress at once

    Thread safety:
        Uses an asyncio lock around row access. Safe to use from
        multiple coroutines.

    Example:
        >>> store = InMemoryGraphStore()
        >>> await store.create_node(tenant="t1", type="Book", data="Elantris", max_gsik=4)
        >>> store.call_count("create_node")
        1
    """

    def __init__(self, table: str = "GraphTable") -> None:
        """Initialize in-memory store.

        Args:
            table: Name reported as the backing table
        """
        self._table = table
        self._nodes: Dict[str, Row] = {}
        self._rows: Dict[str, Dict[str, Row]] = defaultdict(dict)
        self._failures: Dict[str, List[Exception]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._in_flight = 0
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.max_in_flight = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> InMemoryGraphStore:
        """Create a store named after the configured table."""
        return cls(table=settings.table_name)

    @property
    def table(self) -> str:
        return self._table

    @asynccontextmanager
    async def _operation(self, operation: str, **params: Any) -> AsyncIterator[None]:
        """Bookkeeping shared by every call.

        Yields once to the event loop so concurrent callers interleave,
        raises any injected failure, then holds the lock for the body.
        """
        self.calls.append((operation, params))
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            await asyncio.sleep(0)
            pending = self._failures.get(operation)
            if pending:
                raise pending.pop(0)
            async with self._lock:
                yield
        finally:
            self._in_flight -= 1

    def _put(self, row: Row) -> Row:
        self._rows[row.node][row.type] = row
        return row

    def _property_row(self, tenant: str, node: str, type: str, data: Any, max_gsik: int) -> Row:
        return Row(
            node=node,
            type=type,
            data=data,
            gsik=compute_key(node, tenant, max_gsik),
        )

    def _edge_row(self, tenant: str, node: str, type: str, target: str, max_gsik: int) -> Row:
        target_row = self._nodes.get(target)
        return Row(
            node=node,
            type=type,
            data=target_row.data if target_row is not None else None,
            target=target,
            gsik=compute_key(node, tenant, max_gsik),
        )

    async def create_node(
        self,
        *,
        tenant: str,
        type: str,
        data: Any,
        max_gsik: int,
        node: Optional[str] = None,
    ) -> ItemResponse:
        """Write a node row, rejecting ids that already exist."""
        async with self._operation(
            "create_node", node=node, tenant=tenant, type=type, data=data, max_gsik=max_gsik
        ):
            if node is None:
                node = uuid.uuid4().hex
            if node in self._nodes:
                raise ConditionalCheckFailedError(f"Node already exists: {node}")

            row = Row(
                node=node,
                type=type,
                data=data,
                target=node,
                gsik=compute_key(node, tenant, max_gsik),
                max_gsik=max_gsik,
            )
            self._nodes[node] = row

        logger.debug(
            "Node created in memory store",
            extra={"node": node, "type": type, "gsik": row.gsik},
        )
        return ItemResponse(item=row)

    async def create_property(
        self,
        *,
        tenant: str,
        node: str,
        type: str,
        data: Any,
        max_gsik: int,
    ) -> ItemResponse:
        async with self._operation(
            "create_property", tenant=tenant, node=node, type=type, data=data, max_gsik=max_gsik
        ):
            row = self._put(self._property_row(tenant, node, type, data, max_gsik))
        return ItemResponse(item=row)

    async def create_edge(
        self,
        *,
        tenant: str,
        node: str,
        type: str,
        target: str,
        max_gsik: int,
    ) -> ItemResponse:
        async with self._operation(
            "create_edge", tenant=tenant, node=node, type=type, target=target, max_gsik=max_gsik
        ):
            row = self._put(self._edge_row(tenant, node, type, target, max_gsik))
        return ItemResponse(item=row)

    async def create_properties(
        self,
        *,
        tenant: str,
        node: str,
        max_gsik: int,
        properties: Sequence[Tuple[str, Any]],
    ) -> BatchResponse:
        async with self._operation(
            "create_properties", tenant=tenant, node=node, max_gsik=max_gsik, properties=list(properties)
        ):
            rows = tuple(
                self._put(self._property_row(tenant, node, type, data, max_gsik))
                for type, data in properties
            )
        return BatchResponse(items=rows)

    async def create_edges(
        self,
        *,
        tenant: str,
        node: str,
        max_gsik: int,
        edges: Sequence[Tuple[str, str]],
    ) -> BatchResponse:
        async with self._operation(
            "create_edges", tenant=tenant, node=node, max_gsik=max_gsik, edges=list(edges)
        ):
            rows = tuple(
                self._put(self._edge_row(tenant, node, type, target, max_gsik))
                for type, target in edges
            )
        return BatchResponse(items=rows)

    async def get_node(self, node: str) -> QueryResponse:
        async with self._operation("get_node", node=node):
            row = self._nodes.get(node)
        return QueryResponse(items=(row,) if row is not None else ())

    async def get_node_data(self, node: str) -> QueryResponse:
        async with self._operation("get_node_data", node=node):
            row = self._nodes.get(node)
        return QueryResponse(items=(row,) if row is not None else ())

    async def get_node_properties(self, node: str) -> QueryResponse:
        async with self._operation("get_node_properties", node=node):
            rows = self._sorted_rows(node, edges=False)
        return QueryResponse(items=rows)

    async def get_node_edges(self, node: str) -> QueryResponse:
        async with self._operation("get_node_edges", node=node):
            rows = self._sorted_rows(node, edges=True)
        return QueryResponse(items=rows)

    async def get_node_type(self, *, node: str, type: str) -> ItemResponse:
        async with self._operation("get_node_type", node=node, type=type):
            row = self._rows.get(node, {}).get(type)
        return ItemResponse(item=row)

    async def get_node_types(
        self,
        *,
        node: str,
        limit: int,
        begins_with: str,
    ) -> QueryResponse:
        async with self._operation("get_node_types", node=node, limit=limit, begins_with=begins_with):
            rows = sorted(
                (r for r in self._rows.get(node, {}).values() if r.type.startswith(begins_with)),
                key=lambda r: r.type,
            )
        return QueryResponse(items=tuple(rows[:limit]))

    async def get_nodes_with_properties_and_edges(
        self,
        *,
        type: str,
        tenant: str,
        max_gsik: int,
    ) -> CollectionResponse:
        """Scan every partition of the tenant for nodes of a type."""
        async with self._operation(
            "get_nodes_with_properties_and_edges", type=type, tenant=tenant, max_gsik=max_gsik
        ):
            views: List[NodeView] = []
            for bucket in range(max(max_gsik, 1)):
                label = partition_label(tenant, bucket)
                for node in sorted(self._nodes):
                    row = self._nodes[node]
                    if row.type != type or row.gsik != label:
                        continue
                    views.append(
                        NodeView(
                            node=node,
                            type=row.type,
                            data=row.data,
                            max_gsik=row.max_gsik,
                            properties=self._sorted_rows(node, edges=False),
                            edges=self._sorted_rows(node, edges=True),
                        )
                    )
        return CollectionResponse(items=tuple(views))

    async def delete_node(self, node: str) -> DeleteResponse:
        async with self._operation("delete_node", node=node):
            deleted = len(self._rows.pop(node, {}))
            if self._nodes.pop(node, None) is not None:
                deleted += 1
        return DeleteResponse(node=node, type=None, deleted=deleted)

    async def delete_property_or_edge(self, *, node: str, type: str) -> DeleteResponse:
        async with self._operation("delete_property_or_edge", node=node, type=type):
            removed = self._rows.get(node, {}).pop(type, None)
        return DeleteResponse(node=node, type=type, deleted=0 if removed is None else 1)

    def _sorted_rows(self, node: str, edges: bool) -> Tuple[Row, ...]:
        rows = self._rows.get(node, {}).values()
        return tuple(
            sorted(
                (r for r in rows if (r.target is not None) == edges),
                key=lambda r: r.type,
            )
        )

    # Testing helpers

    def fail_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of an operation raise ``error``."""
        self._failures[operation].extend([error] * times)

    def call_count(self, operation: Optional[str] = None) -> int:
        """Number of calls made, optionally of a single operation."""
        if operation is None:
            return len(self.calls)
        return sum(1 for name, _ in self.calls if name == operation)

    def reset_calls(self) -> None:
        """Forget recorded calls without touching stored rows."""
        self.calls.clear()
        self.max_in_flight = 0

    def rows(self, node: str) -> List[Row]:
        """Every row stored for a node, node row first."""
        result: List[Row] = []
        if node in self._nodes:
            result.append(self._nodes[node])
        result.extend(sorted(self._rows.get(node, {}).values(), key=lambda r: r.type))
        return result
