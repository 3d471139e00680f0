"""
Reads and deletes for graphmodel Snapshots.

get() has two modes:
- full read: node data, every property and every edge, as three
  concurrent reads
- selective read: the node row plus the requested properties, ONE edges
  and pages of MANY edge lists, all concurrent

A read of a node that does not exist is not an error: the result is an
EMPTY Snapshot, and callers branch on is_empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Sequence, Union

from .documents import build_document
from .errors import PartitionUndefinedError, ValidationError
from .history import HistoryTracker
from .partition import resolve_max_gsik
from .store.base import LIST_EDGE_SEPARATOR, Row

if TYPE_CHECKING:
    from .snapshot import Snapshot

logger = logging.getLogger(__name__)

ALL = "$all"


@dataclass(frozen=True)
class EdgeListQuery:
    """Page request for a MANY edge list.

    Attributes:
        type: Relation name
        limit: Maximum rows, the Snapshot's page_limit when None
        begins_with: Discriminator prefix filter
    """

    type: str
    limit: Optional[int] = None
    begins_with: Optional[str] = None

    def prefix(self) -> str:
        return f"{self.type}{LIST_EDGE_SEPARATOR}{self.begins_with or ''}"


def _select(selection: Union[str, Sequence[str], None], declared: Iterable[str]) -> List[str]:
    """Declared names picked by a selection (ALL, a name or a list of names)."""
    declared = list(declared)
    if selection is None:
        return []
    if selection == ALL:
        return declared
    if isinstance(selection, str):
        selection = [selection]
    return [name for name in selection if name in declared]


class QueryEngine:
    """Reads, lists and deletes nodes for a Snapshot."""

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    def _bind(
        self,
        node: str,
        node_row: Optional[Row],
        properties: Sequence[Row],
        edges: Sequence[Row],
        tracker: HistoryTracker,
    ) -> Snapshot:
        snapshot = self.snapshot
        max_gsik = snapshot.max_gsik
        if max_gsik is None and node_row is not None:
            max_gsik = node_row.max_gsik
        if node_row is None:
            return snapshot.evolve(
                node=None,
                data=None,
                properties=(),
                edges=(),
                document={},
                max_gsik=max_gsik,
                history=tracker.dump(),
            )
        return snapshot.evolve(
            node=node,
            data=node_row.data,
            properties=properties,
            edges=edges,
            document=build_document(snapshot.schema, node, node_row.data, properties, edges),
            max_gsik=max_gsik,
            history=tracker.dump(),
        )

    async def get(
        self,
        node: Optional[str] = None,
        *,
        properties: Union[str, Sequence[str], None] = None,
        edges: Union[str, Sequence[str], None] = None,
        edge_lists: Optional[Sequence[EdgeListQuery]] = None,
    ) -> Snapshot:
        """Read a node into a new Snapshot.

        Without selection arguments every row of the node is read. With
        any of them, only the node row and the selected rows are read.

        Args:
            node: Node to read, the bound node when None
            properties: ALL, a property name or a list of names
            edges: ALL, a ONE edge name or a list of names
            edge_lists: Pages of MANY edge lists

        Returns:
            New BOUND Snapshot, or an EMPTY one when the node row does
            not exist

        Raises:
            ValidationError: If no node is given and the Snapshot is EMPTY
            StoreError: If any read fails
        """
        if node is None:
            node = self.snapshot.require_node()

        if properties is None and edges is None and edge_lists is None:
            return await self._get_all(node)
        return await self._get_selected(node, properties, edges, edge_lists or ())

    async def _get_all(self, node: str) -> Snapshot:
        store = self.snapshot.store
        tracker = HistoryTracker()
        data_result, properties_result, edges_result = await tracker.gather(
            [
                ("get_node_data", store.get_node_data(node)),
                ("get_node_properties", store.get_node_properties(node)),
                ("get_node_edges", store.get_node_edges(node)),
            ]
        )
        node_row = data_result.items[0] if data_result.items else None

        logger.debug(
            "Read node",
            extra={
                "node": node,
                "found": node_row is not None,
                "properties": properties_result.count,
                "edges": edges_result.count,
            },
        )
        return self._bind(node, node_row, properties_result.items, edges_result.items, tracker)

    async def _get_selected(
        self,
        node: str,
        properties: Union[str, Sequence[str], None],
        edges: Union[str, Sequence[str], None],
        edge_lists: Sequence[EdgeListQuery],
    ) -> Snapshot:
        snapshot = self.snapshot
        schema = snapshot.schema
        store = snapshot.store

        property_names = _select(properties, schema.properties)
        edge_names = _select(edges, (e.name for e in schema.one_edges))
        list_queries = [
            q for q in edge_lists if q.type in {e.name for e in schema.many_edges}
        ]

        calls: List[Any] = [("get_node", store.get_node(node))]
        calls.extend(
            ("get_node_type", store.get_node_type(node=node, type=name))
            for name in property_names + edge_names
        )
        calls.extend(
            (
                "get_node_types",
                store.get_node_types(
                    node=node,
                    limit=q.limit if q.limit is not None else snapshot.page_limit,
                    begins_with=q.prefix(),
                ),
            )
            for q in list_queries
        )

        tracker = HistoryTracker()
        responses = await tracker.gather(calls)
        node_result = responses[0]
        node_row = node_result.items[0] if node_result.items else None

        split = 1 + len(property_names)
        property_rows = [r.item for r in responses[1:split] if r.item is not None]
        edge_rows = [r.item for r in responses[split : split + len(edge_names)] if r.item is not None]
        for result in responses[split + len(edge_names) :]:
            edge_rows.extend(result.items)

        logger.debug(
            "Read node selection",
            extra={
                "node": node,
                "properties": property_names,
                "edges": edge_names,
                "edge_lists": [q.type for q in list_queries],
            },
        )
        return self._bind(node, node_row, property_rows, edge_rows, tracker)

    async def collection(self) -> List[Snapshot]:
        """Every node of the Snapshot's type in its tenant.

        One store query returns the nodes already joined with their rows;
        each becomes an independent Snapshot.

        Raises:
            PartitionUndefinedError: If max_gsik is unknown on an EMPTY Snapshot
            StoreError: If the query fails
        """
        snapshot = self.snapshot
        tracker = HistoryTracker()
        if snapshot.max_gsik is None and snapshot.node is None:
            raise PartitionUndefinedError()
        max_gsik = await resolve_max_gsik(snapshot.store, snapshot.node, snapshot.max_gsik, tracker)

        response = await tracker.call(
            "get_nodes_with_properties_and_edges",
            snapshot.store.get_nodes_with_properties_and_edges(
                type=snapshot.type, tenant=snapshot.tenant, max_gsik=max_gsik
            ),
        )
        history = tracker.dump()

        logger.debug(
            "Listed nodes",
            extra={"type": snapshot.type, "tenant": snapshot.tenant, "count": len(response.items)},
        )
        return [
            snapshot.evolve(
                node=item.node,
                data=item.data,
                properties=item.properties,
                edges=item.edges,
                document=build_document(
                    snapshot.schema, item.node, item.data, item.properties, item.edges
                ),
                max_gsik=max_gsik,
                history=history,
            )
            for item in response.items
        ]

    async def remove(self, type: str) -> Snapshot:
        """Delete one property or edge row of the bound node.

        The matching rows are dropped from the returned Snapshot without
        reading the node again.

        Raises:
            ValidationError: If the Snapshot is EMPTY or type is missing
            StoreError: If the delete fails
        """
        snapshot = self.snapshot
        node = snapshot.require_node()
        if not type:
            raise ValidationError("Type is undefined", field_name="type")

        tracker = HistoryTracker()
        await tracker.call(
            "delete_property_or_edge",
            snapshot.store.delete_property_or_edge(node=node, type=type),
        )
        properties = tuple(r for r in snapshot.properties if r.type != type)
        edges = tuple(r for r in snapshot.edges if r.type != type)

        return snapshot.evolve(
            properties=properties,
            edges=edges,
            document=build_document(snapshot.schema, node, snapshot.data, properties, edges),
            history=tracker.dump(),
        )

    async def destroy(self, node: Optional[str] = None) -> Snapshot:
        """Delete a node with all its rows.

        Args:
            node: Node to delete, the bound node when None

        Returns:
            EMPTY Snapshot carrying the accumulated history

        Raises:
            ValidationError: If no node is given and the Snapshot is EMPTY
            StoreError: If the delete fails
        """
        if node is None:
            node = self.snapshot.require_node()

        tracker = HistoryTracker()
        response = await tracker.call("delete_node", self.snapshot.store.delete_node(node))

        logger.info(
            "Destroyed node",
            extra={"node": node, "type": self.snapshot.type, "rows": response.deleted},
        )
        return self.snapshot.evolve(
            node=None,
            data=None,
            properties=(),
            edges=(),
            document={},
            history=tracker.dump(),
        )
