"""
Schema-driven partial updates and single-row writes.

update() writes only the schema fields present in the document, using the
same upsert primitives as create(); absent fields and None values are left
untouched. connect() and set() write one edge or property row.

All writes resolve max_gsik from the node row when the Snapshot does not
know it yet, and cache the value on the Snapshot they return.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from .documents import build_document
from .errors import IdMissingError, ValidationError
from .history import HistoryTracker
from .partition import resolve_max_gsik
from .writes import (
    UPDATED_AT,
    diff_document,
    list_edge_type,
    merge_rows,
    now_ms,
    split_rows,
    target_id,
    write_calls,
)

if TYPE_CHECKING:
    from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class SchemaUpdateEngine:
    """Writes properties and edges onto existing nodes."""

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    async def update(self, doc: Mapping[str, Any]) -> Snapshot:
        """Upsert the schema fields present in a document.

        Args:
            doc: Flat document; ``doc["id"]`` names the node to update

        Returns:
            New BOUND Snapshot. Written rows replace same-typed rows the
            receiver holds when it is bound to the same node, and the
            document is rebuilt from the merged rows. Fields of ``doc``
            that produced no row do not appear in it.

        Raises:
            IdMissingError: If ``doc`` has no id
            ValidationError: If an edge target is missing
            PartitionResolutionError: If max_gsik cannot be looked up
            StoreError: If any store call fails
        """
        snapshot = self.snapshot
        schema = snapshot.schema

        node = doc.get("id")
        if node is None:
            raise IdMissingError()

        diff = diff_document(schema, doc)
        if snapshot.log:
            diff.properties[UPDATED_AT] = now_ms()

        tracker = HistoryTracker()
        max_gsik = await resolve_max_gsik(snapshot.store, node, snapshot.max_gsik, tracker)
        responses = await tracker.gather(
            write_calls(snapshot.store, snapshot.tenant, node, max_gsik, diff)
        )
        written_properties, written_edges = split_rows(responses)

        if snapshot.node == node:
            data, properties, edges = snapshot.data, snapshot.properties, snapshot.edges
        else:
            data, properties, edges = None, (), ()

        properties = merge_rows(properties, written_properties)
        edges = merge_rows(edges, written_edges)
        document = build_document(
            schema, node, data, properties, edges, include_key=data is not None
        )

        logger.debug(
            "Updated node",
            extra={"node": node, "type": snapshot.type, "writes": diff.write_count},
        )

        return snapshot.evolve(
            node=node,
            data=data,
            properties=properties,
            edges=edges,
            document=document,
            max_gsik=max_gsik,
            history=tracker.dump(),
        )

    async def set(self, type: str, data: Any) -> Snapshot:
        """Upsert one property of the bound node.

        Raises:
            ValidationError: If the Snapshot is EMPTY or type/data is missing
            StoreError: If the store call fails
        """
        snapshot = self.snapshot
        node = snapshot.require_node()
        if not type:
            raise ValidationError("Type is undefined", field_name="type")
        if data is None:
            raise ValidationError("Data is undefined", field_name="data")

        tracker = HistoryTracker()
        max_gsik = await resolve_max_gsik(snapshot.store, node, snapshot.max_gsik, tracker)
        response = await tracker.call(
            "create_property",
            snapshot.store.create_property(
                tenant=snapshot.tenant, node=node, type=type, data=data, max_gsik=max_gsik
            ),
        )
        properties = merge_rows(snapshot.properties, [response.item] if response.item else [])

        return snapshot.evolve(
            properties=properties,
            document=build_document(snapshot.schema, node, snapshot.data, properties, snapshot.edges),
            max_gsik=max_gsik,
            history=tracker.dump(),
        )

    async def connect(self, type: str, target: Any) -> Snapshot:
        """Create an edge from the bound node.

        Connecting through a declared MANY relation adds a new element to
        the edge list under a fresh discriminator.

        Args:
            type: Relation name
            target: Target node id or bound Snapshot

        Raises:
            ValidationError: If the Snapshot is EMPTY or type/target is missing
            StoreError: If the store call fails
        """
        snapshot = self.snapshot
        node = snapshot.require_node()
        if not type:
            raise ValidationError("Type is undefined", field_name="type")
        target = target_id(target)
        if target is None:
            raise ValidationError("Target is undefined", field_name="target")

        definition = snapshot.schema.get_edge(type)
        if definition is not None and definition.many:
            type = list_edge_type(type)

        tracker = HistoryTracker()
        max_gsik = await resolve_max_gsik(snapshot.store, node, snapshot.max_gsik, tracker)
        response = await tracker.call(
            "create_edge",
            snapshot.store.create_edge(
                tenant=snapshot.tenant, node=node, type=type, target=target, max_gsik=max_gsik
            ),
        )
        edges = merge_rows(snapshot.edges, [response.item] if response.item else [])

        return snapshot.evolve(
            edges=edges,
            document=build_document(snapshot.schema, node, snapshot.data, snapshot.properties, edges),
            max_gsik=max_gsik,
            history=tracker.dump(),
        )
