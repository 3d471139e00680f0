"""
Schema-driven node creation.

create() turns a flat document into:
1. exactly one node row holding the key field's value
2. concurrently, one row per declared property, scalar edge and edge list
   element present in the document

Writes are not transactional. If a property or edge write fails after the
node row exists, earlier writes stay in the table and the raised
StoreError lists every attempted call in its history.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from .documents import build_document
from .errors import DataMissingError, NodeAlreadyExistsError, PartitionUndefinedError
from .history import HistoryTracker
from .writes import CREATED_AT, UPDATED_AT, diff_document, now_ms, split_rows, write_calls

if TYPE_CHECKING:
    from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class SchemaCreateEngine:
    """Creates nodes from documents for an EMPTY Snapshot."""

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    async def create(self, doc: Mapping[str, Any]) -> Snapshot:
        """Create a node, its properties and its edges.

        Args:
            doc: Flat document keyed by schema field names. Edge values are
                node ids or bound Snapshots; edge list values are lists of
                them.

        Returns:
            New BOUND Snapshot whose document is
            {id, key, properties..., edges..., @edges..., edge lists...}

        Raises:
            NodeAlreadyExistsError: If the Snapshot is already bound
            DataMissingError: If the key field has no value
            PartitionUndefinedError: If max_gsik is unknown
            ValidationError: If an edge target is missing
            StoreError: If any store write fails
        """
        snapshot = self.snapshot
        schema = snapshot.schema

        if snapshot.node is not None:
            raise NodeAlreadyExistsError(snapshot.node)
        value = doc.get(schema.key)
        if value is None:
            raise DataMissingError(schema.key)
        if snapshot.max_gsik is None:
            raise PartitionUndefinedError()

        diff = diff_document(schema, doc)
        if snapshot.log:
            now = now_ms()
            diff.properties[CREATED_AT] = now
            diff.properties[UPDATED_AT] = now

        tracker = HistoryTracker()
        node = snapshot.node_generator(snapshot.tenant)
        response = await tracker.call(
            "create_node",
            snapshot.store.create_node(
                node=node,
                tenant=snapshot.tenant,
                type=snapshot.type,
                data=value,
                max_gsik=snapshot.max_gsik,
            ),
        )
        if response.item is not None:
            node = response.item.node

        responses = await tracker.gather(
            write_calls(snapshot.store, snapshot.tenant, node, snapshot.max_gsik, diff)
        )
        properties, edges = split_rows(responses)

        logger.debug(
            "Created node",
            extra={
                "node": node,
                "type": snapshot.type,
                "tenant": snapshot.tenant,
                "writes": 1 + diff.write_count,
            },
        )

        return snapshot.evolve(
            node=node,
            data=value,
            properties=properties,
            edges=edges,
            document=build_document(schema, node, value, properties, edges),
            history=tracker.dump(),
        )
