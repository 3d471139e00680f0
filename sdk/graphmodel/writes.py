"""
Schema-driven write planning shared by create and update.

A flat document is split into the rows the schema declares for it:
- properties: one property row per declared property present
- edges: one edge row per declared ONE edge present
- edge_lists: one edge row per element of each declared MANY edge,
  typed "<relation>#<discriminator>"

Fields absent from the document, or present with a None value, produce no
write. Nothing here deletes rows.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ValidationError
from .ids import new_discriminator
from .schema import ModelSchema
from .store.base import LIST_EDGE_SEPARATOR, GraphStore, ItemResponse, Row

CREATED_AT = "CreatedAt"
UPDATED_AT = "UpdatedAt"


def now_ms() -> int:
    """Current time as Unix milliseconds."""
    return int(time.time() * 1000)


def target_id(target: Any) -> Optional[str]:
    """Node id of an edge target given as an id or a bound Snapshot."""
    if target is None or isinstance(target, str):
        return target
    return getattr(target, "node", None)


def list_edge_type(relation: str, discriminator: Optional[str] = None) -> str:
    """Row type of one element of an edge list."""
    return f"{relation}{LIST_EDGE_SEPARATOR}{discriminator or new_discriminator()}"


@dataclass(frozen=True)
class DocumentDiff:
    """Rows to write for a document.

    Attributes:
        properties: Property name -> data
        edges: Relation -> target node
        edge_lists: Relation -> target nodes
    """

    properties: Dict[str, Any] = field(default_factory=dict)
    edges: Dict[str, str] = field(default_factory=dict)
    edge_lists: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def write_count(self) -> int:
        return len(self.properties) + len(self.edges) + sum(len(t) for t in self.edge_lists.values())


def diff_document(schema: ModelSchema, doc: Mapping[str, Any]) -> DocumentDiff:
    """Split a document into the writes its schema declares.

    Args:
        schema: Schema of the node type
        doc: Flat document

    Returns:
        DocumentDiff

    Raises:
        ValidationError: If an edge target cannot be resolved to a node id
            or an edge list value is not a list
    """
    properties = {
        name: doc[name] for name in schema.properties if doc.get(name) is not None
    }

    edges: Dict[str, str] = {}
    for definition in schema.one_edges:
        value = doc.get(definition.name)
        if value is None:
            continue
        target = target_id(value)
        if target is None:
            raise ValidationError(
                f"Target is undefined for edge '{definition.name}'", field_name=definition.name
            )
        edges[definition.name] = target

    edge_lists: Dict[str, List[str]] = {}
    for definition in schema.many_edges:
        value = doc.get(definition.name)
        if value is None:
            continue
        if not isinstance(value, (list, tuple)):
            raise ValidationError(
                f"Edge list '{definition.name}' must be a list of targets",
                field_name=definition.name,
            )
        targets = [target_id(item) for item in value]
        if any(t is None for t in targets):
            raise ValidationError(
                f"Target is undefined in edge list '{definition.name}'",
                field_name=definition.name,
            )
        edge_lists[definition.name] = targets

    return DocumentDiff(properties=properties, edges=edges, edge_lists=edge_lists)


def write_calls(
    store: GraphStore,
    tenant: str,
    node: str,
    max_gsik: int,
    diff: DocumentDiff,
) -> List[Tuple[str, Awaitable[ItemResponse]]]:
    """One store call per property, per scalar edge and per list element."""
    calls: List[Tuple[str, Awaitable[ItemResponse]]] = []
    for type, data in diff.properties.items():
        calls.append(
            (
                "create_property",
                store.create_property(
                    tenant=tenant, node=node, type=type, data=data, max_gsik=max_gsik
                ),
            )
        )
    for type, target in diff.edges.items():
        calls.append(
            (
                "create_edge",
                store.create_edge(
                    tenant=tenant, node=node, type=type, target=target, max_gsik=max_gsik
                ),
            )
        )
    for relation, targets in diff.edge_lists.items():
        for target in targets:
            calls.append(
                (
                    "create_edge",
                    store.create_edge(
                        tenant=tenant,
                        node=node,
                        type=list_edge_type(relation),
                        target=target,
                        max_gsik=max_gsik,
                    ),
                )
            )
    return calls


def split_rows(responses: Sequence[ItemResponse]) -> Tuple[Tuple[Row, ...], Tuple[Row, ...]]:
    """Written rows as (property rows, edge rows)."""
    rows = [r.item for r in responses if r.item is not None]
    return (
        tuple(r for r in rows if r.target is None),
        tuple(r for r in rows if r.target is not None),
    )


def merge_rows(existing: Iterable[Row], written: Iterable[Row]) -> Tuple[Row, ...]:
    """Upsert rows by type, keeping the position of rows already present."""
    merged: Dict[str, Row] = {row.type: row for row in existing}
    for row in written:
        merged[row.type] = row
    return tuple(merged.values())
