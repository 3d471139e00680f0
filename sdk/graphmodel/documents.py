"""
Denormalized document views over graph rows.

Rows are the canonical shape of a Snapshot. Documents are the flat view
handed back to application code:

    {
        "id": "<node>",
        "<key>": <node data>,
        "<property>": <data>,
        "<edge>": "<target>",
        "@<edge>": <target key data>,
        "<edge list>": {
            "<discriminator>": "<target>",
            "@<discriminator>": <target key data>,
        },
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .schema import ModelSchema
from .store.base import Row

DATA_PREFIX = "@"


@dataclass(frozen=True)
class EdgeRef:
    """Target of an edge plus the key data copied from it."""

    target: Optional[str]
    data: Any = None


def property_map(rows: Iterable[Row]) -> Dict[str, Any]:
    """Property rows as a type -> data mapping."""
    return {row.type: row.data for row in rows}


def edge_map(rows: Iterable[Row]) -> Dict[str, EdgeRef]:
    """Edge rows as a type -> EdgeRef mapping, list edges keyed by full type."""
    return {row.type: EdgeRef(target=row.target, data=row.data) for row in rows}


def edge_view(schema: ModelSchema, rows: Iterable[Row]) -> Dict[str, Any]:
    """Edge rows in document form.

    Rows of a declared MANY relation are grouped under the relation name
    and keyed by discriminator. Every other row is a scalar edge.
    """
    view: Dict[str, Any] = {}
    for row in rows:
        definition = schema.get_edge(row.relation)
        discriminator = row.discriminator
        if discriminator is not None and definition is not None and definition.many:
            group = view.setdefault(row.relation, {})
            group[discriminator] = row.target
            group[f"{DATA_PREFIX}{discriminator}"] = row.data
        else:
            view[row.type] = row.target
            view[f"{DATA_PREFIX}{row.type}"] = row.data
    return view


def build_document(
    schema: ModelSchema,
    node: Optional[str],
    data: Any,
    properties: Iterable[Row],
    edges: Iterable[Row],
    include_key: bool = True,
) -> Dict[str, Any]:
    """Flat document for a node.

    Args:
        schema: Schema of the node type
        node: Node identifier
        data: Node key data
        properties: Property rows
        edges: Edge rows
        include_key: Whether to emit the key field

    Returns:
        Denormalized document
    """
    document: Dict[str, Any] = {"id": node}
    if include_key:
        document[schema.key] = data
    document.update(property_map(properties))
    document.update(edge_view(schema, edges))
    return document
