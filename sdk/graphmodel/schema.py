"""
Schema types for graphmodel.

A ModelSchema declares how a flat document maps onto graph rows:
- key: document field stored as the node's own data
- properties: document fields stored as property rows
- edges: document fields stored as edge rows, one or many per node

Invariants:
    - Names are unique across key, properties and edges
    - Names never contain the list edge separator "#"
    - Cardinality is declared explicitly, never parsed from the name

Example:
    >>> Book = ModelSchema(
    ...     key="Name",
    ...     properties=("Genre",),
    ...     edges=(edge("Author"), edge("Likes", many=True)),
    ... )
    >>> [e.name for e in Book.many_edges]
    ['Likes']
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from .store.base import LIST_EDGE_SEPARATOR


class Cardinality(Enum):
    """How many edge rows a relation may have per node."""

    ONE = "one"
    MANY = "many"


@dataclass(frozen=True)
class EdgeDef:
    """Edge declaration.

    Attributes:
        name: Relation name, used as row type (ONE) or type prefix (MANY)
        cardinality: ONE for a single target, MANY for an edge list
    """

    name: str
    cardinality: Cardinality = Cardinality.ONE

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Edge name cannot be empty")
        if LIST_EDGE_SEPARATOR in self.name:
            raise ValueError(f"Edge name '{self.name}' cannot contain '{LIST_EDGE_SEPARATOR}'")

    @property
    def many(self) -> bool:
        return self.cardinality == Cardinality.MANY


def edge(name: str, *, many: bool = False) -> EdgeDef:
    """Convenience function to create an EdgeDef.

    Example:
        >>> author = edge("Author")
        >>> likes = edge("Likes", many=True)
    """
    return EdgeDef(name=name, cardinality=Cardinality.MANY if many else Cardinality.ONE)


@dataclass(frozen=True)
class ModelSchema:
    """Declared shape of a node type's documents.

    Attributes:
        key: Field holding the node's main data
        properties: Property names
        edges: Edge declarations; plain strings are ONE edges
    """

    key: str
    properties: Iterable[str] = ()
    edges: Iterable[Union[EdgeDef, str]] = ()

    def __post_init__(self) -> None:
        """Normalize to tuples and validate names."""
        object.__setattr__(self, "properties", tuple(self.properties))
        object.__setattr__(
            self,
            "edges",
            tuple(e if isinstance(e, EdgeDef) else EdgeDef(name=e) for e in self.edges),
        )
        if not self.key:
            raise ValueError("Key is undefined")
        names = [self.key, *self.properties, *(e.name for e in self.edges)]
        for name in names:
            if not name:
                raise ValueError("Schema names cannot be empty")
            if LIST_EDGE_SEPARATOR in name:
                raise ValueError(f"Schema name '{name}' cannot contain '{LIST_EDGE_SEPARATOR}'")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate schema names: {duplicates}")

    @property
    def one_edges(self) -> Tuple[EdgeDef, ...]:
        return tuple(e for e in self.edges if not e.many)

    @property
    def many_edges(self) -> Tuple[EdgeDef, ...]:
        return tuple(e for e in self.edges if e.many)

    def get_edge(self, name: str) -> Optional[EdgeDef]:
        """Edge declaration by name, None if undeclared."""
        for e in self.edges:
            if e.name == name:
                return e
        return None
