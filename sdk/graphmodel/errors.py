"""
Error types for graphmodel.

This module defines all exception types raised by the modeling layer:
- GraphModelError: Base exception
- ValidationError: Bad input detected before any store call
- NodeAlreadyExistsError, DataMissingError, IdMissingError,
  PartitionUndefinedError: Specific validation failures
- PartitionResolutionError: Stored node carries no partition count
- StoreError: Failure raised by the GraphStore

Invariants:
    - All errors inherit from GraphModelError
    - Validation errors are raised before any store call
    - Errors raised after store calls carry the history of the operation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from .history import HistoryEntry


class GraphModelError(Exception):
    """Base exception for all graphmodel errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "GRAPHMODEL_ERROR"
        self.details = details or {}


class ValidationError(GraphModelError):
    """Input validation failed.

    Raised when:
    - Type, key, data, node or target is missing
    - maxGSIK is not a number
    - An operation is called in the wrong Snapshot state
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(message, code=code, details={"field": field_name})
        self.field_name = field_name


class NodeAlreadyExistsError(ValidationError):
    """create() was called on a Snapshot already bound to a node."""

    def __init__(self, node: str) -> None:
        super().__init__(
            f"Node already exists: {node}",
            field_name="node",
            code="NODE_ALREADY_EXISTS",
        )
        self.node = node


class DataMissingError(ValidationError):
    """The document does not carry a value for the schema key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Data is undefined for key '{key}'", field_name=key, code="DATA_MISSING")
        self.key = key


class IdMissingError(ValidationError):
    """An update document has no id."""

    def __init__(self) -> None:
        super().__init__("Id is undefined", field_name="id", code="ID_MISSING")


class PartitionUndefinedError(ValidationError):
    """maxGSIK is unknown and cannot be looked up."""

    def __init__(self) -> None:
        super().__init__("Max GSIK is undefined", field_name="max_gsik", code="PARTITION_UNDEFINED")


class PartitionResolutionError(GraphModelError):
    """The stored node row carries no partition count.

    Attributes:
        node: Node whose partition count was looked up
        history: Store calls made before the failure
    """

    def __init__(
        self,
        node: str,
        history: Tuple[HistoryEntry, ...] = (),
    ) -> None:
        super().__init__(
            f"Max GSIK is undefined for node {node}",
            code="PARTITION_RESOLUTION_ERROR",
            details={"node": node},
        )
        self.node = node
        self.history = history


class StoreError(GraphModelError):
    """A GraphStore call failed.

    The backend exception is chained as ``__cause__``. Writes that
    succeeded before the failure are not rolled back; ``history`` lists
    every call the operation attempted, including the failing one.

    Attributes:
        operation: Name of the failing store call
        history: Store calls made by the operation
    """

    def __init__(
        self,
        message: str,
        operation: str,
        history: Tuple[HistoryEntry, ...] = (),
    ) -> None:
        super().__init__(
            message,
            code="STORE_ERROR",
            details={"operation": operation},
        )
        self.operation = operation
        self.history = history
