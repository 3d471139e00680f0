"""
Operation history for graphmodel.

Every Snapshot operation creates its own HistoryTracker, records the raw
response (or error) of each store call it makes, and hands the frozen
result to the Snapshot it returns. History therefore accumulates along a
chain of Snapshots without any list being shared between them.

Invariants:
    - A tracker belongs to exactly one operation and is never shared
    - Entries are only appended, dump() returns an immutable tuple
    - Failures are recorded before the error propagates
    - Fan-out waits for every call to settle before raising
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Sequence, Tuple

from .errors import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """One store call made during an operation.

    Attributes:
        operation: Store method name (e.g. "create_edge")
        response: Raw store response, None if the call failed
        error: Exception raised by the store, None on success
        timestamp_ms: When the call settled (Unix ms)
    """

    operation: str
    response: Any = None
    error: Optional[BaseException] = None
    timestamp_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class HistoryTracker:
    """Append-only log of the store calls of a single operation.

    Example:
        >>> tracker = HistoryTracker()
        >>> response = await tracker.call("get_node", store.get_node(node))
        >>> snapshot.evolve(history=tracker.dump())
    """

    def __init__(self) -> None:
        self._entries: List[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def track(self, operation: str, response: Any) -> None:
        """Record a successful store call."""
        self._entries.append(
            HistoryEntry(
                operation=operation,
                response=response,
                timestamp_ms=int(time.time() * 1000),
            )
        )

    def track_error(self, operation: str, error: BaseException) -> None:
        """Record a failed store call."""
        self._entries.append(
            HistoryEntry(
                operation=operation,
                error=error,
                timestamp_ms=int(time.time() * 1000),
            )
        )

    def dump(self) -> Tuple[HistoryEntry, ...]:
        """Entries recorded so far."""
        return tuple(self._entries)

    async def call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        """Await one store call and record its outcome.

        Args:
            operation: Store method name
            awaitable: The pending store call

        Returns:
            The raw store response

        Raises:
            StoreError: If the store call raised
        """
        try:
            response = await awaitable
        except Exception as e:
            self.track_error(operation, e)
            logger.warning(
                "Store call failed",
                extra={"operation": operation, "error": str(e)},
            )
            raise StoreError(f"{operation} failed: {e}", operation, self.dump()) from e

        self.track(operation, response)
        return response

    async def gather(self, calls: Sequence[Tuple[str, Awaitable[Any]]]) -> List[Any]:
        """Run store calls concurrently and record every outcome.

        Waits until all calls settle. Outcomes are recorded in request
        order. If any call failed, the first failure (in request order) is
        raised after recording; writes that succeeded stay committed.

        Args:
            calls: (operation, awaitable) pairs

        Returns:
            Responses in request order

        Raises:
            StoreError: If any store call raised
        """
        if not calls:
            return []

        results = await asyncio.gather(*(aw for _, aw in calls), return_exceptions=True)

        failure: Optional[Tuple[str, BaseException]] = None
        for (operation, _), result in zip(calls, results):
            if isinstance(result, BaseException):
                self.track_error(operation, result)
                if failure is None:
                    failure = (operation, result)
            else:
                self.track(operation, result)

        if failure is not None:
            operation, error = failure
            if not isinstance(error, Exception):
                raise error
            logger.warning(
                "Store fan-out failed",
                extra={
                    "operation": operation,
                    "calls": len(calls),
                    "failed": sum(1 for r in results if isinstance(r, BaseException)),
                    "error": str(error),
                },
            )
            raise StoreError(f"{operation} failed: {error}", operation, self.dump()) from error

        return list(results)
