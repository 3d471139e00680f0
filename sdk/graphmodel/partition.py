"""
Partition key (GSIK) assignment.

Rows are spread over ``max_gsik`` secondary index partitions per tenant.
The store derives the partition label of each row with compute_key(); the
engines only have to make sure ``max_gsik`` is known before delegating a
write, looking it up on the node row when a Snapshot does not carry it.

Invariants:
    - compute_key() is deterministic for (node, tenant, max_gsik)
    - Labels are bounded: at most max_gsik distinct labels per tenant
    - max_gsik must never decrease once a tenant has data, otherwise
      existing rows land outside the partitions that collection scans
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Optional

from .errors import PartitionResolutionError
from .history import HistoryTracker

if TYPE_CHECKING:
    from .store.base import GraphStore

logger = logging.getLogger(__name__)


def partition_label(tenant: str, bucket: int) -> str:
    """Label of one partition of a tenant."""
    return f"{tenant}#{bucket}"


def compute_key(node: str, tenant: str, max_gsik: int) -> str:
    """Partition label for a node.

    Args:
        node: Node identifier
        tenant: Tenant identifier
        max_gsik: Number of partitions of the tenant

    Returns:
        Label of the form "<tenant>#<bucket>" with 0 <= bucket < max_gsik
        (bucket 0 when max_gsik is 0)
    """
    if max_gsik <= 0:
        return partition_label(tenant, 0)
    hash_bytes = hashlib.md5(node.encode("utf-8")).digest()
    hash_int = int.from_bytes(hash_bytes[:4], "big")
    return partition_label(tenant, hash_int % max_gsik)


async def resolve_max_gsik(
    store: GraphStore,
    node: str,
    max_gsik: Optional[int],
    tracker: HistoryTracker,
) -> int:
    """Return the partition count for a node, reading it if unknown.

    Args:
        store: Graph store
        node: Node whose rows are about to be written
        max_gsik: Value already known to the Snapshot, if any
        tracker: History of the current operation

    Returns:
        The partition count

    Raises:
        PartitionResolutionError: If the node row carries no partition count
        StoreError: If the lookup fails
    """
    if max_gsik is not None:
        return max_gsik

    response = await tracker.call("get_node", store.get_node(node))
    item = response.items[0] if response.items else None
    if item is None or item.max_gsik is None:
        raise PartitionResolutionError(node, tracker.dump())

    logger.debug(
        "Resolved max GSIK from node row",
        extra={"node": node, "max_gsik": item.max_gsik},
    )
    return item.max_gsik
