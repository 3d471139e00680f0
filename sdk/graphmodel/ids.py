"""Identifier generation for nodes and list edge rows."""

from __future__ import annotations

import uuid


def new_node_id(tenant: str = "") -> str:
    """Random opaque node id, prefixed with the tenant when one is set."""
    node = uuid.uuid4().hex
    return f"{tenant}#{node}" if tenant else node


def new_discriminator() -> str:
    """Random suffix distinguishing the rows of one edge list."""
    return uuid.uuid4().hex
