"""
graphmodel Test Suite.

This package contains:
- unit/: Unit tests for schema, partitioning, history, config and the
  in-memory store
- integration/: Snapshot operations end to end against the in-memory store
"""
