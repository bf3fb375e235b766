"""Predicates and node stores."""

from nestgrid.query.predicates import (
    DISPLAY_ORDER,
    Clause,
    Condition,
    FetchLog,
    Operator,
    OrderBy,
    Predicate,
)
from nestgrid.query.store import CountingNodeStore, MemoryNodeStore, NodeStore, SQLiteNodeStore

__all__ = [
    "DISPLAY_ORDER",
    "Clause",
    "Condition",
    "CountingNodeStore",
    "FetchLog",
    "MemoryNodeStore",
    "NodeStore",
    "Operator",
    "OrderBy",
    "Predicate",
    "SQLiteNodeStore",
]
