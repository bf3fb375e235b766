"""Exception types shared across nestgrid."""

from __future__ import annotations

from typing import Any


class NestGridError(Exception):
    """Base class for all nestgrid errors."""


class DataIntegrityError(NestGridError):
    """Raised when a record's nested-set bounds are corrupt.

    Attributes:
        node_id: Identifier of the offending record (None if unknown).
        reason: Human-readable description of the violation.
    """

    def __init__(self, node_id: Any, reason: str) -> None:
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"Corrupt nested-set record {node_id!r}: {reason}")


class OrderingViolationError(NestGridError):
    """Raised when a batch is not ordered by (forest, left)."""

    def __init__(self, node_id: Any, previous_id: Any) -> None:
        self.node_id = node_id
        self.previous_id = previous_id
        super().__init__(
            f"Record {node_id!r} sorts before preceding record {previous_id!r}"
        )


class NodeStoreError(NestGridError):
    """Raised for storage-level errors (duplicates, bad attribute names)."""
