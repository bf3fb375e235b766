"""
Streaming parent resolution.

Records arrive in (forest, left) order. Every record closes the subtrees
of the open ancestors at its own depth or deeper, so the open ancestor
chain is a stack indexed by depth: pop while the top is not shallower,
the remaining top is the parent, then push. One pass, no lookahead.

A resolver instance serves one pass. ``resolve`` starts from a fresh
stack; ``push`` lets callers stream records themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from nestgrid.core.errors import DataIntegrityError, OrderingViolationError
from nestgrid.core.records import NodeRecord
from nestgrid.hierarchy.encoding import NestedSetEncoding, TreeEncoding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolverAnomaly:
    """An inconsistency the tolerant resolver stepped over.

    Attributes:
        node_id: Record being resolved.
        parent_id: Best-effort parent that was assigned anyway.
        reason: What was wrong.
    """

    node_id: Any
    parent_id: Any
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"node_id": self.node_id, "parent_id": self.parent_id, "reason": self.reason}


@dataclass
class Resolution:
    """Result of one resolution pass.

    Attributes:
        parents: Node id -> parent id (None for roots of the batch).
        anomalies: Inconsistencies found in tolerant mode.
    """

    parents: dict[Any, Any] = field(default_factory=dict)
    anomalies: list[ResolverAnomaly] = field(default_factory=list)

    def parent_of(self, node_id: Any) -> Any:
        return self.parents.get(node_id)

    @property
    def is_consistent(self) -> bool:
        return not self.anomalies


@dataclass
class _OpenNode:
    depth: int
    record: NodeRecord


class ParentResolver:
    """
    Assigns each record the id of its parent using a depth-indexed stack.

    Args:
        encoding: Structural checks for the defensive validation.
        strict: Raise instead of recording anomalies.
        base_parent: Parent reported for records with no open ancestor.
            A lazily loaded batch of children uses the expanded node here.

    Example::

        resolution = ParentResolver().resolve(sorted_records)
        resolution.parent_of(3)
    """

    def __init__(
        self,
        encoding: TreeEncoding | None = None,
        strict: bool = False,
        base_parent: Any = None,
    ) -> None:
        self.encoding = encoding or NestedSetEncoding()
        self.strict = strict
        self.base_parent = base_parent
        self._stack: list[_OpenNode] = []
        self._previous: NodeRecord | None = None
        self._resolution = Resolution()

    def reset(self) -> None:
        """Forget all open ancestors and results."""
        self._stack = []
        self._previous = None
        self._resolution = Resolution()

    @property
    def resolution(self) -> Resolution:
        return self._resolution

    def resolve(self, records: Iterable[NodeRecord]) -> Resolution:
        """Resolve a whole sorted batch from a fresh stack."""
        self.reset()
        for record in records:
            self.push(record)
        resolution = self._resolution
        if resolution.anomalies:
            logger.warning(
                "Resolved %d record(s) with %d inconsistency(ies)",
                len(resolution.parents),
                len(resolution.anomalies),
            )
        return resolution

    def push(self, record: NodeRecord) -> Any:
        """Consume the next record and return its parent id."""
        previous = self._previous
        if previous is not None and previous.forest != record.forest:
            # A new forest never inherits open ancestors from the last one.
            self._stack = []
        self._check_order(previous, record)

        depth = record.depth
        while self._stack and self._stack[-1].depth >= depth:
            self._stack.pop()

        if self._stack:
            top = self._stack[-1]
            parent_id = top.record.id
            self._check_parent(record, top)
        else:
            parent_id = self.base_parent

        self._stack.append(_OpenNode(depth, record))
        self._previous = record
        self._resolution.parents[record.id] = parent_id
        return parent_id

    def _check_order(self, previous: NodeRecord | None, record: NodeRecord) -> None:
        if previous is None or previous.forest != record.forest:
            return
        if record.left > previous.left:
            return
        if self.strict:
            raise OrderingViolationError(record.id, previous.id)
        self._flag(record, previous.id, f"left bound {record.left} does not follow {previous.left}")

    def _check_parent(self, record: NodeRecord, top: _OpenNode) -> None:
        reason = None
        if top.depth != record.depth - 1:
            reason = f"depth jumps from {top.depth} to {record.depth}"
        elif not self.encoding.is_descendant_of(record, top.record):
            reason = f"interval [{record.left}, {record.right}] is outside parent {top.record.id!r}"
        if reason is None:
            return
        if self.strict:
            raise DataIntegrityError(record.id, reason)
        self._flag(record, top.record.id, reason)

    def _flag(self, record: NodeRecord, parent_id: Any, reason: str) -> None:
        logger.warning("Inconsistent record %r: %s", record.id, reason)
        self._resolution.anomalies.append(ResolverAnomaly(record.id, parent_id, reason))


def resolve_parents(
    records: Iterable[NodeRecord],
    encoding: TreeEncoding | None = None,
    strict: bool = False,
    base_parent: Any = None,
) -> Resolution:
    """Resolve a sorted batch with a resolver of its own."""
    return ParentResolver(encoding, strict=strict, base_parent=base_parent).resolve(records)
