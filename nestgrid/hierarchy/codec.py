"""
Pure functions over nested-set bounds.

A node's descendants are the records whose interval lies strictly inside
its own; each descendant contributes one left and one right bound, so the
width of an interval gives the size of its subtree. Tree grids report
this as the child count: (right - left - 1) / 2.
"""

from __future__ import annotations

from typing import Any

from nestgrid.core.errors import DataIntegrityError
from nestgrid.core.records import NodeRecord, collation_key

ROOT_LEFT = 1


def child_count(left: int, right: int, node_id: Any = None) -> int:
    """Number of nodes nested inside ``[left, right]``.

    Raises:
        DataIntegrityError: If ``right <= left`` or the bounds enclose an
            odd number of slots.
    """
    if right <= left:
        raise DataIntegrityError(node_id, f"right bound {right} is not greater than left bound {left}")
    inner = right - left - 1
    if inner % 2:
        raise DataIntegrityError(node_id, f"bounds [{left}, {right}] enclose an odd number of slots")
    return inner // 2


def validate_bounds(record: NodeRecord) -> None:
    """Raise DataIntegrityError if the record cannot belong to a valid tree."""
    if record.depth < 0:
        raise DataIntegrityError(record.id, f"negative depth {record.depth}")
    child_count(record.left, record.right, record.id)


def same_forest(a: NodeRecord, b: NodeRecord) -> bool:
    return a.forest == b.forest


def is_descendant_of(child: NodeRecord, parent: NodeRecord) -> bool:
    """True if ``child``'s interval is strictly inside ``parent``'s."""
    return (
        same_forest(child, parent)
        and parent.left < child.left
        and child.right < parent.right
    )


def is_immediate_child_of(child: NodeRecord, parent: NodeRecord) -> bool:
    return is_descendant_of(child, parent) and child.depth == parent.depth + 1


def is_root(record: NodeRecord) -> bool:
    """Forest roots always start at left bound 1."""
    return record.left == ROOT_LEFT


def sibling_order_key(record: NodeRecord) -> tuple[Any, int]:
    """Display order: forest first (missing forest sorts first), then left bound."""
    return (collation_key(record.forest), record.left)


def immediate_children(parent: NodeRecord, records: list[NodeRecord]) -> list[NodeRecord]:
    """Scan ``records`` for the direct children of ``parent``."""
    return [r for r in records if is_immediate_child_of(r, parent)]


def immediate_child_count(parent: NodeRecord, records: list[NodeRecord]) -> int:
    """Count direct children by scanning, independent of the bound width.

    On a gap-free table ``child_count`` > 0 exactly when this is > 0;
    ``child_count`` itself counts the whole subtree.
    """
    return len(immediate_children(parent, records))
