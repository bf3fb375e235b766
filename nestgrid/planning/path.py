"""
Deep-link path reconstruction.

To show a target node inside a lazily loaded grid, every ancestor of the
target must be rendered and expanded, together with its siblings at each
level. The ancestors are exactly the records whose interval strictly
contains the target's, so they come back from a single range query; one
more query per ancestor fetches the children it shows when expanded.
The cost is therefore 1 + depth fetches.

With roots hidden the forest root is still fetched: its bounds define the
first visible level. It is left out of the visible chain and of the
expanded set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from nestgrid.config import DisplayPolicy
from nestgrid.core.records import NodeRecord
from nestgrid.hierarchy.encoding import NestedSetEncoding, TreeEncoding
from nestgrid.query.predicates import DISPLAY_ORDER, Predicate
from nestgrid.query.store import CountingNodeStore, NodeStore

logger = logging.getLogger(__name__)


@dataclass
class PathResult:
    """Records needed to render a deep link.

    Attributes:
        target: The deep-linked node.
        ancestors: Visible ancestors, outermost first.
        records: Ancestors (anchors included), their children and the
            target, deduplicated, in display order.
        expanded_ids: Ids of the rows to pre-open.
        fetch_count: Store round-trips spent.
    """

    target: NodeRecord
    ancestors: list[NodeRecord] = field(default_factory=list)
    records: list[NodeRecord] = field(default_factory=list)
    expanded_ids: list[Any] = field(default_factory=list)
    fetch_count: int = 0


class PathReconstructor:
    """Materializes the ancestor chain of a node and its siblings at every level.

    Args:
        store: Store to fetch from.
        encoding: Hierarchy encoding of the store.
        display: Display policy (whether roots are rendered).
    """

    def __init__(
        self,
        store: NodeStore,
        encoding: TreeEncoding | None = None,
        display: DisplayPolicy | None = None,
    ) -> None:
        self.store = store
        self.encoding = encoding or NestedSetEncoding(store.attributes)
        self.display = display or DisplayPolicy()

    def ancestors_predicate(self, target: NodeRecord) -> Predicate:
        """Every node whose interval strictly contains the target's."""
        return self.encoding.ancestors_predicate(target)

    def is_anchor(self, record: NodeRecord) -> bool:
        """True for records fetched only to scope queries (hidden roots)."""
        return not self.display.show_roots and self.encoding.is_root(record)

    def visible_ancestors(self, ancestors: list[NodeRecord]) -> list[NodeRecord]:
        return [a for a in ancestors if not self.is_anchor(a)]

    def children_predicates(self, ancestors: list[NodeRecord]) -> list[Predicate]:
        """One immediate-children predicate per ancestor, anchors included."""
        return [self.encoding.children_predicate(a) for a in ancestors]

    def expanded_ids(self, target: NodeRecord, records: list[NodeRecord]) -> list[Any]:
        """Ids of the records in ``records`` that must be open for ``target`` to show."""
        return [
            r.id
            for r in records
            if self.encoding.is_descendant_of(target, r) and not self.is_anchor(r)
        ]

    def reconstruct(self, target: NodeRecord) -> PathResult:
        """Fetch everything needed to render ``target`` with its full ancestry."""
        store = CountingNodeStore(self.store)
        ancestors = store.fetch(self.ancestors_predicate(target), order_by=DISPLAY_ORDER)

        collected: dict[Any, NodeRecord] = {a.id: a for a in ancestors}
        for predicate in self.children_predicates(ancestors):
            for child in store.fetch(predicate, order_by=DISPLAY_ORDER):
                collected.setdefault(child.id, child)
        collected.setdefault(target.id, target)

        records = sorted(collected.values(), key=self.encoding.sort_key)
        result = PathResult(
            target=target,
            ancestors=self.visible_ancestors(ancestors),
            records=records,
            expanded_ids=self.expanded_ids(target, ancestors),
            fetch_count=store.fetch_count,
        )
        logger.debug(
            "Path to %r: %d ancestor(s), %d record(s), %d fetch(es)",
            target.id,
            len(ancestors),
            len(records),
            result.fetch_count,
        )
        return result
