"""Lazy expansion: fetch exactly one level of children on demand.

"No parent" is not a stored row, so the first level of the grid depends
on the display policy: with roots shown it is the roots themselves; with
roots hidden it is the children of every stored root, which means the
roots have to be looked up first to learn their bounds.
"""

from __future__ import annotations

import logging
from typing import Any

from nestgrid.config import DisplayPolicy
from nestgrid.core.records import BOUNDS_FIELDS, NodeRecord
from nestgrid.hierarchy.encoding import NestedSetEncoding, TreeEncoding
from nestgrid.query.predicates import DISPLAY_ORDER, Predicate
from nestgrid.query.store import NodeStore

logger = logging.getLogger(__name__)


class LazyExpansionPlanner:
    """Builds the predicate that selects one node's immediate children.

    Args:
        store: Store used for the bounds lookup of the expanded node.
        encoding: Hierarchy encoding of the store.
        display: Display policy (whether roots are rendered).

    Example::

        planner = LazyExpansionPlanner(store, display=DisplayPolicy(show_roots=False))
        first_level = planner.load_children(None)
        below = planner.load_children(first_level[0].id)
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

    def children_predicate(self, node_id: Any = None, forest: Any = None) -> Predicate:
        """Predicate for the children of ``node_id`` (None = top level).

        Args:
            node_id: Expanded node, or None for the first level.
            forest: Restrict the first level to one forest. Ignored for a
                concrete node, whose own forest applies.

        Returns:
            The predicate, or ``Predicate.nothing()`` when the node (or,
            with roots hidden, every root) no longer exists.
        """
        if node_id is None:
            if self.display.show_roots:
                return self.encoding.roots_predicate(forest)
            return self._root_children_predicate(forest)

        node = self.locate(node_id)
        if node is None:
            return Predicate.nothing()
        return self.encoding.children_predicate(node)

    def locate(self, node_id: Any) -> NodeRecord | None:
        """Single lookup of a node's bounds; None if it no longer exists."""
        node = self.store.get(node_id, select=BOUNDS_FIELDS)
        if node is None:
            logger.debug("Node %r not found; nothing to expand", node_id)
        return node

    def fetch_children(self, node: NodeRecord) -> list[NodeRecord]:
        """Fetch the children of an already located node in display order."""
        return self.store.fetch(self.encoding.children_predicate(node), order_by=DISPLAY_ORDER)

    def _root_children_predicate(self, forest: Any) -> Predicate:
        roots = self.store.fetch(
            self.encoding.roots_predicate(forest),
            order_by=DISPLAY_ORDER,
            select=BOUNDS_FIELDS,
        )
        if not roots:
            logger.debug("No stored root for forest %r", forest)
            return Predicate.nothing()
        return Predicate.any_of([self.encoding.children_predicate(r) for r in roots])

    def load_children(self, node_id: Any = None, forest: Any = None) -> list[NodeRecord]:
        """Fetch the children of ``node_id`` in display order."""
        predicate = self.children_predicate(node_id, forest)
        return self.store.fetch(predicate, order_by=DISPLAY_ORDER)
