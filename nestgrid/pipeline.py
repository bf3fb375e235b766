"""Tree-grid rendering pipeline.

Orchestrates one rendering pass: (fetch) -> validate -> sort -> resolve
parents -> prune hidden roots -> rows. Three entry points cover the ways
a grid is filled: the first level of a lazily loaded grid, the children
of an expanded node, and a deep link to a specific node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from nestgrid.config import GridConfig
from nestgrid.core.records import NodeRecord
from nestgrid.hierarchy.encoding import EncodingRegistry
from nestgrid.hierarchy.resolver import ParentResolver, ResolverAnomaly
from nestgrid.hierarchy.sorter import ForestSorter, RecordBatch
from nestgrid.planning.lazy import LazyExpansionPlanner
from nestgrid.planning.path import PathReconstructor
from nestgrid.query.store import CountingNodeStore, NodeStore

logger = logging.getLogger(__name__)


@dataclass
class GridRow:
    """One rendered row.

    Args:
        record: Source record.
        parent_id: Resolved parent (None at the top of the grid).
        child_count: Subtree size derived from the bounds.
        has_lazy_children: Children exist but were not loaded in this pass.
        expanded: Row is pre-opened (deep links).
    """

    record: NodeRecord
    parent_id: Any = None
    child_count: int = 0
    has_lazy_children: bool = False
    expanded: bool = False

    @property
    def id(self) -> Any:
        return self.record.id

    @property
    def depth(self) -> int:
        return self.record.depth

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.record.id,
            "parent_id": self.parent_id,
            "depth": self.record.depth,
            "forest": self.record.forest,
            "left": self.record.left,
            "right": self.record.right,
            "child_count": self.child_count,
            "has_lazy_children": self.has_lazy_children,
            "expanded": self.expanded,
            "data": self.record.data,
        }


@dataclass
class GridResult:
    """Result of one rendering pass.

    Args:
        rows: Rows in display order.
        expanded_ids: Rows to pre-open.
        anomalies: Inconsistencies the resolver stepped over.
        fetch_count: Store round-trips spent by the pass.
        found: False when a deep-link target does not exist.
    """

    rows: list[GridRow] = field(default_factory=list)
    expanded_ids: list[Any] = field(default_factory=list)
    anomalies: list[ResolverAnomaly] = field(default_factory=list)
    fetch_count: int = 0
    found: bool = True

    @property
    def parents(self) -> dict[Any, Any]:
        return {row.id: row.parent_id for row in self.rows}

    @property
    def ids(self) -> list[Any]:
        return [row.id for row in self.rows]

    @property
    def lazy_children(self) -> dict[Any, bool]:
        """Row id -> whether its children are left for a later fetch."""
        return {row.id: row.has_lazy_children for row in self.rows}

    def row(self, node_id: Any) -> GridRow | None:
        for row in self.rows:
            if row.id == node_id:
                return row
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "rows": [row.to_dict() for row in self.rows],
            "expanded_ids": list(self.expanded_ids),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "fetch_count": self.fetch_count,
        }


class TreeGridPipeline:
    """
    Turns flat nested-set records into grid rows.

    Every call is an independent pass with its own resolver, so one
    pipeline can serve concurrent requests.

    Args:
        store: Queryable store. Optional when only ``render`` is used on
            already-fetched pages.
        config: Pass configuration.

    Example::

        pipeline = TreeGridPipeline(store, GridConfig(display=DisplayPolicy(show_roots=False)))
        first = pipeline.render_page()
        more = pipeline.expand(first.rows[0].id)
        linked = pipeline.deep_link("node-42")
    """

    def __init__(self, store: NodeStore | None = None, config: GridConfig | None = None) -> None:
        self.store = store
        self.config = config or GridConfig()
        attributes = store.attributes if store is not None else self.config.attributes
        self.encoding = EncodingRegistry.get_encoding(self.config.encoding, attributes)
        self.sorter = ForestSorter(self.encoding)

    def _pass_store(self) -> CountingNodeStore:
        """Fresh counting view of the store for one pass."""
        if self.store is None:
            raise ValueError("TreeGridPipeline has no store to plan fetches against")
        return CountingNodeStore(self.store)

    def _planner_for(self, view: CountingNodeStore) -> LazyExpansionPlanner:
        return LazyExpansionPlanner(view, self.encoding, self.config.display)

    def _reconstructor_for(self, view: CountingNodeStore) -> PathReconstructor:
        return PathReconstructor(view, self.encoding, self.config.display)

    def render(
        self,
        records: Iterable[NodeRecord],
        base_parent: Any = None,
        expanded_ids: Iterable[Any] = (),
    ) -> GridResult:
        """Render a batch of fetched records.

        Args:
            records: Records in any order; roots may be included even when
                hidden, they are pruned after parent resolution.
            base_parent: Parent of the batch's top-level records.
            expanded_ids: Rows to mark as pre-opened.

        Raises:
            DataIntegrityError: If any record has corrupt bounds.
        """
        items = list(records)
        expanded_ids = list(expanded_ids)
        for record in items:
            self.encoding.validate(record)

        batch = self.sorter.ensure_sorted(items)
        resolver = ParentResolver(self.encoding, strict=self.config.strict, base_parent=base_parent)
        resolution = resolver.resolve(batch)

        if not self.config.show_roots:
            batch = self.sorter.prune_roots(batch)

        return GridResult(
            rows=self._build_rows(batch, resolution.parents, base_parent, set(expanded_ids)),
            expanded_ids=expanded_ids,
            anomalies=list(resolution.anomalies),
        )

    def _build_rows(
        self,
        batch: RecordBatch,
        parents: dict[Any, Any],
        base_parent: Any,
        expanded: set[Any],
    ) -> list[GridRow]:
        loaded_parents = {parents[r.id] for r in batch}
        rows = []
        for record in batch:
            parent_id = parents[record.id]
            if parent_id is not None and parent_id != base_parent and parent_id not in batch:
                # Parent was a pruned root.
                parent_id = None
            count = self.encoding.child_count(record)
            rows.append(
                GridRow(
                    record=record,
                    parent_id=parent_id,
                    child_count=count,
                    has_lazy_children=count > 0 and record.id not in loaded_parents,
                    expanded=record.id in expanded,
                )
            )
        return rows

    def render_page(self, forest: Any = None) -> GridResult:
        """Fetch and render the first level of the grid."""
        view = self._pass_store()
        records = self._planner_for(view).load_children(None, forest)
        result = self.render(records)
        result.fetch_count = view.fetch_count
        return result

    def expand(self, node_id: Any) -> GridResult:
        """Fetch and render the immediate children of ``node_id``.

        An unknown node yields an empty result.
        """
        view = self._pass_store()
        planner = self._planner_for(view)
        node = planner.locate(node_id)
        if node is None:
            return GridResult(fetch_count=view.fetch_count)

        result = self.render(planner.fetch_children(node), base_parent=node.id)
        result.fetch_count = view.fetch_count
        return result

    def deep_link(self, node_id: Any) -> GridResult:
        """Render the grid opened down to ``node_id``.

        An unknown node yields an empty result with ``found`` set to False.
        """
        view = self._pass_store()
        target = view.get(node_id)
        if target is None:
            logger.info("Deep link target %r not found", node_id)
            return GridResult(fetch_count=view.fetch_count, found=False)

        path = self._reconstructor_for(view).reconstruct(target)
        result = self.render(path.records, expanded_ids=path.expanded_ids)
        result.fetch_count = view.fetch_count
        return result
