"""Tests for ParentResolver."""

from __future__ import annotations

import logging

import pytest

from nestgrid.core.errors import DataIntegrityError, OrderingViolationError
from nestgrid.core.records import NodeRecord
from nestgrid.hierarchy import codec
from nestgrid.hierarchy.resolver import ParentResolver, resolve_parents
from nestgrid.hierarchy.sorter import ForestSorter


def _node(node_id, left, right, depth, forest=1) -> NodeRecord:
    return NodeRecord(id=node_id, left=left, right=right, depth=depth, forest=forest)


# ===================================================================
# Basic resolution
# ===================================================================


class TestResolveBasic:
    """Tests for single-forest batches."""

    def test_empty_batch(self):
        resolution = ParentResolver().resolve([])
        assert resolution.parents == {}
        assert resolution.is_consistent

    def test_scenario_parents(self, single_tree):
        resolution = resolve_parents(single_tree)
        assert resolution.parents == {1: None, 2: 1, 3: 2, 4: 1}
        assert resolution.is_consistent

    def test_deep_chain(self, forest_one):
        resolution = resolve_parents(forest_one)
        assert resolution.parents == {1: None, 2: 1, 3: 2, 4: 2, 5: 1, 6: 5, 7: 6}

    def test_parent_contains_child_one_level_up(self, forest_one):
        by_id = {r.id: r for r in forest_one}
        resolution = resolve_parents(forest_one)
        for node_id, parent_id in resolution.parents.items():
            if parent_id is None:
                continue
            assert codec.is_descendant_of(by_id[node_id], by_id[parent_id])
            assert by_id[parent_id].depth == by_id[node_id].depth - 1

    def test_batch_without_root(self, forest_one):
        """Roots not fetched: top-level records get no parent."""
        resolution = resolve_parents(forest_one[1:])
        assert resolution.parents[2] is None
        assert resolution.parents[5] is None
        assert resolution.parents[7] == 6

    def test_base_parent(self, forest_one):
        children = [forest_one[1], forest_one[4]]
        resolution = resolve_parents(children, base_parent=1)
        assert resolution.parents == {2: 1, 5: 1}

    def test_push_streams(self, single_tree):
        resolver = ParentResolver()
        assert [resolver.push(r) for r in single_tree] == [None, 1, 2, 1]


# ===================================================================
# Forests
# ===================================================================


class TestResolveForests:
    """Tests for batches spanning several forests."""

    def test_no_cross_forest_parents(self, two_forests):
        batch = ForestSorter().sort(two_forests)
        resolution = resolve_parents(batch)
        forest_of = {r.id: r.forest for r in two_forests}
        for node_id, parent_id in resolution.parents.items():
            if parent_id is not None:
                assert forest_of[parent_id] == forest_of[node_id]
        assert resolution.parents[10] is None
        assert resolution.parents[11] == 10
        assert resolution.is_consistent

    def test_forest_boundary_resets_stack(self):
        # Forest 2 starts at depth 1 (root not fetched); without a reset the
        # open depth-0 root of forest 1 would adopt it.
        batch = [_node(1, 1, 4, 0), _node(2, 2, 3, 1), _node(11, 2, 3, 1, forest=2)]
        resolution = resolve_parents(batch)
        assert resolution.parents[11] is None


# ===================================================================
# Inconsistent input
# ===================================================================


class TestResolveInconsistent:
    """Tolerant and strict handling of malformed depth sequences."""

    def test_depth_jump_tolerated(self, caplog):
        batch = [_node(1, 1, 8, 0), _node(2, 2, 7, 1), _node(3, 3, 4, 3)]
        with caplog.at_level(logging.WARNING):
            resolution = resolve_parents(batch)
        assert resolution.parents[3] == 2
        assert len(resolution.anomalies) == 1
        assert resolution.anomalies[0].node_id == 3
        assert "depth jumps" in resolution.anomalies[0].reason
        assert "Inconsistent record 3" in caplog.text

    def test_interval_outside_parent_tolerated(self):
        batch = [_node(1, 1, 4, 0), _node(2, 5, 6, 1)]
        resolution = resolve_parents(batch)
        assert resolution.parents[2] == 1
        assert not resolution.is_consistent

    def test_unsorted_batch_tolerated(self):
        batch = [_node(1, 1, 6, 0), _node(3, 4, 5, 1), _node(2, 2, 3, 1)]
        resolution = resolve_parents(batch)
        assert set(resolution.parents) == {1, 2, 3}
        assert any("does not follow" in a.reason for a in resolution.anomalies)

    def test_strict_depth_jump_raises(self):
        batch = [_node(1, 1, 8, 0), _node(2, 2, 7, 1), _node(3, 3, 4, 3)]
        with pytest.raises(DataIntegrityError) as excinfo:
            resolve_parents(batch, strict=True)
        assert excinfo.value.node_id == 3

    def test_strict_unsorted_raises(self):
        batch = [_node(1, 1, 6, 0), _node(3, 4, 5, 1), _node(2, 2, 3, 1)]
        with pytest.raises(OrderingViolationError):
            resolve_parents(batch, strict=True)


# ===================================================================
# Pass isolation
# ===================================================================


class TestResolverLifecycle:
    """Each resolve() is an independent pass."""

    def test_resolve_resets_state(self, forest_one, forest_two):
        resolver = ParentResolver()
        resolver.resolve(forest_one)
        resolution = resolver.resolve(forest_two[1:])
        assert resolution.parents == {11: None, 12: None}

    def test_re_resolving_is_idempotent(self, forest_one):
        first = resolve_parents(forest_one)
        second = resolve_parents(forest_one)
        assert first.parents == second.parents

    def test_reset_clears_stack(self, forest_one):
        resolver = ParentResolver()
        resolver.push(forest_one[0])
        resolver.reset()
        assert resolver.push(forest_one[1]) is None
        assert resolver.resolution.parents == {2: None}
