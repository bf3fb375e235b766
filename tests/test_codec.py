"""Tests for nested-set bounds arithmetic and the encoding registry."""

from __future__ import annotations

import pytest

from nestgrid.core.errors import DataIntegrityError
from nestgrid.core.records import AttributeMap, Field, NodeRecord
from nestgrid.hierarchy import codec
from nestgrid.hierarchy.encoding import EncodingRegistry, NestedSetEncoding, TreeEncoding
from nestgrid.query.predicates import Operator


def _node(node_id, left, right, depth, forest=1) -> NodeRecord:
    return NodeRecord(id=node_id, left=left, right=right, depth=depth, forest=forest)


# ===================================================================
# child_count
# ===================================================================


class TestChildCount:
    """Tests for the bound-width child count."""

    def test_leaf(self):
        assert codec.child_count(3, 4) == 0

    def test_subtree_size(self):
        assert codec.child_count(1, 14) == 6

    def test_right_not_greater_raises(self):
        with pytest.raises(DataIntegrityError) as excinfo:
            codec.child_count(5, 5, node_id="n5")
        assert excinfo.value.node_id == "n5"
        assert "n5" in str(excinfo.value)

    def test_inverted_bounds_raise(self):
        with pytest.raises(DataIntegrityError):
            codec.child_count(9, 2)

    def test_odd_width_raises(self):
        with pytest.raises(DataIntegrityError, match="odd"):
            codec.child_count(1, 5, node_id=7)

    def test_matches_scan_on_gap_free_tree(self, forest_one):
        """Non-zero width exactly when a direct child exists."""
        for record in forest_one:
            width = codec.child_count(record.left, record.right)
            scanned = codec.immediate_child_count(record, forest_one)
            assert (width > 0) == (scanned > 0)
            assert width >= scanned

    def test_scenario_direct_children(self, single_tree):
        by_id = {r.id: r for r in single_tree}
        assert codec.immediate_child_count(by_id[1], single_tree) == 2
        assert codec.immediate_child_count(by_id[2], single_tree) == 1
        assert codec.immediate_child_count(by_id[4], single_tree) == 0


class TestValidateBounds:
    """Tests for whole-record validation."""

    def test_valid_record(self):
        codec.validate_bounds(_node(1, 1, 2, 0))

    def test_negative_depth(self):
        with pytest.raises(DataIntegrityError, match="negative depth"):
            codec.validate_bounds(_node(1, 1, 2, -1))

    def test_corrupt_bounds(self):
        with pytest.raises(DataIntegrityError):
            codec.validate_bounds(_node("x", 4, 3, 0))


# ===================================================================
# Containment
# ===================================================================


class TestContainment:
    """Tests for ancestor/descendant predicates."""

    def test_descendant(self, forest_one):
        a, _, c = forest_one[0], forest_one[1], forest_one[2]
        assert codec.is_descendant_of(c, a)
        assert not codec.is_descendant_of(a, c)

    def test_not_descendant_of_self(self, forest_one):
        assert not codec.is_descendant_of(forest_one[0], forest_one[0])

    def test_siblings_are_disjoint(self, forest_one):
        b, e = forest_one[1], forest_one[4]
        assert not codec.is_descendant_of(b, e)
        assert not codec.is_descendant_of(e, b)

    def test_other_forest_never_contains(self, forest_one, forest_two):
        # H [1,6] would contain C [3,4] if forests were ignored.
        assert not codec.is_descendant_of(forest_one[2], forest_two[0])

    def test_immediate_child(self, forest_one):
        a, b, c = forest_one[0], forest_one[1], forest_one[2]
        assert codec.is_immediate_child_of(b, a)
        assert codec.is_immediate_child_of(c, b)
        assert not codec.is_immediate_child_of(c, a)

    def test_is_root(self, forest_one, forest_two):
        assert codec.is_root(forest_one[0])
        assert codec.is_root(forest_two[0])
        assert not codec.is_root(forest_one[1])

    def test_sibling_order_key(self):
        assert codec.sibling_order_key(_node(1, 5, 6, 1, forest=3)) == ((1, "", 3), 5)
        assert codec.sibling_order_key(_node(1, 5, 6, 1, forest=None)) == ((0, "", 0), 5)

    def test_mixed_forest_types_sort(self):
        records = [
            _node("b2", 2, 3, 1, forest="b"),
            _node("n1", 1, 4, 0, forest=None),
            _node("b1", 1, 4, 0, forest="b"),
            _node("i1", 1, 2, 0, forest=2),
        ]
        ordered = sorted(records, key=codec.sibling_order_key)
        assert [r.id for r in ordered] == ["n1", "i1", "b1", "b2"]


# ===================================================================
# Encoding
# ===================================================================


class TestEncodingRegistry:
    """Tests for encoding registration and lookup."""

    def test_nested_set_registered(self):
        assert "nested_set" in EncodingRegistry.available_encodings()

    def test_get_encoding(self):
        attrs = AttributeMap(forest_attribute=None)
        encoding = EncodingRegistry.get_encoding("nested_set", attrs)
        assert isinstance(encoding, NestedSetEncoding)
        assert isinstance(encoding, TreeEncoding)
        assert encoding.attributes is attrs

    def test_unknown_encoding(self):
        with pytest.raises(ValueError, match="Unknown encoding"):
            EncodingRegistry.get_encoding("adjacency")


class TestNestedSetPredicates:
    """Tests for the predicates built by NestedSetEncoding."""

    def test_children_predicate(self, forest_one):
        encoding = NestedSetEncoding()
        pred = encoding.children_predicate(forest_one[1])
        conditions = pred.clauses[0].conditions
        assert (Field.LEFT, Operator.GT, 2) in [(c.field, c.operator, c.value) for c in conditions]
        assert (Field.DEPTH, Operator.EQ, 2) in [(c.field, c.operator, c.value) for c in conditions]
        assert (Field.FOREST, Operator.EQ, 1) in [(c.field, c.operator, c.value) for c in conditions]

    def test_children_predicate_without_forests(self, single_tree):
        encoding = NestedSetEncoding(AttributeMap(forest_attribute=None))
        pred = encoding.children_predicate(single_tree[0])
        assert all(c.field != Field.FOREST for c in pred.clauses[0].conditions)

    def test_children_predicate_selects_only_children(self, forest_one, forest_two):
        encoding = NestedSetEncoding()
        pred = encoding.children_predicate(forest_one[0])
        matched = [r.id for r in forest_one + forest_two if pred.matches(r)]
        assert matched == [2, 5]

    def test_ancestors_predicate(self, forest_one, forest_two):
        encoding = NestedSetEncoding()
        target = forest_one[6]  # G
        pred = encoding.ancestors_predicate(target)
        matched = [r.id for r in forest_one + forest_two if pred.matches(r)]
        assert matched == [1, 5, 6]

    def test_roots_predicate_all_forests(self, forest_one, forest_two):
        pred = NestedSetEncoding().roots_predicate()
        assert [r.id for r in forest_one + forest_two if pred.matches(r)] == [1, 10]

    def test_roots_predicate_one_forest(self, forest_one, forest_two):
        pred = NestedSetEncoding().roots_predicate(forest=2)
        assert [r.id for r in forest_one + forest_two if pred.matches(r)] == [10]
