"""
Pytest configuration and fixtures for nestgrid tests.
"""

from __future__ import annotations

import pytest

from nestgrid.core.records import AttributeMap, NodeRecord
from nestgrid.query.store import MemoryNodeStore, SQLiteNodeStore


def node(node_id, left, right, depth, forest=1, **data) -> NodeRecord:
    """Shorthand record constructor."""
    return NodeRecord(id=node_id, left=left, right=right, depth=depth, forest=forest, data=data)


@pytest.fixture
def forest_one() -> list[NodeRecord]:
    """
    Forest 1::

        A(1)
        |-- B(2)
        |   |-- C(3)
        |   `-- D(4)
        `-- E(5)
            `-- F(6)
                `-- G(7)
    """
    return [
        node(1, 1, 14, 0, name="A"),
        node(2, 2, 7, 1, name="B"),
        node(3, 3, 4, 2, name="C"),
        node(4, 5, 6, 2, name="D"),
        node(5, 8, 13, 1, name="E"),
        node(6, 9, 12, 2, name="F"),
        node(7, 10, 11, 3, name="G"),
    ]


@pytest.fixture
def forest_two() -> list[NodeRecord]:
    """
    Forest 2::

        H(10)
        |-- I(11)
        `-- J(12)
    """
    return [
        node(10, 1, 6, 0, forest=2, name="H"),
        node(11, 2, 3, 1, forest=2, name="I"),
        node(12, 4, 5, 1, forest=2, name="J"),
    ]


@pytest.fixture
def two_forests(forest_one: list[NodeRecord], forest_two: list[NodeRecord]) -> list[NodeRecord]:
    """Both forests, deliberately interleaved (not in display order)."""
    return [
        forest_two[1],
        forest_one[3],
        forest_one[0],
        forest_two[0],
        forest_one[6],
        forest_one[1],
        forest_two[2],
        forest_one[4],
        forest_one[2],
        forest_one[5],
    ]


@pytest.fixture
def single_tree() -> list[NodeRecord]:
    """
    Single tree without a forest column::

        1
        |-- 2
        |   `-- 3
        `-- 4
    """
    return [
        NodeRecord(1, 1, 10, 0),
        NodeRecord(2, 2, 5, 1),
        NodeRecord(3, 3, 4, 2),
        NodeRecord(4, 6, 9, 1),
    ]


@pytest.fixture
def single_tree_attributes() -> AttributeMap:
    return AttributeMap(forest_attribute=None)


@pytest.fixture
def memory_store(two_forests: list[NodeRecord]) -> MemoryNodeStore:
    """In-memory store holding both forests."""
    return MemoryNodeStore(two_forests)


@pytest.fixture
def sqlite_store(two_forests: list[NodeRecord]) -> SQLiteNodeStore:
    """In-memory SQLite store holding both forests."""
    store = SQLiteNodeStore(":memory:")
    store.initialize_schema()
    store.add_records(two_forests)
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, memory_store, sqlite_store):
    """Each store adapter in turn."""
    if request.param == "memory":
        return memory_store
    return sqlite_store
