"""
Flat nested-set records.

A record is one row of a nested-set table: an identifier, the left and
right bounds of its interval, its depth (root = 0) and, when several trees
share the table, the forest it belongs to. Rows come from arbitrary sources
(database rows, dicts, ORM objects); ``AttributeMap`` names the attributes
that carry each field.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Field(str, Enum):
    """Logical record fields that predicates and projections refer to."""

    ID = "id"
    LEFT = "left"
    RIGHT = "right"
    DEPTH = "depth"
    FOREST = "forest"


BOUNDS_FIELDS: tuple[Field, ...] = (Field.LEFT, Field.RIGHT, Field.DEPTH, Field.FOREST)


def collation_key(value: Any) -> tuple[int, str, Any]:
    """Sort key that orders mixed-type column values the way SQLite does.

    NULL first, then numbers, then everything else grouped by type.
    """
    if value is None:
        return (0, "", 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, "", value)
    return (2, type(value).__name__, value)


@dataclass(frozen=True)
class AttributeMap:
    """Names of the storage attributes backing each record field.

    Attributes:
        id_attribute: Primary key attribute.
        left_attribute: Left bound attribute.
        right_attribute: Right bound attribute.
        depth_attribute: Depth attribute.
        forest_attribute: Forest (tree) attribute, or None when the table
            holds a single tree.
    """

    id_attribute: str = "id"
    left_attribute: str = "lft"
    right_attribute: str = "rgt"
    depth_attribute: str = "depth"
    forest_attribute: str | None = "tree"

    @property
    def uses_forests(self) -> bool:
        return self.forest_attribute is not None

    def attribute_for(self, record_field: Field) -> str | None:
        """Return the storage attribute for a logical field."""
        return {
            Field.ID: self.id_attribute,
            Field.LEFT: self.left_attribute,
            Field.RIGHT: self.right_attribute,
            Field.DEPTH: self.depth_attribute,
            Field.FOREST: self.forest_attribute,
        }[record_field]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id_attribute": self.id_attribute,
            "left_attribute": self.left_attribute,
            "right_attribute": self.right_attribute,
            "depth_attribute": self.depth_attribute,
            "forest_attribute": self.forest_attribute,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttributeMap:
        return cls(
            id_attribute=data.get("id_attribute", "id"),
            left_attribute=data.get("left_attribute", "lft"),
            right_attribute=data.get("right_attribute", "rgt"),
            depth_attribute=data.get("depth_attribute", "depth"),
            forest_attribute=data.get("forest_attribute", "tree"),
        )


def _read(row: Any, name: str, default: Any = None) -> Any:
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


@dataclass(frozen=True)
class NodeRecord:
    """
    One node of a nested-set table.

    Records are immutable; the core never writes back to storage.
    ``data`` holds whatever else the row carried, for the renderer.
    """

    id: Any
    left: int
    right: int
    depth: int
    forest: Any = None
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def get(self, record_field: Field) -> Any:
        """Return the value of a logical field."""
        if record_field == Field.ID:
            return self.id
        if record_field == Field.LEFT:
            return self.left
        if record_field == Field.RIGHT:
            return self.right
        if record_field == Field.DEPTH:
            return self.depth
        return self.forest

    @property
    def interval(self) -> tuple[int, int]:
        return (self.left, self.right)

    @classmethod
    def from_row(
        cls,
        row: Any,
        attributes: AttributeMap | None = None,
        include_data: bool = True,
    ) -> NodeRecord:
        """
        Build a record from a mapping or an object with named attributes.

        Args:
            row: Source row (dict, sqlite3.Row, ORM instance, ...).
            attributes: Attribute names to read. Defaults to AttributeMap().
            include_data: Copy the remaining mapping keys into ``data``.
        """
        attrs = attributes or AttributeMap()
        forest = None
        if attrs.forest_attribute is not None:
            forest = _read(row, attrs.forest_attribute)

        data: dict[str, Any] = {}
        if include_data and isinstance(row, Mapping):
            known = {
                attrs.id_attribute,
                attrs.left_attribute,
                attrs.right_attribute,
                attrs.depth_attribute,
                attrs.forest_attribute,
            }
            data = {k: v for k, v in row.items() if k not in known}

        return cls(
            id=_read(row, attrs.id_attribute),
            left=int(_read(row, attrs.left_attribute)),
            right=int(_read(row, attrs.right_attribute)),
            depth=int(_read(row, attrs.depth_attribute)),
            forest=forest,
            data=data,
        )

    def to_dict(self, attributes: AttributeMap | None = None) -> dict[str, Any]:
        """Serialize back to a row keyed by storage attribute names."""
        attrs = attributes or AttributeMap()
        result: dict[str, Any] = dict(self.data)
        result[attrs.id_attribute] = self.id
        result[attrs.left_attribute] = self.left
        result[attrs.right_attribute] = self.right
        result[attrs.depth_attribute] = self.depth
        if attrs.forest_attribute is not None:
            result[attrs.forest_attribute] = self.forest
        return result

    def __repr__(self) -> str:
        return (
            f"<NodeRecord {self.id!r} [{self.left},{self.right}] "
            f"depth={self.depth} forest={self.forest!r}>"
        )
