"""
Tree encoding capability and registry.

The resolver and the planners are written against ``TreeEncoding`` so a
different hierarchy encoding can be plugged in without touching them.
Encodings register themselves with the EncodingRegistry for selection by
name from configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from nestgrid.core.records import AttributeMap, Field, NodeRecord
from nestgrid.hierarchy import codec
from nestgrid.query.predicates import Operator, Predicate


class TreeEncoding(ABC):
    """
    Abstract base class for hierarchy encodings.

    An encoding answers structural questions about single records and
    builds the predicates needed to fetch related records.
    """

    ENCODING_NAME: ClassVar[str] = "base"

    def __init__(self, attributes: AttributeMap | None = None) -> None:
        self.attributes = attributes or AttributeMap()

    @property
    def uses_forests(self) -> bool:
        return self.attributes.uses_forests

    @abstractmethod
    def validate(self, record: NodeRecord) -> None:
        """Raise DataIntegrityError if ``record`` is malformed."""

    @abstractmethod
    def child_count(self, record: NodeRecord) -> int:
        """Number of nodes under ``record`` as reported to the renderer."""

    @abstractmethod
    def is_immediate_child_of(self, child: NodeRecord, parent: NodeRecord) -> bool:
        """True if ``child`` hangs directly under ``parent``."""

    @abstractmethod
    def is_descendant_of(self, child: NodeRecord, parent: NodeRecord) -> bool:
        """True if ``child`` is anywhere under ``parent``."""

    @abstractmethod
    def is_root(self, record: NodeRecord) -> bool:
        """True if ``record`` is the root of its forest."""

    @abstractmethod
    def roots_predicate(self, forest: Any = None) -> Predicate:
        """Select forest roots, optionally a single forest's."""

    @abstractmethod
    def children_predicate(self, parent: NodeRecord) -> Predicate:
        """Select the immediate children of ``parent``."""

    @abstractmethod
    def ancestors_predicate(self, target: NodeRecord) -> Predicate:
        """Select every ancestor of ``target`` in one query."""

    def sort_key(self, record: NodeRecord) -> tuple[Any, ...]:
        return codec.sibling_order_key(record)


class EncodingRegistry:
    """
    Registry of available tree encodings.

    Use this to select encodings by name.
    """

    _encodings: ClassVar[dict[str, type[TreeEncoding]]] = {}

    @classmethod
    def register(cls, encoding_class: type[TreeEncoding]) -> type[TreeEncoding]:
        """
        Register an encoding class. Can be used as a decorator.

        @EncodingRegistry.register
        class MyEncoding(TreeEncoding):
            ...
        """
        cls._encodings[encoding_class.ENCODING_NAME] = encoding_class
        return encoding_class

    @classmethod
    def available_encodings(cls) -> list[str]:
        """Get list of available encoding names."""
        return list(cls._encodings.keys())

    @classmethod
    def get_encoding(cls, name: str, attributes: AttributeMap | None = None) -> TreeEncoding:
        """
        Instantiate an encoding by name.

        Raises:
            ValueError: If encoding not found
        """
        encoding_class = cls._encodings.get(name)
        if encoding_class is None:
            available = ", ".join(cls.available_encodings())
            raise ValueError(f"Unknown encoding: {name}. Available: {available}")
        return encoding_class(attributes)


@EncodingRegistry.register
class NestedSetEncoding(TreeEncoding):
    """Left/right/depth nested-set encoding."""

    ENCODING_NAME: ClassVar[str] = "nested_set"

    def validate(self, record: NodeRecord) -> None:
        codec.validate_bounds(record)

    def child_count(self, record: NodeRecord) -> int:
        return codec.child_count(record.left, record.right, record.id)

    def is_immediate_child_of(self, child: NodeRecord, parent: NodeRecord) -> bool:
        return codec.is_immediate_child_of(child, parent)

    def is_descendant_of(self, child: NodeRecord, parent: NodeRecord) -> bool:
        return codec.is_descendant_of(child, parent)

    def is_root(self, record: NodeRecord) -> bool:
        return codec.is_root(record)

    def _in_forest(self, predicate: Predicate, forest: Any) -> Predicate:
        if not self.uses_forests:
            return predicate
        return predicate.and_(Field.FOREST, Operator.EQ, forest)

    def roots_predicate(self, forest: Any = None) -> Predicate:
        pred = Predicate.where(Field.LEFT, Operator.EQ, codec.ROOT_LEFT)
        if forest is not None:
            pred = self._in_forest(pred, forest)
        return pred

    def children_predicate(self, parent: NodeRecord) -> Predicate:
        pred = (
            Predicate.where(Field.LEFT, Operator.GT, parent.left)
            .and_(Field.RIGHT, Operator.LT, parent.right)
            .and_(Field.DEPTH, Operator.EQ, parent.depth + 1)
        )
        return self._in_forest(pred, parent.forest)

    def ancestors_predicate(self, target: NodeRecord) -> Predicate:
        pred = Predicate.where(Field.LEFT, Operator.LT, target.left).and_(
            Field.RIGHT, Operator.GT, target.right
        )
        return self._in_forest(pred, target.forest)
