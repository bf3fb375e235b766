"""Range-query predicates over nested-set records.

Predicates are plain data: a disjunction of clauses, each clause a
conjunction of field conditions. Storage adapters either evaluate them
in memory (``Predicate.matches``) or compile them to SQL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nestgrid.core.records import Field, NodeRecord


class Operator(str, Enum):
    """Comparison operators for a single condition.

    Attributes:
        EQ: Equal.
        NE: Not equal.
        LT: Strictly less than.
        GT: Strictly greater than.
        IN: Member of a collection of values.
    """

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    GT = "gt"
    IN = "in"


@dataclass(frozen=True)
class Condition:
    """A single field condition.

    Args:
        field: Record field to compare.
        operator: Comparison operator.
        value: Right-hand side. A tuple for IN.
    """

    field: Field
    operator: Operator
    value: Any = None

    def matches(self, record: NodeRecord) -> bool:
        actual = record.get(self.field)
        op = self.operator
        if op == Operator.EQ:
            return actual == self.value
        if op == Operator.NE:
            return actual != self.value
        if op == Operator.IN:
            return actual in self.value
        if actual is None:
            return False
        if op == Operator.LT:
            return actual < self.value
        if op == Operator.GT:
            return actual > self.value
        raise ValueError(f"Unknown operator: {op}")

    def __str__(self) -> str:
        return f"{self.field.value} {self.operator.value} {self.value!r}"


@dataclass(frozen=True)
class Clause:
    """Conditions joined with AND. An empty clause matches every record."""

    conditions: tuple[Condition, ...] = ()

    def matches(self, record: NodeRecord) -> bool:
        return all(c.matches(record) for c in self.conditions)

    def and_(self, record_field: Field, operator: Operator, value: Any = None) -> Clause:
        """Return a new clause with one more condition."""
        return Clause(self.conditions + (Condition(record_field, operator, value),))


@dataclass(frozen=True)
class Predicate:
    """
    Clauses joined with OR.

    ``Predicate.everything()`` holds one empty clause; ``Predicate.nothing()``
    holds no clause at all and never matches, which is how planners report
    a node that no longer exists.

    Example::

        pred = Predicate.where(Field.LEFT, Operator.GT, 1).and_(
            Field.RIGHT, Operator.LT, 10
        )
        rows = store.fetch(pred)
    """

    clauses: tuple[Clause, ...] = ()

    @classmethod
    def everything(cls) -> Predicate:
        return cls((Clause(),))

    @classmethod
    def nothing(cls) -> Predicate:
        return cls(())

    @classmethod
    def where(cls, record_field: Field, operator: Operator, value: Any = None) -> Predicate:
        """Start a single-clause predicate."""
        return cls((Clause((Condition(record_field, operator, value),)),))

    @classmethod
    def any_of(cls, predicates: list[Predicate]) -> Predicate:
        """OR together several predicates."""
        clauses: list[Clause] = []
        for pred in predicates:
            clauses.extend(pred.clauses)
        return cls(tuple(clauses))

    @property
    def is_empty(self) -> bool:
        """True when the predicate can never match."""
        return not self.clauses

    def and_(self, record_field: Field, operator: Operator, value: Any = None) -> Predicate:
        """AND a condition into every clause."""
        return Predicate(tuple(c.and_(record_field, operator, value) for c in self.clauses))

    def matches(self, record: NodeRecord) -> bool:
        return any(c.matches(record) for c in self.clauses)

    def __str__(self) -> str:
        if not self.clauses:
            return "<nothing>"
        parts = []
        for clause in self.clauses:
            if not clause.conditions:
                parts.append("<everything>")
            else:
                parts.append(" AND ".join(str(c) for c in clause.conditions))
        return " OR ".join(f"({p})" for p in parts)


@dataclass(frozen=True)
class OrderBy:
    """One sort key of a fetch."""

    field: Field
    ascending: bool = True


DISPLAY_ORDER: tuple[OrderBy, ...] = (OrderBy(Field.FOREST), OrderBy(Field.LEFT))


@dataclass
class FetchLog:
    """Counts the fetches made through one ``CountingNodeStore``.

    Used to count round-trips; a deep link should cost O(depth) fetches.
    Predicates are only kept when ``keep_predicates`` is set.
    """

    keep_predicates: bool = False
    count: int = 0
    predicates: list[Predicate] = field(default_factory=list)

    def record(self, predicate: Predicate) -> None:
        self.count += 1
        if self.keep_predicates:
            self.predicates.append(predicate)

    def clear(self) -> None:
        self.count = 0
        self.predicates.clear()
