"""Queryable node stores.

The core only needs ``fetch(predicate, order_by, select)``. Two adapters
are provided: an in-memory store that evaluates predicates in Python, and
a SQLite store that compiles them to parameterised SQL.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from nestgrid.core.errors import NodeStoreError
from nestgrid.core.records import AttributeMap, Field, NodeRecord, collation_key
from nestgrid.query.predicates import (
    DISPLAY_ORDER,
    Clause,
    Condition,
    FetchLog,
    Operator,
    OrderBy,
    Predicate,
)

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _project(record: NodeRecord, select: Iterable[Field] | None) -> NodeRecord:
    """Drop everything a projection did not ask for."""
    if select is None:
        return record
    wanted = set(select)
    return NodeRecord(
        id=record.id,
        left=record.left if Field.LEFT in wanted else 0,
        right=record.right if Field.RIGHT in wanted else 0,
        depth=record.depth if Field.DEPTH in wanted else 0,
        forest=record.forest if Field.FOREST in wanted else None,
    )


class NodeStore(ABC):
    """Abstract interface for a store of nested-set records.

    Implementations must evaluate ``Predicate`` objects built from
    equality, inequality, range and membership conditions over the
    logical record fields.

    Args:
        attributes: Attribute names of the underlying table.
    """

    def __init__(self, attributes: AttributeMap | None = None) -> None:
        self.attributes = attributes or AttributeMap()

    @abstractmethod
    def _fetch(
        self,
        predicate: Predicate,
        order_by: tuple[OrderBy, ...],
        select: tuple[Field, ...] | None,
    ) -> list[NodeRecord]:
        """Run one query against the backend."""

    def fetch(
        self,
        predicate: Predicate,
        order_by: Iterable[OrderBy] = (),
        select: Iterable[Field] | None = None,
    ) -> list[NodeRecord]:
        """Return records matching ``predicate``.

        Args:
            predicate: Filter to apply. ``Predicate.nothing()`` returns an
                empty list without touching the backend.
            order_by: Sort keys, applied in order.
            select: Fields to materialise. None loads every field and the
                payload; otherwise unselected bounds read as 0 and the
                payload is empty.

        Returns:
            Matching records.
        """
        if predicate.is_empty:
            return []
        keys = tuple(order_by)
        fields = tuple(select) if select is not None else None
        records = self._fetch(predicate, keys, fields)
        logger.debug("fetch %s -> %d record(s)", predicate, len(records))
        return records

    def get(self, node_id: Any, select: Iterable[Field] | None = None) -> NodeRecord | None:
        """Fetch a single record by identifier, or None if it does not exist."""
        rows = self.fetch(Predicate.where(Field.ID, Operator.EQ, node_id), select=select)
        return rows[0] if rows else None


class CountingNodeStore(NodeStore):
    """View of another store that counts the fetches made through it.

    Rendering passes create one view each, so concurrent passes over the
    same store never see each other's round-trips.

    Args:
        inner: Store that answers the fetches.
        keep_predicates: Also keep every fetched predicate in the log.
    """

    def __init__(self, inner: NodeStore, keep_predicates: bool = False) -> None:
        super().__init__(inner.attributes)
        self.inner = inner
        self.fetch_log = FetchLog(keep_predicates=keep_predicates)

    def _fetch(
        self,
        predicate: Predicate,
        order_by: tuple[OrderBy, ...],
        select: tuple[Field, ...] | None,
    ) -> list[NodeRecord]:
        return self.inner.fetch(predicate, order_by, select)

    def fetch(
        self,
        predicate: Predicate,
        order_by: Iterable[OrderBy] = (),
        select: Iterable[Field] | None = None,
    ) -> list[NodeRecord]:
        if predicate.is_empty:
            return []
        self.fetch_log.record(predicate)
        return self._fetch(predicate, tuple(order_by), tuple(select) if select is not None else None)

    @property
    def fetch_count(self) -> int:
        return self.fetch_log.count


class MemoryNodeStore(NodeStore):
    """
    Store backed by a Python list.

    Useful for already-fetched pages and for tests.

    Example::

        store = MemoryNodeStore([NodeRecord(1, 1, 4, 0), NodeRecord(2, 2, 3, 1)])
        store.fetch(Predicate.where(Field.DEPTH, Operator.EQ, 1))
    """

    def __init__(
        self,
        records: Iterable[NodeRecord] = (),
        attributes: AttributeMap | None = None,
    ) -> None:
        super().__init__(attributes)
        self._records: list[NodeRecord] = []
        self._ids: set[Any] = set()
        self.add_records(records)

    def add_records(self, records: Iterable[NodeRecord]) -> None:
        """Load pre-numbered records.

        Raises:
            NodeStoreError: If an identifier is already present.
        """
        for record in records:
            if record.id in self._ids:
                raise NodeStoreError(f"Node already exists: {record.id!r}")
            self._ids.add(record.id)
            self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def _fetch(
        self,
        predicate: Predicate,
        order_by: tuple[OrderBy, ...],
        select: tuple[Field, ...] | None,
    ) -> list[NodeRecord]:
        matched = [r for r in self._records if predicate.matches(r)]
        # Stable sorts applied from the least significant key.
        for key in reversed(order_by):
            matched.sort(
                key=lambda r, f=key.field: collation_key(r.get(f)),
                reverse=not key.ascending,
            )
        return [_project(r, select) for r in matched]


class SQLiteNodeStore(NodeStore):
    """SQLite-backed store for nested-set rows.

    The table layout follows the ``AttributeMap``: one column per bound
    attribute plus ``data_json`` for the payload. Id and forest columns
    have NUMERIC affinity so ids taken from a URL ("3") match integer ids.

    Args:
        db_path: Path to SQLite database file, or ':memory:' for in-memory.
        attributes: Column names.
        table: Table name.
        check_same_thread: Forwarded to ``sqlite3.connect``.

    Example::

        with SQLiteNodeStore("tree.db") as store:
            store.initialize_schema()
            store.add_records(records)
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        attributes: AttributeMap | None = None,
        table: str = "nodes",
        check_same_thread: bool = True,
    ) -> None:
        super().__init__(attributes)
        for name in self._identifiers(table):
            if not _IDENTIFIER_RE.match(name):
                raise NodeStoreError(f"Invalid SQL identifier: {name!r}")
        self._table = table
        self._db_path = str(db_path)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=check_same_thread)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    def __enter__(self) -> SQLiteNodeStore:
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Close the database connection."""
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _identifiers(self, table: str) -> list[str]:
        attrs = self.attributes
        names = [
            table,
            attrs.id_attribute,
            attrs.left_attribute,
            attrs.right_attribute,
            attrs.depth_attribute,
        ]
        if attrs.forest_attribute is not None:
            names.append(attrs.forest_attribute)
        return names

    def _column(self, record_field: Field) -> str:
        return f'"{self.attributes.attribute_for(record_field)}"'

    def initialize_schema(self) -> None:
        """Create the node table and its range index if they don't exist."""
        attrs = self.attributes
        forest_col = ""
        index_cols = f'"{attrs.left_attribute}", "{attrs.right_attribute}"'
        if attrs.forest_attribute is not None:
            forest_col = f'"{attrs.forest_attribute}" NUMERIC,\n'
            index_cols = f'"{attrs.forest_attribute}", {index_cols}'
        self._conn.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS "{self._table}" (
                "{attrs.id_attribute}" NUMERIC PRIMARY KEY,
                {forest_col}"{attrs.left_attribute}" INTEGER NOT NULL,
                "{attrs.right_attribute}" INTEGER NOT NULL,
                "{attrs.depth_attribute}" INTEGER NOT NULL,
                data_json TEXT DEFAULT '{{}}'
            );
            CREATE INDEX IF NOT EXISTS "idx_{self._table}_bounds"
                ON "{self._table}"({index_cols});
            """
        )
        self._conn.commit()

    def add_records(self, records: Iterable[NodeRecord]) -> int:
        """Insert pre-numbered records. Bounds are stored as given.

        Returns:
            Number of rows inserted.

        Raises:
            NodeStoreError: If an identifier already exists.
        """
        attrs = self.attributes
        columns = [attrs.id_attribute, attrs.left_attribute, attrs.right_attribute, attrs.depth_attribute]
        if attrs.forest_attribute is not None:
            columns.append(attrs.forest_attribute)
        columns.append("data_json")
        sql = (
            f'INSERT INTO "{self._table}" ('
            + ", ".join(f'"{c}"' for c in columns)
            + ") VALUES ("
            + ", ".join("?" for _ in columns)
            + ")"
        )
        count = 0
        try:
            for record in records:
                values: list[Any] = [record.id, record.left, record.right, record.depth]
                if attrs.forest_attribute is not None:
                    values.append(record.forest)
                values.append(json.dumps(record.data))
                self._conn.execute(sql, values)
                count += 1
            self._conn.commit()
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            raise NodeStoreError(f"Node insert failed: {exc}") from exc
        return count

    def _compile_condition(self, condition: Condition, params: list[Any]) -> str:
        if condition.field == Field.FOREST and self.attributes.forest_attribute is None:
            # Single-tree table: every row shares the implicit forest None.
            matched = condition.matches(NodeRecord(id=None, left=0, right=0, depth=0))
            return "1" if matched else "0"

        column = self._column(condition.field)
        op = condition.operator
        if op == Operator.IN:
            values = list(condition.value)
            if not values:
                return "0"
            params.extend(values)
            return f"{column} IN ({', '.join('?' for _ in values)})"
        if condition.value is None and op in (Operator.EQ, Operator.NE):
            return f"{column} IS NULL" if op == Operator.EQ else f"{column} IS NOT NULL"

        sql_op = {
            Operator.EQ: "=",
            Operator.NE: "<>",
            Operator.LT: "<",
            Operator.GT: ">",
        }[op]
        params.append(condition.value)
        return f"{column} {sql_op} ?"

    def _compile_clause(self, clause: Clause, params: list[Any]) -> str:
        if not clause.conditions:
            return "1"
        return " AND ".join(self._compile_condition(c, params) for c in clause.conditions)

    def compile(
        self,
        predicate: Predicate,
        order_by: tuple[OrderBy, ...] = DISPLAY_ORDER,
        select: tuple[Field, ...] | None = None,
    ) -> tuple[str, list[Any]]:
        """Translate a predicate into a SELECT statement and its parameters."""
        params: list[Any] = []
        where = " OR ".join(f"({self._compile_clause(c, params)})" for c in predicate.clauses)

        if select is None:
            columns = "*"
        else:
            wanted = [Field.ID] + [f for f in select if f != Field.ID]
            columns = ", ".join(
                self._column(f)
                for f in wanted
                if self.attributes.attribute_for(f) is not None
            )

        sql = f'SELECT {columns} FROM "{self._table}" WHERE {where}'
        keys = [
            f"{self._column(k.field)} {'ASC' if k.ascending else 'DESC'}"
            for k in order_by
            if self.attributes.attribute_for(k.field) is not None
        ]
        if keys:
            sql += " ORDER BY " + ", ".join(keys)
        return sql, params

    def _fetch(
        self,
        predicate: Predicate,
        order_by: tuple[OrderBy, ...],
        select: tuple[Field, ...] | None,
    ) -> list[NodeRecord]:
        sql, params = self.compile(predicate, order_by, select)
        # One connection serves every request thread.
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_record(row, select) for row in rows]

    def _row_to_record(self, row: sqlite3.Row, select: tuple[Field, ...] | None) -> NodeRecord:
        values = dict(row)
        payload = values.pop("data_json", None)
        attrs = self.attributes
        for record_field in (Field.LEFT, Field.RIGHT, Field.DEPTH):
            values.setdefault(attrs.attribute_for(record_field), 0)
        record = NodeRecord.from_row(values, attrs, include_data=False)
        if select is None and payload:
            record = replace(record, data=json.loads(payload))
        return record
