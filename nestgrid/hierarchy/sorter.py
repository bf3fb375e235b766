"""Display ordering of fetched batches and root pruning."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from nestgrid.core.errors import OrderingViolationError
from nestgrid.core.records import NodeRecord
from nestgrid.hierarchy.encoding import NestedSetEncoding, TreeEncoding

logger = logging.getLogger(__name__)


@dataclass
class RecordBatch:
    """
    An ordered batch of records with a positional key index.

    The index maps node id -> position and is built on first use. Batches
    are never edited in place; operations that drop records return a new
    batch, so an index never outlives the positions it describes.
    """

    records: tuple[NodeRecord, ...] = ()
    _key_index: dict[Any, int] | None = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def of(cls, records: Iterable[NodeRecord]) -> RecordBatch:
        return cls(tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @property
    def keys(self) -> list[Any]:
        return [r.id for r in self.records]

    @property
    def key_index(self) -> dict[Any, int]:
        """Node id -> position in this batch."""
        if self._key_index is None:
            self._key_index = {r.id: i for i, r in enumerate(self.records)}
        return self._key_index

    def position_of(self, node_id: Any) -> int | None:
        return self.key_index.get(node_id)

    def get(self, node_id: Any) -> NodeRecord | None:
        pos = self.position_of(node_id)
        return self.records[pos] if pos is not None else None

    def __contains__(self, node_id: Any) -> bool:
        return node_id in self.key_index


class ForestSorter:
    """
    Orders batches by forest, then left bound.

    Left bounds are unique within a forest, so no further tie-break is
    needed; the sort is stable regardless.

    Args:
        encoding: Supplies the sibling order key.
    """

    def __init__(self, encoding: TreeEncoding | None = None) -> None:
        self.encoding = encoding or NestedSetEncoding()

    def sort(self, records: Iterable[NodeRecord]) -> list[NodeRecord]:
        """Return records in display order."""
        return sorted(records, key=self.encoding.sort_key)

    def is_sorted(self, records: list[NodeRecord]) -> bool:
        key = self.encoding.sort_key
        return all(key(a) <= key(b) for a, b in zip(records, records[1:]))

    def verify(self, records: list[NodeRecord]) -> None:
        """Raise OrderingViolationError at the first out-of-order record."""
        key = self.encoding.sort_key
        for previous, record in zip(records, records[1:]):
            if key(record) < key(previous):
                raise OrderingViolationError(record.id, previous.id)

    def ensure_sorted(self, records: Iterable[NodeRecord]) -> RecordBatch:
        """Sort the records into a batch, noting when the input was out of order."""
        items = list(records)
        if self.is_sorted(items):
            return RecordBatch.of(items)
        logger.debug("Re-sorting batch of %d record(s) into display order", len(items))
        return RecordBatch.of(self.sort(items))

    @staticmethod
    def prune_roots(batch: RecordBatch) -> RecordBatch:
        """Drop depth-0 records; the returned batch has a fresh key index."""
        kept = [r for r in batch.records if r.depth != 0]
        if len(kept) != len(batch):
            logger.debug("Pruned %d root record(s)", len(batch) - len(kept))
        return RecordBatch.of(kept)
