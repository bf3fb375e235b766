"""Core record types and errors."""

from nestgrid.core.errors import (
    DataIntegrityError,
    NestGridError,
    NodeStoreError,
    OrderingViolationError,
)
from nestgrid.core.records import AttributeMap, Field, NodeRecord

__all__ = [
    "AttributeMap",
    "DataIntegrityError",
    "Field",
    "NestGridError",
    "NodeRecord",
    "NodeStoreError",
    "OrderingViolationError",
]
