"""
nestgrid - render nested-set tables as lazily loaded tree grids.

Flat records carrying left/right bounds and a depth are turned into
parent links, child counts and expansion state, one pass at a time.
"""

from nestgrid.config import DisplayPolicy, GridConfig
from nestgrid.core.errors import DataIntegrityError, NestGridError, OrderingViolationError
from nestgrid.core.records import AttributeMap, NodeRecord
from nestgrid.pipeline import GridResult, GridRow, TreeGridPipeline

__all__ = [
    "AttributeMap",
    "DataIntegrityError",
    "DisplayPolicy",
    "GridConfig",
    "GridResult",
    "GridRow",
    "NestGridError",
    "NodeRecord",
    "OrderingViolationError",
    "TreeGridPipeline",
]
