"""
Hierarchy module - nested-set bounds, parent resolution and ordering.

This module turns a flat, ordered batch of records into parent links.
"""

from nestgrid.hierarchy.encoding import EncodingRegistry, NestedSetEncoding, TreeEncoding
from nestgrid.hierarchy.resolver import ParentResolver, Resolution, ResolverAnomaly, resolve_parents
from nestgrid.hierarchy.sorter import ForestSorter, RecordBatch

__all__ = [
    "EncodingRegistry",
    "ForestSorter",
    "NestedSetEncoding",
    "ParentResolver",
    "RecordBatch",
    "Resolution",
    "ResolverAnomaly",
    "TreeEncoding",
    "resolve_parents",
]
