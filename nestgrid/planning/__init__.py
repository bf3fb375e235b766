"""Fetch planning for lazy expansion and deep links."""

from nestgrid.planning.lazy import LazyExpansionPlanner
from nestgrid.planning.path import PathReconstructor, PathResult

__all__ = ["LazyExpansionPlanner", "PathReconstructor", "PathResult"]
