"""FastAPI router for the nested-set tree grid.

Exposes the three ways a grid is filled: the first level, the children
of an expanded row, and a deep link to a node. Designed to be mounted at
/api/grid/ by the parent application.

All endpoint functions are synchronous (not async) because the
underlying SQLiteNodeStore uses synchronous SQLite calls. FastAPI runs
sync handlers in a thread pool automatically.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from nestgrid.config import GridConfig
from nestgrid.core.errors import DataIntegrityError
from nestgrid.pipeline import GridResult, TreeGridPipeline
from nestgrid.query.store import SQLiteNodeStore

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------------------------------------------------------------------------
# Module-level storage instance (initialized by init_grid_storage)
# ---------------------------------------------------------------------------

_storage: SQLiteNodeStore | None = None
_config: GridConfig = GridConfig()


def init_grid_storage(
    db_path: str | Path = ":memory:",
    config: GridConfig | None = None,
) -> SQLiteNodeStore:
    """Initialize the node store backing the router.

    Call this once at application startup before any requests are served.

    Args:
        db_path: Path to SQLite database file, or ':memory:'.
        config: Grid configuration; attribute names define the table.

    Returns:
        The initialized SQLiteNodeStore instance.
    """
    global _storage, _config

    _config = config or GridConfig()
    if _storage is not None:
        _storage.close()
    # Sync handlers run in a threadpool, so the connection is shared across threads.
    _storage = SQLiteNodeStore(db_path, _config.attributes, check_same_thread=False)
    _storage.initialize_schema()
    logger.info("Grid storage initialized at %s (show_roots=%s)", db_path, _config.show_roots)
    return _storage


def get_storage() -> SQLiteNodeStore:
    """Return the initialized store or raise.

    Raises:
        HTTPException: If storage has not been initialized.
    """
    if _storage is None:
        raise HTTPException(
            status_code=500,
            detail="Grid storage not initialized",
        )
    return _storage


def get_pipeline() -> TreeGridPipeline:
    """A pipeline over the shared store; each request gets its own pass."""
    return TreeGridPipeline(get_storage(), _config)


# ---------------------------------------------------------------------------
# Pydantic response models
# ---------------------------------------------------------------------------


class GridRowResponse(BaseModel):
    """One rendered row."""

    id: Any
    parent_id: Any = None
    depth: int = Field(..., ge=0)
    forest: Any = None
    left: int
    right: int
    child_count: int = Field(..., ge=0)
    has_lazy_children: bool = False
    expanded: bool = False
    data: dict[str, Any] = Field(default_factory=dict)


class AnomalyResponse(BaseModel):
    """An inconsistency the resolver stepped over."""

    node_id: Any
    parent_id: Any = None
    reason: str


class GridResponse(BaseModel):
    """Rows of one rendering pass."""

    rows: list[GridRowResponse] = Field(default_factory=list)
    expanded_ids: list[Any] = Field(default_factory=list)
    anomalies: list[AnomalyResponse] = Field(default_factory=list)
    fetch_count: int = 0


def _to_response(result: GridResult) -> GridResponse:
    return GridResponse(**result.to_dict())


def _integrity_error(exc: DataIntegrityError) -> HTTPException:
    logger.error("Rendering pass aborted: %s", exc)
    return HTTPException(
        status_code=422,
        detail={"error": "data_integrity", "node_id": exc.node_id, "reason": exc.reason},
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
def health_check() -> dict[str, Any]:
    """Return grid service health status."""
    return {
        "status": "ok",
        "service": "nestgrid",
        "version": "0.1.0",
        "storage_initialized": _storage is not None,
        "config": _config.to_dict(),
    }


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@router.get("/nodes", response_model=GridResponse)
def first_level(forest: str | None = None) -> GridResponse:
    """Render the first level of the grid.

    Args:
        forest: Optional forest to restrict to.
    """
    try:
        return _to_response(get_pipeline().render_page(forest))
    except DataIntegrityError as exc:
        raise _integrity_error(exc) from exc


@router.get("/nodes/{node_id}/children", response_model=GridResponse)
def node_children(node_id: str) -> GridResponse:
    """Render the immediate children of a node.

    An unknown node has no children: the response is empty, not 404.
    """
    try:
        return _to_response(get_pipeline().expand(node_id))
    except DataIntegrityError as exc:
        raise _integrity_error(exc) from exc


@router.get("/nodes/{node_id}/path", response_model=GridResponse)
def node_path(node_id: str) -> GridResponse:
    """Render the grid opened down to a node.

    Raises:
        HTTPException: 404 if the node does not exist.
    """
    try:
        result = get_pipeline().deep_link(node_id)
    except DataIntegrityError as exc:
        raise _integrity_error(exc) from exc
    if not result.found:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    return _to_response(result)
