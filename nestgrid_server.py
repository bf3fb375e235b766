"""nestgrid backend server.

Mounts the tree-grid router under a FastAPI application backed by an
on-disk SQLite node table.

Usage::

    # Development (auto-reload)
    uvicorn nestgrid_server:app --reload --port 8430

    # Or run directly
    python nestgrid_server.py

Environment:
    NESTGRID_DB_PATH: SQLite database file (default ``data/nestgrid.db``).
    NESTGRID_SHOW_ROOTS: Render forest roots (default ``true``).
    NESTGRID_STRICT: Reject inconsistent depth sequences (default ``false``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nestgrid.config import GridConfig
from nestgrid.server import init_grid_storage, router

logger = logging.getLogger("nestgrid")

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="nestgrid API",
    description="Lazy-loading tree grid over nested-set tables.",
    version="0.1.0",
)

# ---------------------------------------------------------------------------
# CORS -- allow local dev server origins
# ---------------------------------------------------------------------------

_ALLOWED_ORIGINS = [
    "http://localhost:5173",   # Vite dev server
    "http://localhost:8430",   # Self (for Swagger UI)
    "http://127.0.0.1:5173",
    "http://127.0.0.1:8430",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _mount_grid() -> None:
    """Mount the grid router at ``/api/grid/``."""
    db_path = Path(os.environ.get("NESTGRID_DB_PATH", "data/nestgrid.db"))
    db_path.parent.mkdir(parents=True, exist_ok=True)
    init_grid_storage(db_path, GridConfig.from_env())

    app.include_router(router, prefix="/api/grid", tags=["grid"])
    logger.info("Grid router mounted at /api/grid/")


_mount_grid()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_server(host: str = "127.0.0.1", port: int = 8430) -> None:
    """Start the nestgrid server via uvicorn.

    Args:
        host: Bind address. Defaults to localhost.
        port: Port number. Defaults to 8430.
    """
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    run_server()
