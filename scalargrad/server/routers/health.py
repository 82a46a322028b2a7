"""Health and stats endpoints."""

import logging

from fastapi import APIRouter, Depends

from scalargrad.server.auth import require_auth

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Health check: registry DB accessible."""
    from scalargrad.core.db import _db

    try:
        with _db() as db:
            db.execute("SELECT 1").fetchone()
        return {"status": "healthy"}
    except Exception:
        logger.exception("Health check failed")
        return {"status": "unhealthy"}


@router.get("/stats", dependencies=[Depends(require_auth)])
def stats():
    """Stored model counts by kind and total parameter count."""
    from scalargrad.core.db import _db

    with _db() as db:
        kind_rows = db.execute("""
            SELECT kind, COUNT(*) as count
            FROM models
            GROUP BY kind
            ORDER BY count DESC
        """).fetchall()

        totals = db.execute(
            "SELECT COUNT(*), COALESCE(SUM(total_parameters), 0) FROM models"
        ).fetchone()

    return {
        "models": {
            "total": totals[0],
            "by_kind": {row["kind"]: row["count"] for row in kind_rows},
        },
        "total_parameters": totals[1],
    }
