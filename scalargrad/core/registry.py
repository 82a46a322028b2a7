"""
Named model storage on top of the sqlite registry.

Each row holds the persisted-model record (serialization.to_record) plus the
training report that produced it. Saving an existing name bumps its version.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from scalargrad.core.db import _db
from scalargrad.core.nn import Network
from scalargrad.core.serialization import ModelLoadError, from_record, to_record
from scalargrad.core.trainer import TrainingReport

logger = logging.getLogger(__name__)


def save_model(name: str, model: Network, report: Optional[TrainingReport] = None) -> int:
    """Store (or replace) a model under name. Returns the stored version."""
    record = to_record(model)
    meta = record["metadata"]

    with _db() as db:
        db.execute(
            """INSERT INTO models
               (name, kind, input_size, layer_sizes, total_parameters,
                record_json, training_json, trained_at, version)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?,
                       COALESCE((SELECT version FROM models WHERE name = ?), 0) + 1)
               ON CONFLICT(name) DO UPDATE SET
                   kind = excluded.kind,
                   input_size = excluded.input_size,
                   layer_sizes = excluded.layer_sizes,
                   total_parameters = excluded.total_parameters,
                   record_json = excluded.record_json,
                   training_json = excluded.training_json,
                   trained_at = excluded.trained_at,
                   version = excluded.version""",
            (
                name,
                meta["kind"],
                meta["input_size"],
                json.dumps(meta["layer_sizes"]),
                meta["total_parameters"],
                json.dumps(record),
                json.dumps(report.to_dict()) if report else None,
                datetime.now(timezone.utc).isoformat(),
                name,
            ),
        )
        db.commit()
        version = db.execute(
            "SELECT version FROM models WHERE name = ?", (name,)
        ).fetchone()["version"]

    logger.info(f"[Registry] Saved {name!r} v{version} ({meta['total_parameters']} parameters)")
    return version


def load_model(name: str) -> Network:
    """Rebuild a stored model. Raises ModelLoadError if missing or corrupt."""
    with _db() as db:
        row = db.execute(
            "SELECT record_json FROM models WHERE name = ?", (name,)
        ).fetchone()

    if row is None:
        raise ModelLoadError(f"No model named {name!r}")

    try:
        record = json.loads(row["record_json"])
    except json.JSONDecodeError as e:
        logger.error(f"[Registry] Corrupt record for {name!r}", exc_info=True)
        raise ModelLoadError(f"Corrupt record for {name!r}: {e}") from e
    return from_record(record)


def _row_to_dict(row) -> dict:
    return {
        "name": row["name"],
        "kind": row["kind"],
        "input_size": row["input_size"],
        "layer_sizes": json.loads(row["layer_sizes"]),
        "total_parameters": row["total_parameters"],
        "version": row["version"],
        "trained_at": row["trained_at"],
        "training": json.loads(row["training_json"]) if row["training_json"] else None,
    }


def get_model_info(name: str) -> Optional[dict]:
    """Metadata and last training report for a stored model, or None."""
    with _db() as db:
        row = db.execute(
            """SELECT name, kind, input_size, layer_sizes, total_parameters,
                      version, trained_at, training_json
               FROM models WHERE name = ?""",
            (name,),
        ).fetchone()
    return _row_to_dict(row) if row else None


def list_models() -> list[dict]:
    with _db() as db:
        rows = db.execute(
            """SELECT name, kind, input_size, layer_sizes, total_parameters,
                      version, trained_at, training_json
               FROM models ORDER BY name"""
        ).fetchall()
    return [_row_to_dict(r) for r in rows]


def delete_model(name: str) -> bool:
    """Delete a stored model. Returns False if it didn't exist."""
    with _db() as db:
        cursor = db.execute("DELETE FROM models WHERE name = ?", (name,))
        db.commit()
        deleted = cursor.rowcount > 0

    if deleted:
        logger.info(f"[Registry] Deleted {name!r}")
    return deleted
