"""
scalargrad model registry database

Connection management and schema initialization. registry.py does all reads
and writes through the _db() context manager defined here.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Callable

logger = logging.getLogger(__name__)


def _apply_pragmas(db: sqlite3.Connection):
    """Apply standard SQLite pragmas for safety and concurrency."""
    db.execute("PRAGMA journal_mode=WAL")
    db.execute("PRAGMA busy_timeout=5000")
    db.execute("PRAGMA foreign_keys=ON")


def _get_db_path():
    """Get the configured database path."""
    import scalargrad
    return scalargrad.get_config().db_path


def get_db() -> sqlite3.Connection:
    """Open a new connection to the registry database."""
    db = sqlite3.connect(str(_get_db_path()))
    db.row_factory = sqlite3.Row
    _apply_pragmas(db)
    return db


@contextmanager
def _db():
    """Context manager for database connections; closes on exception."""
    db = get_db()
    try:
        yield db
    finally:
        db.close()


def _ensure_migration_table(db: sqlite3.Connection):
    """Create the schema_migrations tracking table if it doesn't exist."""
    db.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            description TEXT NOT NULL,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    db.commit()


def run_migration(db: sqlite3.Connection, version: int, description: str,
                  migrate_fn: Callable[[sqlite3.Connection], None]):
    """
    Run a schema migration if it hasn't been applied yet.

    Checks schema_migrations for the version. If not present, runs migrate_fn
    inside a transaction and records the version. If already applied, skips silently.
    """
    existing = db.execute(
        "SELECT version FROM schema_migrations WHERE version = ?", (version,)
    ).fetchone()
    if existing:
        return

    logger.info(f"Running migration {version}: {description}")
    try:
        migrate_fn(db)
        db.execute(
            "INSERT INTO schema_migrations (version, description) VALUES (?, ?)",
            (version, description)
        )
        db.commit()
        logger.info(f"Migration {version} applied successfully")
    except Exception:
        db.rollback()
        logger.error(f"Migration {version} failed, rolled back", exc_info=True)
        raise


def _create_models_table(db: sqlite3.Connection):
    db.execute("""
        CREATE TABLE IF NOT EXISTS models (
            name TEXT PRIMARY KEY,
            kind TEXT NOT NULL,
            input_size INTEGER NOT NULL,
            layer_sizes TEXT NOT NULL,
            total_parameters INTEGER NOT NULL,
            record_json TEXT NOT NULL,
            training_json TEXT,
            version INTEGER NOT NULL DEFAULT 1,
            trained_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    db.execute("CREATE INDEX IF NOT EXISTS idx_models_kind ON models(kind)")


def init_db():
    """Initialize database schema."""
    with _db() as db:
        _ensure_migration_table(db)
        run_migration(db, 1, "create models table", _create_models_table)
