"""Database bootstrap utilities for formflow.

This module exposes convenience imports for engine construction and the
migrations runner that applies the packaged SQL files from `migrations/`.
The DB layer does not leak ORM models into route handlers; all reads and
writes go through the storage gateway.
"""

from formflow.db.base import dispose_engine, get_engine
from formflow.db.migrations_runner import MIGRATIONS_DIR, apply_migrations

__all__ = [
    "get_engine",
    "dispose_engine",
    "apply_migrations",
    "MIGRATIONS_DIR",
]
