"""Database bootstrap utilities for the exam authoring service.

This module exposes convenience imports for engine/transaction construction
and the migrations runner that applies SQL files from the `migrations/`
directory. The DB layer does not leak ORM models into route handlers.
"""

from exam_authoring.db.base import get_engine, reset_engine, transaction
from exam_authoring.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "transaction",
    "apply_migrations",
]
