"""Database bootstrap utilities.

Exposes engine construction, transaction helpers and the SQL migrations
runner. The DB layer does not leak ORM models into route handlers.
"""

from formbuilder.db.base import get_engine, ping, read_connection, reset_engine, transaction
from formbuilder.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "ping",
    "read_connection",
    "reset_engine",
    "transaction",
    "apply_migrations",
]
