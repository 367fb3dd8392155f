"""Repository adapters - Database implementations."""

from .memory import InMemoryMemberStore
from .postgres import PostgresMemberStore, PostgresNotificationOutbox, create_pool, run_migrations

__all__ = [
    "InMemoryMemberStore",
    "PostgresMemberStore",
    "PostgresNotificationOutbox",
    "create_pool",
    "run_migrations",
]
