"""
Storage: mastery store backends.

- MasteryStore: async interface
- InMemoryMasteryStore: tests and offline use
- SqlMasteryStore: SQLAlchemy engine (SQLite or PostgreSQL)
"""

from mixmind.storage.mastery_store import InMemoryMasteryStore, MasteryStore
from mixmind.storage.sql_store import SqlMasteryStore

__all__ = [
    "MasteryStore",
    "InMemoryMasteryStore",
    "SqlMasteryStore",
]
