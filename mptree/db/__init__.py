"""SQLite access: connection and transactions, table DDL, row-level store."""

from mptree.db.connection import Database
from mptree.db.store import Condition, NodeStore

__all__ = ["Condition", "Database", "NodeStore"]
