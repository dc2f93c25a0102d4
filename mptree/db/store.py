"""Row-level access to one nested-set table, restricted to one scope."""

import logging
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from mptree.db.connection import Database
from mptree.db.schema import SYSTEM_COLUMNS, check_identifier, table_columns
from mptree.models import Node, TreeNode

logger = logging.getLogger(__name__)

_OPERATORS = frozenset({"=", ">", "<", ">=", "<=", "BETWEEN"})


@dataclass(frozen=True)
class Condition:
    """One ``column op value`` predicate. Conditions in a list are AND-ed."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        check_identifier(self.column)
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op!r}")
        if self.op == "BETWEEN" and (
            not isinstance(self.value, Sequence) or len(self.value) != 2
        ):
            raise ValueError("BETWEEN needs a (low, high) pair")

    def to_sql(self, alias: str | None = None) -> tuple[str, tuple]:
        column = f"{alias}.{self.column}" if alias else self.column
        if self.op == "BETWEEN":
            low, high = self.value
            return f"{column} BETWEEN ? AND ?", (low, high)
        return f"{column} {self.op} ?", (self.value,)


class NodeStore:
    """The table operations the tree algorithm needs, and nothing else.

    Every statement carries ``scope = ?`` when the store has a scope. A
    ``None`` scope adds no predicate at all, so the whole table is one tree.
    """

    def __init__(self, db: Database, table: str = "nodes", scope: str | int | None = None) -> None:
        self._db = db
        self.table = check_identifier(table)
        self.scope = scope

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["NodeStore"]:
        async with self._db.transaction():
            yield self

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def select_one(self, conditions: Iterable[Condition]) -> Node | None:
        where, params = self._where(conditions)
        row = await self._db.fetchone(
            f"SELECT * FROM {self.table} WHERE {where} LIMIT 1", params
        )
        if row is None:
            return None
        return self._row_to_node(row)

    async def select_many(
        self, conditions: Iterable[Condition] = (), order_by: str = "lft"
    ) -> list[Node]:
        check_identifier(order_by)
        where, params = self._where(conditions)
        rows = await self._db.fetchall(
            f"SELECT * FROM {self.table} WHERE {where} ORDER BY {order_by}", params
        )
        return [self._row_to_node(row) for row in rows]

    async def select_tree(
        self, lower: int | None = None, upper: int | None = None
    ) -> list[TreeNode]:
        """Nodes in preorder with depth = number of containing intervals - 1.

        ``lower``/``upper`` restrict the result to nodes whose interval lies
        within ``[lower, upper]``; depth is still counted against the whole
        scope.
        """
        filters: list[tuple[Condition, str]] = []
        if self.scope is not None:
            filters.append((Condition("scope", "=", self.scope), "parent"))
            filters.append((Condition("scope", "=", self.scope), "child"))
        if lower is not None:
            filters.append((Condition("lft", ">=", lower), "child"))
        if upper is not None:
            filters.append((Condition("rgt", "<=", upper), "child"))

        clauses = ["child.lft BETWEEN parent.lft AND parent.rgt"]
        params: list[Any] = []
        for condition, alias in filters:
            sql, values = condition.to_sql(alias)
            clauses.append(sql)
            params.extend(values)

        rows = await self._db.fetchall(
            f"""
            SELECT child.*, COUNT(parent.id) - 1 AS depth
            FROM {self.table} AS child, {self.table} AS parent
            WHERE {" AND ".join(clauses)}
            GROUP BY child.id
            ORDER BY child.lft
            """,
            tuple(params),
        )
        return [self._row_to_tree_node(row) for row in rows]

    async def attribute_columns(self) -> set[str]:
        """Caller-defined columns of the table, i.e. everything but the system ones."""
        return set(await table_columns(self._db, self.table)) - set(SYSTEM_COLUMNS)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, values: Mapping[str, Any]) -> int:
        """Insert one row and return its generated id."""
        columns = [check_identifier(column) for column in values]
        placeholders = ", ".join("?" for _ in columns)
        cursor = await self._db.execute(
            f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        assert cursor.lastrowid is not None
        return cursor.lastrowid

    async def bulk_update(
        self, deltas: Mapping[str, int], conditions: Iterable[Condition]
    ) -> int:
        """Apply ``column = column + delta`` to every matching row in one statement."""
        if not deltas:
            return 0
        assignments = ", ".join(
            f"{check_identifier(column)} = {column} + ?" for column in deltas
        )
        where, params = self._where(conditions)
        logger.debug(
            "Shift %s %s where %s %s", self.table, dict(deltas), where, params
        )
        cursor = await self._db.execute(
            f"UPDATE {self.table} SET {assignments} WHERE {where}",
            tuple(deltas.values()) + params,
        )
        return cursor.rowcount

    async def bulk_delete(self, ids: Iterable[int]) -> int:
        """Delete rows by id within the scope. Returns the number removed."""
        ids = list(ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        where, params = self._where([])
        cursor = await self._db.execute(
            f"DELETE FROM {self.table} WHERE id IN ({placeholders}) AND {where}",
            tuple(ids) + params,
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _where(self, conditions: Iterable[Condition]) -> tuple[str, tuple]:
        clauses: list[str] = []
        params: list[Any] = []
        for condition in conditions:
            sql, values = condition.to_sql()
            clauses.append(sql)
            params.extend(values)
        if self.scope is not None:
            clauses.append("scope = ?")
            params.append(self.scope)
        if not clauses:
            return "1 = 1", ()
        return " AND ".join(clauses), tuple(params)

    @staticmethod
    def _row_to_node(row) -> Node:
        """Convert a database row to a Node."""
        record = dict(row)
        return Node(
            id=record["id"],
            lft=record["lft"],
            rgt=record["rgt"],
            scope=record.get("scope"),
            data={k: v for k, v in record.items() if k not in SYSTEM_COLUMNS},
        )

    @staticmethod
    def _row_to_tree_node(row) -> TreeNode:
        record = dict(row)
        depth = record.pop("depth")
        return TreeNode(
            id=record["id"],
            lft=record["lft"],
            rgt=record["rgt"],
            scope=record.get("scope"),
            depth=depth,
            data={k: v for k, v in record.items() if k not in SYSTEM_COLUMNS},
        )
