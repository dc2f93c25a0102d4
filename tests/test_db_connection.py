"""Integration tests for the database connection, transactions and schema.

Verifies SQLite setup (WAL mode, table creation), transaction atomicity and
the wrapping of backend failures into StoreError.
"""

import asyncio
import os
import tempfile

import pytest

from mptree.db.connection import Database
from mptree.db.schema import ensure_tree_table, table_columns
from mptree.errors import StoreError
from mptree.trees.service import NestedSetTree
from tests.fixtures import STANDARD_BOUNDS, assert_packed, bounds, build_tree


class TestDatabaseConnection:
    async def test_wal_mode_on_file_database(self):
        """File-based database uses WAL journal mode."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "test.db")
            db = await Database.connect(path)
            try:
                row = await db.fetchone("PRAGMA journal_mode")
                assert row is not None
                assert row["journal_mode"] == "wal"
            finally:
                await db.close()

    async def test_bad_sql_raises_store_error(self, db):
        with pytest.raises(StoreError) as excinfo:
            await db.execute("SELECT * FROM missing_table")
        assert not excinfo.value.retryable

    async def test_data_persists_across_connections(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "tree.db")
            db = await Database.connect(path)
            try:
                await ensure_tree_table(db, "nodes", {"name": "TEXT"})
                await build_tree(NestedSetTree(db, "nodes"))
            finally:
                await db.close()

            db = await Database.connect(path)
            try:
                assert await bounds(NestedSetTree(db, "nodes")) == STANDARD_BOUNDS
            finally:
                await db.close()


class TestTransactions:
    async def test_commit_on_success(self, db):
        async with db.transaction():
            await db.execute("INSERT INTO nodes (lft, rgt) VALUES (1, 2)")
            await db.execute("UPDATE nodes SET rgt = 4")

        row = await db.fetchone("SELECT rgt FROM nodes")
        assert row["rgt"] == 4

    async def test_rollback_on_exception(self, db):
        with pytest.raises(RuntimeError):
            async with db.transaction():
                await db.execute("INSERT INTO nodes (lft, rgt) VALUES (1, 2)")
                raise RuntimeError("boom")

        assert await db.fetchall("SELECT * FROM nodes") == []

    async def test_nested_transactions_join_the_outer_one(self, db):
        """An error after an inner block still undoes the inner block's writes."""
        with pytest.raises(RuntimeError):
            async with db.transaction():
                async with db.transaction():
                    await db.execute("INSERT INTO nodes (lft, rgt) VALUES (1, 2)")
                assert db.in_transaction
                raise RuntimeError("boom")

        assert not db.in_transaction
        assert await db.fetchall("SELECT * FROM nodes") == []

    async def test_backend_error_rolls_back_and_wraps(self, db):
        with pytest.raises(StoreError):
            async with db.transaction():
                await db.execute("INSERT INTO nodes (lft, rgt) VALUES (1, 2)")
                await db.execute("INSERT INTO nodes (lft) VALUES (3)")  # rgt NOT NULL

        assert await db.fetchall("SELECT * FROM nodes") == []

    async def test_lock_contention_is_retryable(self, tmp_path):
        """A second connection writing during an open transaction gets a retryable error."""
        path = str(tmp_path / "tree.db")
        holder = await Database.connect(path)
        contender = await Database.connect(path, busy_timeout=0)
        try:
            await ensure_tree_table(holder, "nodes")
            async with holder.transaction():
                await holder.execute("INSERT INTO nodes (lft, rgt) VALUES (1, 2)")
                with pytest.raises(StoreError) as excinfo:
                    await contender.execute("INSERT INTO nodes (lft, rgt) VALUES (3, 4)")

            assert excinfo.value.retryable is True
            rows = await contender.fetchall("SELECT lft, rgt FROM nodes")
            assert [(r["lft"], r["rgt"]) for r in rows] == [(1, 2)]
        finally:
            await contender.close()
            await holder.close()

    async def test_failed_operation_leaves_tree_untouched(self, tree, db):
        """A store failure half way through a move rolls back the gap it opened."""
        ids = await build_tree(tree)
        await db.execute(
            """
            CREATE TRIGGER fail_on_subtree_shift BEFORE UPDATE OF lft ON nodes
            WHEN NEW.lft < OLD.lft - 4
            BEGIN SELECT RAISE(ABORT, 'simulated failure'); END
            """
        )

        with pytest.raises(StoreError):
            await tree.move(ids["C"], "first-child-of", ids["A"])

        assert await bounds(tree) == STANDARD_BOUNDS

    async def test_concurrent_operations_are_serialised(self, tree):
        ids = await build_tree(tree)

        await asyncio.gather(
            tree.insert({"name": "X"}, "first-child-of", ids["A"]),
            tree.move(ids["C"], "before", ids["A"]),
            tree.insert({"name": "Y"}, "last-child-of", ids["B"]),
            tree.delete(ids["A2"]),
            tree.move(ids["B1"], "after", ids["A1"]),
        )

        assert len(await tree.get_tree()) == 8
        await assert_packed(tree)


class TestSchema:
    async def test_creates_system_and_attribute_columns(self, db):
        await ensure_tree_table(db, "categories", {"title": "TEXT", "weight": "INTEGER"})

        columns = await table_columns(db, "categories")

        assert columns == ["id", "lft", "rgt", "scope", "title", "weight"]

    async def test_idempotent_and_additive(self, db):
        await ensure_tree_table(db, "categories", {"title": "TEXT"})
        await ensure_tree_table(db, "categories", {"title": "TEXT", "slug": "TEXT"})

        assert await table_columns(db, "categories") == [
            "id", "lft", "rgt", "scope", "title", "slug",
        ]

    async def test_reserved_column_rejected(self, db):
        with pytest.raises(ValueError):
            await ensure_tree_table(db, "categories", {"lft": "INTEGER"})

    async def test_invalid_table_name_rejected(self, db):
        with pytest.raises(ValueError):
            await ensure_tree_table(db, "bad-name")

    async def test_custom_table_works_with_tree(self, db):
        await ensure_tree_table(db, "menu", {"name": "TEXT"})
        tree = NestedSetTree(db, "menu")

        await build_tree(tree)

        await assert_packed(tree)
