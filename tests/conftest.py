"""Shared pytest fixtures for mptree tests."""

from functools import partial

import pytest
from httpx import ASGITransport, AsyncClient

from mptree.db.connection import Database
from mptree.db.schema import ensure_tree_table
from mptree.main import app
from mptree.trees.router import get_tree_factory
from mptree.trees.service import NestedSetTree


@pytest.fixture
async def db():
    """In-memory database with an empty ``nodes`` table."""
    database = await Database.connect(":memory:")
    await ensure_tree_table(database, "nodes", {"name": "TEXT"})
    yield database
    await database.close()


@pytest.fixture
async def tree(db):
    """Unscoped tree over the whole ``nodes`` table."""
    return NestedSetTree(db, "nodes")


@pytest.fixture
async def client(db):
    """Async test client with the in-memory DB wired into the app."""
    factory = partial(NestedSetTree, db, "nodes")
    app.dependency_overrides[get_tree_factory] = lambda: factory
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
