"""mptree FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mptree.db.connection import Database
from mptree.db.schema import ensure_tree_table
from mptree.settings import Settings, load_settings
from mptree.trees.router import get_tree_factory
from mptree.trees.router import router as tree_router
from mptree.trees.service import NestedSetTree


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    # .env is read here, not at import (secrets stay out of shell profile)
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())

    db = await Database.connect(settings.db_path, busy_timeout=settings.busy_timeout)
    await ensure_tree_table(db, settings.table, settings.columns)

    factory = partial(NestedSetTree, db, settings.table)
    app.dependency_overrides[get_tree_factory] = lambda: factory

    app.state.settings = settings
    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="mptree",
    description="Nested-set (modified preorder tree traversal) trees over SQLite",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware is fixed before startup, so origins come from the process environment.
app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tree_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
