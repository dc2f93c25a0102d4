"""DDL for nested-set tables. All statements use IF NOT EXISTS for idempotency."""

import logging
import re

from mptree.db.connection import Database

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Columns every nested-set table carries. Caller attributes are added on top.
SYSTEM_COLUMNS = ("id", "lft", "rgt", "scope")

# No CHECK (lft < rgt) and no UNIQUE on lft/rgt: the two boundary columns are
# shifted by separate statements inside one transaction.
TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    lft INTEGER NOT NULL,
    rgt INTEGER NOT NULL,
    scope TEXT
);

CREATE INDEX IF NOT EXISTS idx_{table}_scope_lft ON {table}(scope, lft);
CREATE INDEX IF NOT EXISTS idx_{table}_scope_rgt ON {table}(scope, rgt);
"""


def check_identifier(name: str) -> str:
    """Return name unchanged if it is safe to interpolate into SQL."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


async def ensure_tree_table(
    db: Database, table: str = "nodes", columns: dict[str, str] | None = None
) -> None:
    """Create a nested-set table and any missing attribute columns. Idempotent.

    ``columns`` maps attribute column names to SQL type declarations, e.g.
    ``{"name": "TEXT", "position": "INTEGER"}``. Columns already present are
    left untouched.
    """
    check_identifier(table)
    await db.executescript(TABLE_SQL.format(table=table))

    existing = await table_columns(db, table)
    for name, declaration in (columns or {}).items():
        check_identifier(name)
        if name in SYSTEM_COLUMNS:
            raise ValueError(f"{name!r} is a reserved nested-set column")
        if name in existing:
            continue
        await db.execute(f"ALTER TABLE {table} ADD COLUMN {name} {declaration}")
        logger.info("Added column %s.%s (%s)", table, name, declaration)


async def table_columns(db: Database, table: str) -> list[str]:
    """Column names of table, in declaration order."""
    check_identifier(table)
    rows = await db.fetchall(f"PRAGMA table_info({table})")
    return [row["name"] for row in rows]
