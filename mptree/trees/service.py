"""Nested-set tree service: structural operations over one table and scope.

Every mutation is a short sequence of bulk boundary shifts
(``col = col + delta WHERE col > threshold``) plus row inserts or deletes,
run inside a single store transaction.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from mptree.db.connection import Database
from mptree.db.schema import SYSTEM_COLUMNS
from mptree.db.store import Condition, NodeStore
from mptree.errors import (
    ConflictError,
    CyclicMoveError,
    InvalidAttributeError,
    InvalidSubtreeError,
    NodeNotFoundError,
    NoRootError,
    RootImmovableError,
    SelfMoveError,
    SiblingOfRootError,
)
from mptree.models import Node, Relationship, TreeNode
from mptree.trees.validation import is_valid_subtree_shape, is_valid_tree

logger = logging.getLogger(__name__)

NodeData = Mapping[str, Any]


class NestedSetTree:
    """One tree (or one scope of a shared table) stored as nested sets.

    ``scope`` partitions the table: every read and every boundary shift is
    restricted to rows with the same scope value. ``None`` means the whole
    table is a single tree.
    """

    def __init__(
        self, db: Database, table: str = "nodes", scope: str | int | None = None
    ) -> None:
        self._store = NodeStore(db, table, scope)
        self.table = table
        self.scope = scope

    # ------------------------------------------------------------------
    # Root management
    # ------------------------------------------------------------------

    async def has_root(self) -> bool:
        return await self.get_root_node() is not None

    async def create_root(self, data: NodeData | None = None) -> int:
        """Create the root node of this scope and return its id."""
        attributes = self._attributes(data or {})
        await self._check_attributes([attributes])

        async with self._store.transaction():
            if await self.has_root():
                raise ConflictError(self.scope)
            root_id = await self._store.insert(
                {**attributes, **self._boundaries(1, 2)}
            )
        logger.info("Created root %s in %s (scope=%r)", root_id, self.table, self.scope)
        return root_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_gap(
        self, relationship: Relationship | str, node_id: int, size: int = 2
    ) -> int | None:
        """Open ``size`` free boundary values next to a reference node.

        Returns the first free boundary value, or None if the reference node
        does not exist (nothing is shifted in that case).
        """
        relationship = Relationship.parse(relationship)
        if size <= 0 or size % 2:
            raise ValueError(f"Gap size must be a positive even number, got {size}")

        async with self._store.transaction():
            node = await self.get_node(node_id)
            if node is None:
                return None
            if node.is_root and relationship.is_sibling:
                raise SiblingOfRootError()

            limit = relationship.gap_limit(node)
            await self._shift(limit, size)
        return limit + 1

    async def insert(
        self,
        data: NodeData | Sequence[NodeData],
        relationship: Relationship | str,
        reference_id: int,
    ) -> list[int]:
        """Insert one node, or a pre-shaped subtree, relative to a reference node.

        ``data`` is either a mapping of column values for a single node, or a
        sequence of such mappings that also carry relative ``lft``/``rgt``
        values describing the subtree shape (its root at ``lft=1``). Returns
        the new ids in input order; empty if the reference node is missing.
        """
        relationship = Relationship.parse(relationship)
        nodes = self._relative_nodes(data)
        await self._check_attributes(attributes for _, _, attributes in nodes)

        async with self._store.transaction():
            root_id = await self.get_root_id()
            if root_id is None:
                raise NoRootError()
            if relationship.is_sibling and reference_id == root_id:
                raise SiblingOfRootError()
            if not nodes:
                return []

            gap = await self.create_gap(relationship, reference_id, 2 * len(nodes))
            if gap is None:
                return []

            offset = gap - 1
            inserted_ids = []
            for lft, rgt, attributes in nodes:
                inserted_ids.append(
                    await self._store.insert(
                        {**attributes, **self._boundaries(lft + offset, rgt + offset)}
                    )
                )

        logger.info(
            "Inserted %d node(s) %s %s in %s (scope=%r)",
            len(inserted_ids), relationship.value, reference_id, self.table, self.scope,
        )
        return inserted_ids

    async def move(
        self, node_id: int, relationship: Relationship | str, target_id: int
    ) -> bool:
        """Move a node and its whole subtree relative to a target node.

        Returns False, changing nothing, when either node does not exist.
        """
        if node_id == target_id:
            raise SelfMoveError(node_id)
        relationship = Relationship.parse(relationship)

        async with self._store.transaction():
            node = await self.get_node(node_id)
            target = await self.get_node(target_id)
            if node is None or target is None:
                return False
            if node.is_root:
                raise RootImmovableError()
            if node.contains(target):
                raise CyclicMoveError(node_id, target_id)

            gap_size = node.width
            gap = await self.create_gap(relationship, target_id, gap_size)
            assert gap is not None

            # The gap opened below the subtree: it has been pushed up.
            lft, rgt = node.lft, node.rgt
            if lft >= gap:
                lft += gap_size
                rgt += gap_size

            increment = gap - lft
            await self._store.bulk_update(
                {"lft": increment, "rgt": increment},
                [Condition("lft", ">=", lft), Condition("rgt", "<=", rgt)],
            )
            await self._shift(lft - 1, -gap_size)

        logger.info(
            "Moved node %s %s %s in %s (scope=%r)",
            node_id, relationship.value, target_id, self.table, self.scope,
        )
        return True

    async def delete(self, node_ids: int | Iterable[int]) -> list[int]:
        """Delete nodes together with their descendants.

        Ids that do not exist, or that were already removed as part of an
        earlier subtree in the same call, are skipped. Returns the removed
        ids without duplicates.
        """
        if isinstance(node_ids, int):
            node_ids = [node_ids]

        deleted_ids: list[int] = []
        async with self._store.transaction():
            for node_id in node_ids:
                node = await self.get_node(node_id)
                if node is None:
                    logger.debug("Delete of %s skipped: not found", node_id)
                    continue

                subtree = await self._store.select_many(
                    [Condition("lft", ">=", node.lft), Condition("rgt", "<=", node.rgt)]
                )
                ids = [n.id for n in subtree]
                removed = await self._store.bulk_delete(ids)
                if not removed:
                    continue

                await self._shift(node.lft, -2 * removed)
                deleted_ids.extend(ids)

        deleted_ids = list(dict.fromkeys(deleted_ids))
        if deleted_ids:
            logger.info(
                "Deleted %d node(s) from %s (scope=%r)",
                len(deleted_ids), self.table, self.scope,
            )
        return deleted_ids

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_node(self, node_id: int) -> Node | None:
        return await self._store.select_one([Condition("id", "=", node_id)])

    async def require_node(self, node_id: int) -> Node:
        node = await self.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    async def get_root_node(self) -> Node | None:
        return await self._store.select_one([Condition("lft", "=", 1)])

    async def get_root_id(self) -> int | None:
        root = await self.get_root_node()
        return root.id if root is not None else None

    async def get_tree(self, root_id: int | None = None) -> list[TreeNode]:
        """The tree in preorder, each node annotated with its depth.

        With ``root_id`` only that node's subtree is returned (empty if the
        node does not exist). Depth is always measured from the scope's root.
        """
        if root_id is None:
            return await self._store.select_tree()

        async with self._store.transaction():
            root = await self.get_node(root_id)
            if root is None:
                return []
            return await self._store.select_tree(root.lft, root.rgt)

    async def validate_tree(self) -> bool:
        """Check every structural invariant of this scope. Never repairs."""
        valid = is_valid_tree(await self.get_tree())
        if not valid:
            logger.warning("Tree %s (scope=%r) failed validation", self.table, self.scope)
        return valid

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _shift(self, threshold: int, delta: int) -> None:
        """Add delta to every lft and every rgt greater than threshold."""
        await self._store.bulk_update({"lft": delta}, [Condition("lft", ">", threshold)])
        await self._store.bulk_update({"rgt": delta}, [Condition("rgt", ">", threshold)])

    def _boundaries(self, lft: int, rgt: int) -> dict[str, Any]:
        values: dict[str, Any] = {"lft": lft, "rgt": rgt}
        if self.scope is not None:
            values["scope"] = self.scope
        return values

    @staticmethod
    def _attributes(data: NodeData) -> dict[str, Any]:
        """Caller columns only; id and the nested-set columns are managed here."""
        return {k: v for k, v in data.items() if k not in SYSTEM_COLUMNS}

    async def _check_attributes(self, attributes: Iterable[NodeData]) -> None:
        """Raise InvalidAttributeError for keys that are not columns of the table."""
        names = {name for values in attributes for name in values}
        if not names:
            return
        unknown = names - await self._store.attribute_columns()
        if unknown:
            raise InvalidAttributeError(map(str, unknown))

    def _relative_nodes(
        self, data: NodeData | Sequence[NodeData]
    ) -> list[tuple[int, int, dict[str, Any]]]:
        items = [data] if isinstance(data, Mapping) else list(data)
        if not items:
            return []
        if len(items) == 1:
            return [(1, 2, self._attributes(items[0]))]

        pairs = []
        for item in items:
            try:
                pairs.append((int(item["lft"]), int(item["rgt"])))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidSubtreeError(
                    "Each node of a multi-node insert needs relative lft and rgt values"
                ) from e
        if not is_valid_subtree_shape(pairs):
            raise InvalidSubtreeError(f"Not a packed subtree rooted at lft=1: {pairs}")

        return [
            (lft, rgt, self._attributes(item)) for (lft, rgt), item in zip(pairs, items)
        ]
