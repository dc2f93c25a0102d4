"""Tests for reading trees back in preorder with depth."""

from mptree.models import TreeNode
from tests.fixtures import build_tree, outline


class TestGetTree:
    async def test_empty_tree(self, tree):
        assert await tree.get_tree() == []

    async def test_preorder_with_depth(self, tree):
        await build_tree(tree)

        assert await outline(tree) == [
            ("R", 0),
            ("A", 1),
            ("A1", 2),
            ("A2", 2),
            ("B", 1),
            ("B1", 2),
            ("C", 1),
        ]

    async def test_ordered_by_lft(self, tree):
        await build_tree(tree)

        nodes = await tree.get_tree()

        assert all(isinstance(n, TreeNode) for n in nodes)
        assert [n.lft for n in nodes] == sorted(n.lft for n in nodes)

    async def test_subtree_keeps_absolute_depth(self, tree):
        ids = await build_tree(tree)

        assert await outline(tree, ids["A"]) == [("A", 1), ("A1", 2), ("A2", 2)]

    async def test_leaf_subtree(self, tree):
        ids = await build_tree(tree)

        assert await outline(tree, ids["C"]) == [("C", 1)]

    async def test_missing_subtree_root(self, tree):
        await build_tree(tree)

        assert await tree.get_tree(999) == []

    async def test_data_columns_exposed(self, tree):
        ids = await build_tree(tree)

        [node] = await tree.get_tree(ids["B1"])

        assert node.data == {"name": "B1"}
        assert node.scope is None


class TestAncestry:
    async def test_containment_matches_ancestry(self, tree):
        """A contains B exactly when A is on B's path from the root."""
        ids = await build_tree(tree)
        parents = {
            "A": "R", "B": "R", "C": "R", "A1": "A", "A2": "A", "B1": "B",
        }

        def ancestors(name: str) -> set[str]:
            found = set()
            while name in parents:
                name = parents[name]
                found.add(name)
            return found

        nodes = {name: await tree.get_node(node_id) for name, node_id in ids.items()}
        for a_name, a in nodes.items():
            for b_name, b in nodes.items():
                assert a.contains(b) == (a_name in ancestors(b_name))

    async def test_node_helpers(self, tree):
        ids = await build_tree(tree)

        a = await tree.get_node(ids["A"])
        assert a.width == 6
        assert not a.is_root
        assert (await tree.get_node(ids["R"])).is_root
