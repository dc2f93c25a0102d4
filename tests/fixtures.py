"""Shared test helpers: build named trees and read them back compactly."""

from mptree.trees.service import NestedSetTree

# R
# ├── A
# │   ├── A1
# │   └── A2
# ├── B
# │   └── B1
# └── C
STANDARD_SHAPE = (
    "R",
    [
        ("A", [("A1", []), ("A2", [])]),
        ("B", [("B1", [])]),
        ("C", []),
    ],
)

STANDARD_BOUNDS = {
    "R": (1, 14),
    "A": (2, 7),
    "A1": (3, 4),
    "A2": (5, 6),
    "B": (8, 11),
    "B1": (9, 10),
    "C": (12, 13),
}


async def build_tree(tree: NestedSetTree, shape: tuple = STANDARD_SHAPE) -> dict[str, int]:
    """Create a root and its descendants from a nested (name, children) tuple.

    Children are added one at a time (first child, then each next sibling
    after the previous one). Returns a name -> id map.
    """
    root_name, children = shape
    ids = {root_name: await tree.create_root({"name": root_name})}

    async def add(parent: str, nodes: list) -> None:
        previous = None
        for name, grandchildren in nodes:
            if previous is None:
                [node_id] = await tree.insert({"name": name}, "first-child-of", ids[parent])
            else:
                [node_id] = await tree.insert({"name": name}, "after", ids[previous])
            ids[name] = node_id
            previous = name
            await add(name, grandchildren)

    await add(root_name, children)
    return ids


async def bounds(tree: NestedSetTree) -> dict[str, tuple[int, int]]:
    """name -> (lft, rgt) for every node in the tree."""
    return {n.data["name"]: (n.lft, n.rgt) for n in await tree.get_tree()}


async def outline(tree: NestedSetTree, root_id: int | None = None) -> list[tuple[str, int]]:
    """Preorder (name, depth) pairs."""
    return [(n.data["name"], n.depth) for n in await tree.get_tree(root_id)]


async def positions(tree: NestedSetTree) -> list[int]:
    """Every lft and rgt value in the tree, sorted."""
    values = []
    for node in await tree.get_tree():
        values.extend((node.lft, node.rgt))
    return sorted(values)


async def assert_packed(tree: NestedSetTree) -> None:
    """The tree validates and its boundaries are exactly 1..2n."""
    nodes = await tree.get_tree()
    assert await tree.validate_tree()
    assert await positions(tree) == list(range(1, 2 * len(nodes) + 1))
