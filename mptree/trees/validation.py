"""Structural checks over nested-set boundaries.

Pure functions: they take already-loaded nodes (or lft/rgt pairs) and never
touch the database, so the same checks serve ``validate_tree`` and the shape
check ``insert`` runs on caller-supplied relative coordinates.
"""

from collections.abc import Iterable

from mptree.models import TreeNode


def is_valid_tree(nodes: Iterable[TreeNode]) -> bool:
    """Validate a preorder sequence of nodes annotated with depth.

    Checks, in order: every node has lft < rgt; no boundary value is used
    twice; every node lies strictly inside its parent, where the parent is
    recovered from the depth sequence with an explicit ancestor stack; and
    the full set of boundaries is exactly 1..2n. An empty tree is valid.
    """
    ancestors: list[TreeNode] = []
    previous: TreeNode | None = None
    positions: set[int] = set()

    for node in nodes:
        if previous is not None:
            if node.depth > previous.depth:
                ancestors.append(previous)
            elif node.depth < previous.depth:
                for _ in range(previous.depth - node.depth):
                    if ancestors:
                        ancestors.pop()

        if node.lft >= node.rgt:
            return False
        if node.lft in positions or node.rgt in positions:
            return False
        if ancestors:
            parent = ancestors[-1]
            if node.lft <= parent.lft or node.rgt >= parent.rgt:
                return False

        positions.add(node.lft)
        positions.add(node.rgt)
        previous = node

    return is_packed(positions)


def is_packed(positions: Iterable[int]) -> bool:
    """True if positions are exactly the integers 1..len(positions)."""
    ordered = sorted(positions)
    if not ordered:
        return True
    return ordered[0] == 1 and ordered[-1] == len(ordered) and len(set(ordered)) == len(ordered)


def is_valid_subtree_shape(pairs: Iterable[tuple[int, int]]) -> bool:
    """Check relative (lft, rgt) pairs describing a subtree to insert.

    The pairs must form one packed tree whose root is at lft=1: intervals
    nest without partial overlap and the boundaries are exactly 1..2n.
    Input order does not matter.
    """
    ordered = sorted(pairs)
    if not ordered:
        return False
    if ordered[0][0] != 1 or ordered[0][1] != 2 * len(ordered):
        return False

    open_intervals: list[tuple[int, int]] = []
    positions: list[int] = []
    for lft, rgt in ordered:
        if lft >= rgt:
            return False
        while open_intervals and open_intervals[-1][1] < lft:
            open_intervals.pop()
        if open_intervals and rgt >= open_intervals[-1][1]:
            return False
        open_intervals.append((lft, rgt))
        positions.extend((lft, rgt))

    return is_packed(positions)
