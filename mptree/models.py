"""Canonical data structures for nested-set trees.

Defined once here, referenced everywhere else. ``Node`` mirrors one table
row; ``TreeNode`` adds the depth computed when reading a whole tree.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from mptree.errors import UnsupportedRelationshipError

# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


class Relationship(str, Enum):
    """Where a node or subtree is placed relative to a reference node."""

    FIRST_CHILD_OF = "first-child-of"
    LAST_CHILD_OF = "last-child-of"
    BEFORE = "before"
    AFTER = "after"

    @classmethod
    def parse(cls, value: "Relationship | str") -> "Relationship":
        """Coerce a string tag. Raises UnsupportedRelationshipError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedRelationshipError(value) from None

    @property
    def is_sibling(self) -> bool:
        return self in (Relationship.BEFORE, Relationship.AFTER)

    def gap_limit(self, reference: "Node") -> int:
        """Boundary value after which the gap opens.

        Every boundary strictly greater than the limit is shifted; the gap
        starts at ``limit + 1``.
        """
        if self is Relationship.FIRST_CHILD_OF:
            return reference.lft
        if self is Relationship.LAST_CHILD_OF:
            return reference.rgt - 1
        if self is Relationship.BEFORE:
            return reference.lft - 1
        if self is Relationship.AFTER:
            return reference.rgt
        raise UnsupportedRelationshipError(self)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Node(BaseModel):
    id: int
    lft: int
    rgt: int
    scope: str | int | None = None
    data: dict[str, Any] = Field(default_factory=dict)  # caller-defined columns

    @property
    def width(self) -> int:
        """Number of boundary values the subtree occupies (2 per node)."""
        return self.rgt - self.lft + 1

    @property
    def is_root(self) -> bool:
        return self.lft == 1

    def contains(self, other: "Node") -> bool:
        """True if other lies strictly inside this node's interval."""
        return self.lft < other.lft and other.rgt < self.rgt


class TreeNode(Node):
    depth: int
