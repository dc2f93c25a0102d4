"""Nested-set (modified preorder tree traversal) trees in a relational table."""

from mptree.db.connection import Database
from mptree.db.schema import ensure_tree_table
from mptree.errors import (
    ConflictError,
    CyclicMoveError,
    InvalidAttributeError,
    InvalidSubtreeError,
    NodeNotFoundError,
    NoRootError,
    NotFoundError,
    RootImmovableError,
    SelfMoveError,
    SiblingOfRootError,
    StoreError,
    TreeError,
    UnsupportedRelationshipError,
)
from mptree.models import Node, Relationship, TreeNode
from mptree.trees.service import NestedSetTree

__all__ = [
    "ConflictError",
    "CyclicMoveError",
    "Database",
    "InvalidAttributeError",
    "InvalidSubtreeError",
    "NestedSetTree",
    "Node",
    "NodeNotFoundError",
    "NoRootError",
    "NotFoundError",
    "Relationship",
    "RootImmovableError",
    "SelfMoveError",
    "SiblingOfRootError",
    "StoreError",
    "TreeError",
    "TreeNode",
    "UnsupportedRelationshipError",
    "ensure_tree_table",
]
