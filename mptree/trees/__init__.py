"""Nested-set tree operations and their HTTP front end."""

from mptree.trees.service import NestedSetTree

__all__ = ["NestedSetTree"]
