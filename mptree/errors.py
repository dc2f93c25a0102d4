"""Errors raised by nested-set tree operations."""

from collections.abc import Iterable

import aiosqlite


class TreeError(Exception):
    """Base class for every error this package raises."""


class NotFoundError(TreeError):
    """A node or root required by the caller does not exist."""


class NodeNotFoundError(NotFoundError):
    def __init__(self, node_id: int) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class ConflictError(TreeError):
    def __init__(self, scope: object = None) -> None:
        self.scope = scope
        super().__init__("A root node already exists.")


class NoRootError(TreeError):
    def __init__(self) -> None:
        super().__init__("You must create a root before inserting data.")


class SiblingOfRootError(TreeError):
    def __init__(self) -> None:
        super().__init__("The root node cannot have siblings.")


class RootImmovableError(TreeError):
    def __init__(self) -> None:
        super().__init__("The root node cannot be moved.")


class SelfMoveError(TreeError):
    def __init__(self, node_id: int) -> None:
        self.node_id = node_id
        super().__init__(f"Node {node_id} cannot be moved onto itself.")


class CyclicMoveError(TreeError):
    def __init__(self, node_id: int, target_id: int) -> None:
        self.node_id = node_id
        self.target_id = target_id
        super().__init__(
            f"Node {node_id} cannot be placed relative to its own descendant {target_id}."
        )


class UnsupportedRelationshipError(TreeError, ValueError):
    def __init__(self, relationship: object) -> None:
        self.relationship = relationship
        super().__init__(f"{relationship!r} is not a supported relationship.")


class InvalidSubtreeError(TreeError, ValueError):
    """The relative lft/rgt values passed to insert do not form a packed tree."""


class InvalidAttributeError(TreeError, ValueError):
    def __init__(self, names: Iterable[str]) -> None:
        self.names = sorted(names)
        super().__init__(f"Unknown node attribute(s): {', '.join(map(repr, self.names))}")


class StoreError(TreeError):
    """A backing-store failure. The surrounding operation has been rolled back."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)

    @classmethod
    def wrap(cls, error: Exception) -> "StoreError":
        message = str(error)
        retryable = isinstance(error, aiosqlite.OperationalError) and (
            "locked" in message or "busy" in message
        )
        return cls(f"Store error: {message}", retryable=retryable)
