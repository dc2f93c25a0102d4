"""Request and response schemas for the tree endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from mptree.models import Relationship

# -- Requests --


class CreateRootRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class SubtreeNode(BaseModel):
    """One node of a pre-shaped subtree, in coordinates relative to its root."""

    lft: int = Field(ge=1)
    rgt: int = Field(ge=2)
    data: dict[str, Any] = Field(default_factory=dict)


class InsertRequest(BaseModel):
    """Insert a single node (``data``) or a whole subtree (``nodes``)."""

    relationship: Relationship
    reference_id: int
    data: dict[str, Any] | None = None
    nodes: list[SubtreeNode] | None = None

    def to_payload(self) -> dict[str, Any] | list[dict[str, Any]]:
        if self.nodes:
            return [{**n.data, "lft": n.lft, "rgt": n.rgt} for n in self.nodes]
        return self.data or {}


class MoveRequest(BaseModel):
    relationship: Relationship
    target_id: int


class DeleteRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


# -- Responses --


class NodeResponse(BaseModel):
    id: int
    lft: int
    rgt: int
    scope: str | int | None = None
    depth: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class CreatedResponse(BaseModel):
    id: int


class InsertResponse(BaseModel):
    ids: list[int]


class MoveResponse(BaseModel):
    moved: bool


class DeleteResponse(BaseModel):
    deleted: list[int]


class ValidationResponse(BaseModel):
    valid: bool
