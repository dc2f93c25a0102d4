"""FastAPI routes exposing nested-set tree operations."""

from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mptree.errors import (
    ConflictError,
    NoRootError,
    NotFoundError,
    StoreError,
    TreeError,
    UnsupportedRelationshipError,
)
from mptree.models import Node
from mptree.trees.schemas import (
    CreatedResponse,
    CreateRootRequest,
    DeleteRequest,
    DeleteResponse,
    InsertRequest,
    InsertResponse,
    MoveRequest,
    MoveResponse,
    NodeResponse,
    ValidationResponse,
)
from mptree.trees.service import NestedSetTree

TreeFactory = Callable[[str | None], NestedSetTree]

router = APIRouter(prefix="/api/tree", tags=["tree"])


def get_tree_factory() -> TreeFactory:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("Tree factory not initialized")


def get_tree(
    scope: str | None = Query(None),
    factory: TreeFactory = Depends(get_tree_factory),
) -> NestedSetTree:
    return factory(scope)


def _http_error(error: TreeError) -> HTTPException:
    """Map a tree error onto the HTTP status callers should see."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (ConflictError, NoRootError)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, UnsupportedRelationshipError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def _node_response(node: Node) -> NodeResponse:
    return NodeResponse.model_validate(node.model_dump())


@router.post("/root", status_code=status.HTTP_201_CREATED)
async def create_root(
    request: CreateRootRequest,
    tree: NestedSetTree = Depends(get_tree),
) -> CreatedResponse:
    try:
        return CreatedResponse(id=await tree.create_root(request.data))
    except TreeError as e:
        raise _http_error(e)


@router.get("/root")
async def get_root(tree: NestedSetTree = Depends(get_tree)) -> NodeResponse:
    root = await tree.get_root_node()
    if root is None:
        raise HTTPException(status_code=404, detail="Root node not found")
    return _node_response(root)


@router.get("")
async def get_full_tree(
    root_id: int | None = Query(None),
    tree: NestedSetTree = Depends(get_tree),
) -> list[NodeResponse]:
    """The tree (or one subtree) in preorder with depths."""
    return [_node_response(node) for node in await tree.get_tree(root_id)]


@router.get("/validate")
async def validate_tree(tree: NestedSetTree = Depends(get_tree)) -> ValidationResponse:
    return ValidationResponse(valid=await tree.validate_tree())


@router.post("/nodes", status_code=status.HTTP_201_CREATED)
async def insert_nodes(
    request: InsertRequest,
    tree: NestedSetTree = Depends(get_tree),
) -> InsertResponse:
    try:
        ids = await tree.insert(
            request.to_payload(), request.relationship, request.reference_id
        )
    except TreeError as e:
        raise _http_error(e)
    if not ids:
        raise HTTPException(
            status_code=404, detail=f"Node not found: {request.reference_id}"
        )
    return InsertResponse(ids=ids)


@router.post("/nodes/delete")
async def delete_nodes(
    request: DeleteRequest,
    tree: NestedSetTree = Depends(get_tree),
) -> DeleteResponse:
    """Delete several subtrees at once. Unknown ids are ignored."""
    try:
        return DeleteResponse(deleted=await tree.delete(request.ids))
    except TreeError as e:
        raise _http_error(e)


@router.get("/nodes/{node_id}")
async def get_node(
    node_id: int,
    tree: NestedSetTree = Depends(get_tree),
) -> NodeResponse:
    try:
        return _node_response(await tree.require_node(node_id))
    except TreeError as e:
        raise _http_error(e)


@router.delete("/nodes/{node_id}")
async def delete_node(
    node_id: int,
    tree: NestedSetTree = Depends(get_tree),
) -> DeleteResponse:
    try:
        return DeleteResponse(deleted=await tree.delete(node_id))
    except TreeError as e:
        raise _http_error(e)


@router.post("/nodes/{node_id}/move")
async def move_node(
    node_id: int,
    request: MoveRequest,
    tree: NestedSetTree = Depends(get_tree),
) -> MoveResponse:
    try:
        moved = await tree.move(node_id, request.relationship, request.target_id)
    except TreeError as e:
        raise _http_error(e)
    if not moved:
        raise HTTPException(status_code=404, detail="Node not found")
    return MoveResponse(moved=moved)
