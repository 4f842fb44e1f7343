from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..repositories import RecordStore, get_store
from ..schemas import MAX_LIST_LIMIT, PostCreate, PostListInput, PostOut, PostPage, PostUpdate
from ..services import PostService

router = APIRouter(
    prefix="/api/v1",
    tags=["posts"],
)


def _get_service(store: RecordStore = Depends(get_store)) -> PostService:
    """
    Dependency wrapper building the service over the configured store.
    """
    return PostService(store)


# PUBLIC_INTERFACE
@router.get(
    "/post.list",
    response_model=PostPage,
    response_model_exclude_none=True,
    summary="List Posts",
    description=(
        "List posts with cursor pagination.\n\n"
        "Query parameters:\n"
        f"- limit: page size (1..{MAX_LIST_LIMIT}, default 50)\n"
        "- cursor: nextCursor from the previous page\n\n"
        "Items are ordered oldest first within the page; nextCursor is absent on the last page."
    ),
    responses={
        200: {"description": "Page retrieved successfully"},
        422: {"description": "Invalid query parameters"},
    },
)
def list_posts(
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIST_LIMIT, description="Maximum number of items to return"),
    cursor: Optional[str] = Query(None, description="Id of the post the page starts at"),
    service: PostService = Depends(_get_service),
) -> PostPage:
    """
    List one page of posts.
    """
    return service.list_posts(PostListInput(limit=limit, cursor=cursor))


# PUBLIC_INTERFACE
@router.get(
    "/post.byId",
    response_model=PostOut,
    summary="Get Post",
    description="Get a single post by id.",
    responses={
        200: {"description": "Post found"},
        404: {"description": "Post not found"},
    },
)
def get_post(
    id: str = Query(..., description="Id of the post"),
    service: PostService = Depends(_get_service),
) -> PostOut:
    """
    Retrieve a single post by its id.
    """
    return service.get_post(id)


# PUBLIC_INTERFACE
@router.post(
    "/post.add",
    response_model=PostOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add Post",
    description="Create a new post and return it. The id is generated when omitted.",
    responses={
        201: {"description": "Post created successfully"},
        409: {"description": "A post with this id already exists"},
        422: {"description": "Validation error"},
    },
)
def add_post(payload: PostCreate, service: PostService = Depends(_get_service)) -> PostOut:
    return service.add_post(payload)


# PUBLIC_INTERFACE
@router.post(
    "/post.update",
    response_model=PostOut,
    summary="Update Post",
    description="Partially update a post. Omitted fields keep their values.",
    responses={
        200: {"description": "Post updated"},
        404: {"description": "Post not found"},
        422: {"description": "Validation error"},
    },
)
def update_post(payload: PostUpdate, service: PostService = Depends(_get_service)) -> PostOut:
    return service.update_post(payload)
