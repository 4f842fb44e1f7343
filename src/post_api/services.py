"""
Post access operations over an injected RecordStore.

Inputs arrive as validated schema models; every result is projected through
PostOut so no storage column outside the public field set reaches a caller.
"""
from __future__ import annotations

import logging

from .errors import ConflictError, NotFoundError
from .models import select_public
from .repositories import RecordStore
from .schemas import PostCreate, PostListInput, PostOut, PostPage, PostUpdate

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class PostService:
    """List, fetch, add and update posts."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list_posts(self, query: PostListInput) -> PostPage:
        """
        Return one page of posts, oldest first.

        Fetches limit+1 records newest first starting at the cursor; the extra
        record, if present, is dropped and its id becomes next_cursor.
        """
        limit = query.effective_limit
        # An empty cursor means the first page
        items = self._store.find_many(take=limit + 1, cursor=query.cursor or None)
        next_cursor = None
        if len(items) > limit:
            next_item = items.pop()
            next_cursor = next_item["id"]
        items.reverse()
        logger.debug(
            "Listed %d posts (limit=%d, cursor=%s, next_cursor=%s)",
            len(items),
            limit,
            query.cursor,
            next_cursor,
        )
        return PostPage(items=[PostOut(**select_public(it)) for it in items], next_cursor=next_cursor)

    def get_post(self, post_id: str) -> PostOut:
        post = self._store.find_unique(post_id)
        if post is None:
            logger.warning("Post %s not found", post_id)
            raise NotFoundError(f"No post with id '{post_id}'")
        return PostOut(**select_public(post))

    def add_post(self, payload: PostCreate) -> PostOut:
        try:
            created = self._store.create(payload.model_dump(exclude_none=True))
        except ConflictError:
            logger.warning("Rejected duplicate post id %s", payload.id)
            raise
        logger.info("Created post %s", created["id"])
        return PostOut(**select_public(created))

    def update_post(self, payload: PostUpdate) -> PostOut:
        """
        Merge the supplied fields into an existing post and refresh updated_at.
        """
        changes = payload.changes()
        updated = self._store.update(payload.id, changes)
        if updated is None:
            logger.warning("Post %s not found for update", payload.id)
            raise NotFoundError(f"No post with id '{payload.id}' to update")
        logger.info("Updated post %s (%s)", payload.id, ", ".join(sorted(changes)) or "no fields")
        return PostOut(**select_public(updated))
