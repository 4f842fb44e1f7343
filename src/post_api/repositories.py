from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ConflictError
from .models import PostEntity
from .settings import get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def new_post_id() -> str:
    return str(uuid.uuid4())


def _sort_key(entity: PostEntity) -> tuple:
    # Ascending (created_at, id); callers pass reverse=True for newest first
    return (entity["created_at"], entity["id"])


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """Abstract record store contract for post storage backends."""

    @abstractmethod
    def create(self, data: Mapping[str, Any]) -> PostEntity:
        """
        Create and return a new PostEntity from title/text and an optional id.
        Raise ConflictError if the id is already taken.
        """

    @abstractmethod
    def find_unique(self, post_id: str) -> Optional[PostEntity]:
        """Return a PostEntity by id, or None if not found."""

    @abstractmethod
    def find_many(self, take: int, cursor: Optional[str] = None) -> List[PostEntity]:
        """
        Return up to `take` PostEntities ordered by created_at descending
        (id descending on ties).
        - With a cursor, the scan starts at (and includes) the post with that id
        - An unknown cursor yields an empty list
        """

    @abstractmethod
    def update(self, post_id: str, changes: Mapping[str, Any]) -> Optional[PostEntity]:
        """
        Merge `changes` into an existing PostEntity and refresh updated_at.
        Return the updated entity or None if not found.
        """


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-memory record store suitable for testing.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._lock = RLock()
        self._items: Dict[str, PostEntity] = {}
        self._clock = clock or datetime.now

    def _now(self) -> datetime:
        return self._clock()

    def create(self, data: Mapping[str, Any]) -> PostEntity:
        post_id = data.get("id") or new_post_id()
        with self._lock:
            if post_id in self._items:
                raise ConflictError(f"Post with id '{post_id}' already exists")
            now = self._now()
            entity: PostEntity = {
                "id": post_id,
                "title": data["title"],
                "text": data["text"],
                "created_at": now,
                "updated_at": now,
            }
            self._items[post_id] = entity
            return entity.copy()  # type: ignore[return-value]

    def find_unique(self, post_id: str) -> Optional[PostEntity]:
        with self._lock:
            item = self._items.get(post_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def find_many(self, take: int, cursor: Optional[str] = None) -> List[PostEntity]:
        with self._lock:
            ordered = sorted(self._items.values(), key=_sort_key, reverse=True)
            start = 0
            if cursor is not None:
                anchor = self._items.get(cursor)
                if anchor is None:
                    return []
                start = ordered.index(anchor)
            page = ordered[start:start + max(take, 0)]
            # Return copies to avoid external mutation
            return [p.copy() for p in page]  # type: ignore[misc]

    def update(self, post_id: str, changes: Mapping[str, Any]) -> Optional[PostEntity]:
        with self._lock:
            existing = self._items.get(post_id)
            if existing is None:
                return None

            updated = existing.copy()
            for field in ("title", "text"):
                if field in changes:
                    updated[field] = changes[field]  # type: ignore[literal-required]
            updated["updated_at"] = self._now()

            self._items[post_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    """
    Return the process-wide record store for the configured backend.
    - sql: SQLRecordStore on DATABASE_URL
    - memory: InMemoryRecordStore
    """
    settings = get_settings()
    if settings.persistence_backend == "memory":
        logger.info("Using in-memory record store")
        return InMemoryRecordStore()

    from .db import SQLRecordStore

    logger.info("Using SQL record store")
    return SQLRecordStore(settings.database_url, echo=settings.database_echo)
