from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Tuple, TypedDict

# Fields returned to callers; anything else a store keeps stays internal.
PUBLIC_POST_FIELDS: Tuple[str, ...] = ("id", "title", "text", "created_at", "updated_at")


# PUBLIC_INTERFACE
class PostEntity(TypedDict):
    """
    Storage-agnostic representation of a Post record as handed out by a
    RecordStore.

    Fields:
    - id: Unique string identifier (UUID formatted)
    - title: Short title (1..32 chars, validated via schemas)
    - text: Post body (non-empty)
    - created_at: Creation timestamp (datetime)
    - updated_at: Last update timestamp (datetime)
    """

    id: str
    title: str
    text: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
def select_public(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Project a stored record onto PUBLIC_POST_FIELDS."""
    return {field: record[field] for field in PUBLIC_POST_FIELDS}
