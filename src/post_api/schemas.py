from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100
TITLE_MAX_LENGTH = 32

# Canonical hyphenated form, any version.
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


def _reject_null(v):
    if v is None:
        raise ValueError("field may be omitted but not null")
    return v


# PUBLIC_INTERFACE
class PostListInput(BaseModel):
    """
    Input of the post.list procedure.
    """

    limit: Optional[int] = Field(
        default=None,
        ge=1,
        le=MAX_LIST_LIMIT,
        description=f"Page size (1..{MAX_LIST_LIMIT}); {DEFAULT_LIST_LIMIT} when omitted",
    )
    cursor: Optional[str] = Field(default=None, description="Id of the post the page starts at")

    @property
    def effective_limit(self) -> int:
        return DEFAULT_LIST_LIMIT if self.limit is None else self.limit


# PUBLIC_INTERFACE
class PostCreate(BaseModel):
    """
    Schema for creating a new Post.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Hello",
                "text": "World",
            }
        }
    )

    id: Optional[str] = Field(
        default=None,
        pattern=UUID_PATTERN,
        description="Client supplied UUID; generated by the store when omitted",
    )
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Post title")
    text: str = Field(..., min_length=1, description="Post body")

    @field_validator("id", mode="before")
    @classmethod
    def reject_null_id(cls, v: Optional[str]) -> str:
        """
        Omit id to have one generated; an explicit null is not a valid id.
        """
        return _reject_null(v)


# PUBLIC_INTERFACE
class PostUpdate(BaseModel):
    """
    Schema for updating an existing Post.
    Only the supplied fields are merged into the stored record.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11",
                "title": "Hello again",
            }
        }
    )

    id: str = Field(..., pattern=UUID_PATTERN, description="Id of the post to update")
    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    text: Optional[str] = Field(default=None, min_length=1)

    @field_validator("title", "text", mode="before")
    @classmethod
    def reject_null(cls, v: Optional[str]) -> str:
        """
        Omit a field to leave it unchanged; an explicit null is not a valid value.
        """
        return _reject_null(v)

    def changes(self) -> dict:
        """Return the supplied fields other than id."""
        return self.model_dump(include={"title", "text"}, exclude_unset=True)


# PUBLIC_INTERFACE
class PostOut(BaseModel):
    """
    Public shape of a Post. This is the only field set ever returned to callers.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11",
                "title": "Hello",
                "text": "World",
                "createdAt": "2025-01-25T10:15:30.123456",
                "updatedAt": "2025-01-26T09:00:00.000001",
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the post")
    title: str = Field(..., description="Post title")
    text: str = Field(..., description="Post body")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class PostPage(BaseModel):
    """
    One page of posts, oldest first, plus the cursor of the next page if any.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[PostOut] = Field(..., description="Posts in this page")
    next_cursor: Optional[str] = Field(
        default=None, description="Id of the first post not in this page; absent on the last page"
    )
