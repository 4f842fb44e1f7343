from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy import DateTime, Index, String, Text, and_, create_engine, or_, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import ConflictError
from .models import PostEntity, select_public
from .repositories import Clock, RecordStore, new_post_id
from .schemas import TITLE_MAX_LENGTH

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class PostRow(Base):
    __tablename__ = "posts"
    __table_args__ = (
        # Page scans: ORDER BY created_at DESC, id DESC
        Index("ix_posts_created_at_id", "created_at", "id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH))
    text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime)
    updated_at: Mapped[datetime] = mapped_column(DateTime)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for DATABASE_URL. SQLite files get their parent directory
    created; in-memory SQLite shares one connection across threads.
    """
    url = make_url(database_url)
    kwargs: dict = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
    return create_engine(url, **kwargs)


class SQLRecordStore(RecordStore):
    """
    SQLAlchemy ORM record store. Every call runs in its own transaction.
    """

    def __init__(self, database_url: str, echo: bool = False, clock: Optional[Clock] = None) -> None:
        self._engine = create_db_engine(database_url, echo=echo)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        self._clock = clock or datetime.now
        Base.metadata.create_all(self._engine)
        logger.info(
            "Initialized posts table at %s",
            self._engine.url.render_as_string(hide_password=True),
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def _now(self) -> datetime:
        return self._clock()

    def _to_entity(self, row: PostRow) -> PostEntity:
        return select_public(
            {
                "id": row.id,
                "title": row.title,
                "text": row.text,
                "created_at": row.created_at,
                "updated_at": row.updated_at,
            }
        )  # type: ignore[return-value]

    def create(self, data: Mapping[str, Any]) -> PostEntity:
        post_id = data.get("id") or new_post_id()
        now = self._now()
        row = PostRow(id=post_id, title=data["title"], text=data["text"], created_at=now, updated_at=now)
        try:
            with self._sessions.begin() as session:
                session.add(row)
                session.flush()
                return self._to_entity(row)
        except IntegrityError as e:
            # Only a primary key collision is a conflict; other failures propagate
            if self.find_unique(post_id) is None:
                raise
            raise ConflictError(f"Post with id '{post_id}' already exists") from e

    def find_unique(self, post_id: str) -> Optional[PostEntity]:
        with self._sessions() as session:
            row = session.get(PostRow, post_id)
            return self._to_entity(row) if row else None

    def find_many(self, take: int, cursor: Optional[str] = None) -> List[PostEntity]:
        stmt = (
            select(PostRow)
            .order_by(PostRow.created_at.desc(), PostRow.id.desc())
            .limit(max(take, 0))
        )
        with self._sessions() as session:
            if cursor is not None:
                anchor = session.get(PostRow, cursor)
                if anchor is None:
                    return []
                stmt = stmt.where(
                    or_(
                        PostRow.created_at < anchor.created_at,
                        and_(PostRow.created_at == anchor.created_at, PostRow.id <= anchor.id),
                    )
                )
            rows = session.scalars(stmt).all()
            return [self._to_entity(r) for r in rows]

    def update(self, post_id: str, changes: Mapping[str, Any]) -> Optional[PostEntity]:
        with self._sessions.begin() as session:
            row = session.get(PostRow, post_id)
            if row is None:
                return None
            for field in ("title", "text"):
                if field in changes:
                    setattr(row, field, changes[field])
            row.updated_at = self._now()
            session.flush()
            return self._to_entity(row)
