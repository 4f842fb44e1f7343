import uuid
from datetime import datetime

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from post_api.db import SQLRecordStore
from post_api.errors import ConflictError, NotFoundError
from post_api.repositories import InMemoryRecordStore
from post_api.schemas import PostCreate, PostListInput, PostUpdate
from post_api.services import PostService


@pytest.fixture
def service(store):
    return PostService(store)


def add(service, title="Title", text="Body", **kwargs):
    return service.add_post(PostCreate(title=title, text=text, **kwargs))


def list_page(service, limit=None, cursor=None):
    return service.list_posts(PostListInput(limit=limit, cursor=cursor))


class TestAddAndGet:
    def test_add_then_list_single_post(self, service):
        post = add(service, title="Hello", text="World")
        uuid.UUID(post.id)
        assert post.title == "Hello"
        assert post.text == "World"

        page = list_page(service, limit=1)
        assert [p.id for p in page.items] == [post.id]
        assert page.next_cursor is None

    def test_generated_ids_are_unique(self, service):
        ids = {add(service, title=f"Post {i}").id for i in range(5)}
        assert len(ids) == 5

    def test_add_with_client_id(self, service):
        pid = str(uuid.uuid4())
        post = add(service, id=pid)
        assert post.id == pid
        assert service.get_post(pid).id == pid

    def test_add_duplicate_id_conflicts(self, service):
        pid = str(uuid.uuid4())
        add(service, id=pid, title="First")
        with pytest.raises(ConflictError) as exc:
            add(service, id=pid, title="Second")
        assert exc.value.code == "CONFLICT"
        assert service.get_post(pid).title == "First"
        assert len(list_page(service).items) == 1

    def test_get_returns_public_fields_only(self, service):
        created = add(service, title="Hello", text="World")
        fetched = service.get_post(created.id)
        dumped = fetched.model_dump(by_alias=True)
        assert set(dumped) == {"id", "title", "text", "createdAt", "updatedAt"}
        assert fetched == created
        assert fetched.created_at == fetched.updated_at

    def test_get_missing_raises_not_found(self, service):
        with pytest.raises(NotFoundError) as exc:
            service.get_post("does-not-exist")
        assert exc.value.code == "NOT_FOUND"
        assert exc.value.message == "No post with id 'does-not-exist'"


class TestUpdate:
    def test_update_title_only(self, service):
        created = add(service, title="Before", text="Unchanged")
        updated = service.update_post(PostUpdate(id=created.id, title="After"))
        assert updated.id == created.id
        assert updated.title == "After"
        assert updated.text == "Unchanged"
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at
        assert service.get_post(created.id) == updated

    def test_update_text_only(self, service):
        created = add(service, title="Keep", text="Old")
        updated = service.update_post(PostUpdate(id=created.id, text="New"))
        assert updated.title == "Keep"
        assert updated.text == "New"

    def test_update_without_fields_refreshes_updated_at(self, service):
        created = add(service)
        updated = service.update_post(PostUpdate(id=created.id))
        assert (updated.title, updated.text) == (created.title, created.text)
        assert updated.updated_at > created.updated_at

    def test_update_missing_raises_not_found(self, service):
        pid = str(uuid.uuid4())
        with pytest.raises(NotFoundError) as exc:
            service.update_post(PostUpdate(id=pid, title="Nope"))
        assert exc.value.message == f"No post with id '{pid}' to update"
        # nothing was created by the failed update
        assert list_page(service).items == []


class TestListPagination:
    def seed(self, service, count):
        return [add(service, title=f"Post {i}").id for i in range(count)]

    def test_pages_are_oldest_first_with_next_cursor(self, service):
        ids = self.seed(service, 5)

        first = list_page(service, limit=2)
        assert [p.id for p in first.items] == [ids[3], ids[4]]
        assert first.next_cursor == ids[2]

        second = list_page(service, limit=2, cursor=first.next_cursor)
        assert [p.id for p in second.items] == [ids[1], ids[2]]
        assert second.next_cursor == ids[0]

        third = list_page(service, limit=2, cursor=second.next_cursor)
        assert [p.id for p in third.items] == [ids[0]]
        assert third.next_cursor is None

    @pytest.mark.parametrize("limit", [1, 3, 7, 100])
    def test_walk_has_no_gap_or_overlap(self, service, limit):
        ids = self.seed(service, 7)
        seen = []
        cursor = None
        while True:
            page = list_page(service, limit=limit, cursor=cursor)
            assert len(page.items) <= limit
            created = [p.created_at for p in page.items]
            assert created == sorted(created)
            seen.extend(p.id for p in page.items)
            cursor = page.next_cursor
            if cursor is None:
                break
        assert sorted(seen) == sorted(ids)
        assert len(seen) == len(set(seen))

    def test_exact_page_has_no_next_cursor(self, service):
        self.seed(service, 3)
        page = list_page(service, limit=3)
        assert len(page.items) == 3
        assert page.next_cursor is None

    def test_default_limit_is_fifty(self, service):
        ids = self.seed(service, 51)
        page = list_page(service)
        assert len(page.items) == 50
        assert page.next_cursor == ids[0]

    def test_unknown_cursor_returns_empty_page(self, service):
        self.seed(service, 2)
        page = list_page(service, cursor="no-such-post")
        assert page.items == []
        assert page.next_cursor is None

    def test_empty_store(self, service):
        page = list_page(service, limit=10)
        assert page.items == []
        assert page.next_cursor is None


class TestEqualTimestamps:
    @pytest.fixture(params=["memory", "sql"])
    def frozen_service(self, request):
        frozen = datetime(2025, 1, 1, 12, 0, 0)
        if request.param == "memory":
            yield PostService(InMemoryRecordStore(clock=lambda: frozen))
            return
        store = SQLRecordStore("sqlite://", clock=lambda: frozen)
        yield PostService(store)
        store.engine.dispose()

    @pytest.mark.parametrize("limit", [1, 2, 3])
    def test_walk_orders_ties_by_id(self, frozen_service, limit):
        ids = [add(frozen_service, title=f"Post {i}").id for i in range(7)]
        seen = []
        cursor = None
        while True:
            page = list_page(frozen_service, limit=limit, cursor=cursor)
            page_ids = [p.id for p in page.items]
            assert len(page_ids) <= limit
            # oldest first within the page means ascending id on ties
            assert page_ids == sorted(page_ids)
            seen.extend(page_ids)
            cursor = page.next_cursor
            if cursor is None:
                break
        assert len(seen) == len(set(seen))
        assert sorted(seen) == sorted(ids)


class TestSQLIntegrity:
    def test_non_key_integrity_error_propagates(self, sql_store):
        with pytest.raises(IntegrityError):
            sql_store.create({"title": None, "text": "x"})
        assert sql_store.find_many(take=10) == []

    def test_duplicate_key_is_conflict(self, sql_store):
        created = sql_store.create({"title": "First", "text": "x"})
        with pytest.raises(ConflictError):
            sql_store.create({"id": created["id"], "title": "Second", "text": "x"})


class TestInputValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"title": "", "text": "x"},
            {"title": "x" * 33, "text": "x"},
            {"title": "x", "text": ""},
            {"id": "not-a-uuid", "title": "x", "text": "x"},
            {"id": None, "title": "x", "text": "x"},
        ],
    )
    def test_create_rejects_invalid_input(self, kwargs):
        with pytest.raises(ValidationError):
            PostCreate(**kwargs)

    def test_create_accepts_boundary_title(self):
        assert PostCreate(title="x" * 32, text="x").title == "x" * 32

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"id": "not-a-uuid"},
            {"id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11", "title": ""},
            {"id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11", "title": "x" * 33},
            {"id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11", "text": ""},
            {"id": "7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11", "title": None},
        ],
    )
    def test_update_rejects_invalid_input(self, kwargs):
        with pytest.raises(ValidationError):
            PostUpdate(**kwargs)

    def test_update_changes_only_supplied_fields(self):
        update = PostUpdate(id="7f0c3f7e-3c1b-4f7a-9a59-2b1f0d6b8e11", text="New")
        assert update.changes() == {"text": "New"}

    @pytest.mark.parametrize("limit", [0, 101, -1])
    def test_list_rejects_out_of_range_limit(self, limit):
        with pytest.raises(ValidationError):
            PostListInput(limit=limit)

    def test_list_effective_limit(self):
        assert PostListInput().effective_limit == 50
        assert PostListInput(limit=7).effective_limit == 7
