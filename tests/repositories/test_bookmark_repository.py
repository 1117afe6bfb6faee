"""
Contract tests run against every storage backend.

Each test receives the `repository` fixture, which is parametrized over the
in-memory, SQLite, and Redis (fakeredis) implementations.
"""
from datetime import UTC, datetime, timedelta

import pytest

from repositories import BookmarkRepository
from schemas.bookmark import Bookmark, BookmarkQuery
from services.exceptions import NotFoundError, StorageError

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _bookmark(user_id: str = "user-1", url: str = "https://example.com", **kwargs) -> Bookmark:  # noqa: ANN003
    return Bookmark(user_id=user_id, url=url, **kwargs)


async def _create_series(
    repository: BookmarkRepository,
    count: int,
    user_id: str = "user-1",
    archived: bool = False,
) -> list[Bookmark]:
    """Create `count` bookmarks one minute apart, oldest first."""
    created = []
    for i in range(count):
        created.append(
            await repository.create(
                _bookmark(
                    user_id=user_id,
                    url=f"https://example.com/{i}",
                    is_archived=archived,
                    created_at=BASE_TIME + timedelta(minutes=i),
                ),
            ),
        )
    return created


async def test__create__assigns_id_and_timestamps(repository: BookmarkRepository) -> None:
    before = datetime.now(UTC)
    created = await repository.create(_bookmark(title="Example"))

    assert created.id
    assert created.created_at is not None
    assert created.updated_at is not None
    assert created.created_at >= before - timedelta(seconds=1)
    assert created.created_at.tzinfo is not None
    assert created.title == "Example"


async def test__create__ids_are_unique(repository: BookmarkRepository) -> None:
    created = [
        await repository.create(_bookmark(url=f"https://example.com/{i}")) for i in range(20)
    ]
    assert len({b.id for b in created}) == 20


async def test__create__keeps_explicit_id(repository: BookmarkRepository) -> None:
    created = await repository.create(_bookmark(id="explicit-id"))
    assert created.id == "explicit-id"
    assert (await repository.get("explicit-id")).url == "https://example.com"


async def test__create__duplicate_explicit_id_raises_storage_error(
    repository: BookmarkRepository,
) -> None:
    await repository.create(_bookmark(id="dup"))
    with pytest.raises(StorageError):
        await repository.create(_bookmark(id="dup", url="https://other.example.com"))


async def test__get__round_trips_all_fields(repository: BookmarkRepository) -> None:
    created = await repository.create(
        _bookmark(
            title="Title",
            main_image_url="https://example.com/a.png",
            content_summary="Summary text",
        ),
    )
    fetched = await repository.get(created.id)
    assert fetched == created


async def test__get__missing_raises_not_found(repository: BookmarkRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.get("does-not-exist")


async def test__list__newest_first(repository: BookmarkRepository) -> None:
    created = await _create_series(repository, 5)
    listed = await repository.list(BookmarkQuery(user_id="user-1"))
    assert [b.id for b in listed] == [b.id for b in reversed(created)]


@pytest.mark.parametrize(
    "insert_order",
    [[0, 1, 2, 3, 4], [4, 3, 2, 1, 0], [2, 4, 0, 3, 1]],
    ids=["oldest_first", "newest_first", "shuffled"],
)
async def test__list__order_independent_of_insertion_order(
    repository: BookmarkRepository,
    insert_order: list[int],
) -> None:
    # Minutes 1 and 2 share a timestamp so the id tiebreaker is exercised too
    minutes = [0, 1, 1, 3, 4]
    for i in insert_order:
        await repository.create(
            _bookmark(
                id=f"bm-{i}",
                url=f"https://example.com/{i}",
                created_at=BASE_TIME + timedelta(minutes=minutes[i]),
            ),
        )

    listed = await repository.list(BookmarkQuery(user_id="user-1"))
    assert [b.id for b in listed] == ["bm-4", "bm-3", "bm-2", "bm-1", "bm-0"]

    paged = await repository.list(BookmarkQuery(user_id="user-1", page=2, page_size=2))
    assert [b.id for b in paged] == ["bm-2", "bm-1"]


async def test__list__ties_broken_by_id_descending(repository: BookmarkRepository) -> None:
    for bookmark_id in ("a", "c", "b"):
        await repository.create(_bookmark(id=bookmark_id, created_at=BASE_TIME))
    listed = await repository.list(BookmarkQuery(user_id="user-1"))
    assert [b.id for b in listed] == ["c", "b", "a"]


async def test__list__filters_by_user_and_archive_state(
    repository: BookmarkRepository,
) -> None:
    await _create_series(repository, 2, user_id="user-1")
    await _create_series(repository, 3, user_id="user-1", archived=True)
    await _create_series(repository, 4, user_id="user-2")

    active = await repository.list(BookmarkQuery(user_id="user-1", archived=False))
    archived = await repository.list(BookmarkQuery(user_id="user-1", archived=True))
    other = await repository.list(BookmarkQuery(user_id="user-2"))

    assert len(active) == 2
    assert all(not b.is_archived and b.user_id == "user-1" for b in active)
    assert len(archived) == 3
    assert all(b.is_archived for b in archived)
    assert len(other) == 4


async def test__list__no_matches_returns_empty(repository: BookmarkRepository) -> None:
    assert await repository.list(BookmarkQuery(user_id="nobody")) == []


async def test__list__pagination_windows(repository: BookmarkRepository) -> None:
    created = await _create_series(repository, 7)
    newest_first = [b.id for b in reversed(created)]

    page1 = await repository.list(BookmarkQuery(user_id="user-1", page=1, page_size=3))
    page2 = await repository.list(BookmarkQuery(user_id="user-1", page=2, page_size=3))
    page3 = await repository.list(BookmarkQuery(user_id="user-1", page=3, page_size=3))

    assert [b.id for b in page1] == newest_first[0:3]
    assert [b.id for b in page2] == newest_first[3:6]
    assert [b.id for b in page3] == newest_first[6:7]


async def test__list__out_of_range_page_is_empty(repository: BookmarkRepository) -> None:
    await _create_series(repository, 3)
    assert await repository.list(BookmarkQuery(user_id="user-1", page=5, page_size=10)) == []


async def test__list__page_past_64_bit_offset_is_empty(repository: BookmarkRepository) -> None:
    await _create_series(repository, 3)
    query = BookmarkQuery(user_id="user-1", page=10**18, page_size=100)
    assert await repository.list(query) == []
    assert await repository.count(query) == 3


async def test__list__huge_page_size_returns_everything(repository: BookmarkRepository) -> None:
    created = await _create_series(repository, 3)
    listed = await repository.list(BookmarkQuery(user_id="user-1", page=1, page_size=2**70))
    assert [b.id for b in listed] == [b.id for b in reversed(created)]


async def test__list__unpaginated_when_either_value_is_zero(
    repository: BookmarkRepository,
) -> None:
    await _create_series(repository, 4)
    assert len(await repository.list(BookmarkQuery(user_id="user-1", page=2, page_size=0))) == 4
    assert len(await repository.list(BookmarkQuery(user_id="user-1", page=0, page_size=2))) == 4


async def test__count__ignores_pagination(repository: BookmarkRepository) -> None:
    await _create_series(repository, 6)
    await _create_series(repository, 2, archived=True)

    assert await repository.count(BookmarkQuery(user_id="user-1", page=1, page_size=2)) == 6
    assert await repository.count(BookmarkQuery(user_id="user-1", archived=True)) == 2
    assert await repository.count(BookmarkQuery(user_id="user-2")) == 0


async def test__update__preserves_created_at_and_user_id(
    repository: BookmarkRepository,
) -> None:
    created = await repository.create(_bookmark(created_at=BASE_TIME))

    changed = created.model_copy(
        update={
            "title": "New title",
            "user_id": "someone-else",
            "created_at": BASE_TIME + timedelta(days=30),
        },
    )
    updated = await repository.update(changed)

    assert updated.title == "New title"
    assert updated.user_id == "user-1"
    assert updated.created_at == BASE_TIME
    assert updated.updated_at >= created.updated_at

    stored = await repository.get(created.id)
    assert stored.title == "New title"
    assert stored.user_id == "user-1"
    assert stored.created_at == BASE_TIME


async def test__update__archive_moves_between_listings(repository: BookmarkRepository) -> None:
    created = await repository.create(_bookmark())
    await repository.update(created.model_copy(update={"is_archived": True}))

    assert await repository.list(BookmarkQuery(user_id="user-1")) == []
    archived = await repository.list(BookmarkQuery(user_id="user-1", archived=True))
    assert [b.id for b in archived] == [created.id]


async def test__update__missing_raises_not_found(repository: BookmarkRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.update(_bookmark(id="ghost"))


async def test__delete__removes_bookmark(repository: BookmarkRepository) -> None:
    created = await repository.create(_bookmark())
    await repository.delete(created.id)

    with pytest.raises(NotFoundError):
        await repository.get(created.id)
    assert await repository.count(BookmarkQuery(user_id="user-1")) == 0


async def test__delete__missing_raises_not_found(repository: BookmarkRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.delete("ghost")


async def test__returned_values_are_not_aliased(repository: BookmarkRepository) -> None:
    created = await repository.create(_bookmark(title="Original"))
    created.title = "Mutated by caller"

    fetched = await repository.get(created.id)
    assert fetched.title == "Original"
    fetched.title = "Mutated again"
    assert (await repository.get(created.id)).title == "Original"
