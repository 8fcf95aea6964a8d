"""Tests for the author directory."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core.config import settings
from services import AuthorNotFoundError
from services import authors as directory
from services import feed

HELGE_EMAIL = "ropf@itu.dk"
ADRIAN_EMAIL = "adho@itu.dk"


@pytest.mark.asyncio
async def test_find_new_author_id_after_seed(db_session: AsyncSession, seeded: None):
    assert await directory.find_new_author_id(db_session) == 3


@pytest.mark.asyncio
async def test_find_new_author_id_skips_taken_ids(db_session: AsyncSession):
    first = await directory.create_author(db_session, name="First", email="first@example.com")
    second = await directory.create_author(db_session, name="Second", email="second@example.com")
    third = await directory.create_author(db_session, name="Third", email="third@example.com")
    assert [first.author_id, second.author_id, third.author_id] == [1, 2, 3]

    await directory.delete_author(db_session, "first@example.com")

    # Two rows remain, so probing starts at 3, which is still taken.
    assert await directory.find_new_author_id(db_session) == 4


@pytest.mark.asyncio
async def test_is_author_id_available_flips_on_create(db_session: AsyncSession, seeded: None):
    assert await directory.is_author_id_available(db_session, 3) is True

    author = await directory.create_author(db_session, name="Ola", email="ola@example.com")

    assert author.author_id == 3
    assert author.following == []
    assert author.liked_cheep_ids == []
    assert await directory.is_author_id_available(db_session, 3) is False


@pytest.mark.asyncio
async def test_ensure_author_is_idempotent(db_session: AsyncSession):
    created = await directory.ensure_author(db_session, name="Ola", email="ola@example.com")
    again = await directory.ensure_author(db_session, name="Ola Renamed", email="ola@example.com")

    assert again.author_id == created.author_id
    assert again.name == "Ola"
    assert await directory.count_authors(db_session) == 1


@pytest.mark.asyncio
async def test_lookup_by_name_and_email(db_session: AsyncSession, seeded: None):
    helge = await directory.get_author_by_name(db_session, "Helge")
    assert helge.email == HELGE_EMAIL

    by_email = await directory.list_authors_by_email(db_session, HELGE_EMAIL)
    assert [author.name for author in by_email] == ["Helge"]
    assert await directory.list_authors_by_email(db_session, "nobody@example.com") == []
    assert await directory.get_author_id(db_session, ADRIAN_EMAIL) == 2


@pytest.mark.asyncio
async def test_required_lookups_raise_not_found(db_session: AsyncSession, seeded: None):
    with pytest.raises(AuthorNotFoundError):
        await directory.get_author_by_name(db_session, "Nobody")
    with pytest.raises(AuthorNotFoundError):
        await directory.get_author_id(db_session, "nobody@example.com")
    with pytest.raises(AuthorNotFoundError):
        await directory.require_author_by_email(db_session, "nobody@example.com")


@pytest.mark.asyncio
async def test_graph_lookups_degrade_to_empty(db_session: AsyncSession, seeded: None):
    assert await directory.list_following_ids(db_session, HELGE_EMAIL) == [2]
    assert await directory.list_liked_cheep_ids(db_session, HELGE_EMAIL) == [4, 1, 3]
    assert await directory.list_following_ids(db_session, "nobody@example.com") == []
    assert await directory.list_liked_cheep_ids(db_session, "nobody@example.com") == []


@pytest.mark.asyncio
async def test_duplicate_names_resolve_in_directory_order(db_session: AsyncSession):
    first = await directory.create_author(db_session, name="Sam", email="sam1@example.com")
    await directory.create_author(db_session, name="Sam", email="sam2@example.com")

    resolved = await directory.get_author_by_name(db_session, "Sam")
    assert resolved.author_id == first.author_id


@pytest.mark.asyncio
async def test_list_authors_by_ids_uses_name_descending_order(
    db_session: AsyncSession,
    seeded: None,
):
    authors = await directory.list_authors_by_ids(db_session, [1, 2, 99])
    assert [author.name for author in authors] == ["Helge", "Adrian"]
    assert await directory.list_authors_by_ids(db_session, []) == []


@pytest.mark.asyncio
async def test_follow_and_like_lists_persist(db_session: AsyncSession, seeded: None):
    adrian = await directory.require_author_by_email(db_session, ADRIAN_EMAIL)

    await directory.add_follow(db_session, adrian, 1)
    await directory.add_like(db_session, adrian, 3)
    assert await directory.list_following_ids(db_session, ADRIAN_EMAIL) == [1]
    assert await directory.list_liked_cheep_ids(db_session, ADRIAN_EMAIL) == [1, 3]

    await directory.remove_follow(db_session, adrian, 1)
    await directory.remove_follow(db_session, adrian, 42)
    await directory.remove_like(db_session, adrian, 1)
    assert await directory.list_following_ids(db_session, ADRIAN_EMAIL) == []
    assert await directory.list_liked_cheep_ids(db_session, ADRIAN_EMAIL) == [3]


@pytest.mark.asyncio
async def test_remove_follow_drops_one_duplicate(db_session: AsyncSession, seeded: None):
    adrian = await directory.require_author_by_email(db_session, ADRIAN_EMAIL)
    await directory.add_follow(db_session, adrian, 1)
    await directory.add_follow(db_session, adrian, 1)

    await directory.remove_follow(db_session, adrian, 1)

    assert await directory.list_following_ids(db_session, ADRIAN_EMAIL) == [1]


@pytest.mark.asyncio
async def test_delete_author_removes_row_and_credentials(
    db_session: AsyncSession,
    credential_store,
):
    await directory.create_author(db_session, name="Ola", email="ola@example.com")

    assert await directory.delete_author(db_session, "ola@example.com") is True
    assert await directory.list_authors_by_email(db_session, "ola@example.com") == []
    assert credential_store.removed == ["ola@example.com"]


@pytest.mark.asyncio
async def test_delete_author_requires_single_match(
    db_session: AsyncSession,
    credential_store,
):
    await directory.create_author(db_session, name="Twin", email="twin@example.com")
    await directory.create_author(db_session, name="Twin", email="twin@example.com")

    assert await directory.delete_author(db_session, "twin@example.com") is False
    assert await directory.delete_author(db_session, "nobody@example.com") is False
    assert len(await directory.list_authors_by_email(db_session, "twin@example.com")) == 2
    assert credential_store.removed == []


@pytest.mark.asyncio
async def test_remove_followed_id_everywhere(db_session: AsyncSession, seeded: None):
    adrian = await directory.require_author_by_email(db_session, ADRIAN_EMAIL)
    await directory.add_follow(db_session, adrian, 2)

    changed = await directory.remove_followed_id_everywhere(db_session, 2)

    assert changed == 1
    assert await directory.list_following_ids(db_session, HELGE_EMAIL) == []
    # An author's own list is left alone.
    assert await directory.list_following_ids(db_session, ADRIAN_EMAIL) == [2]


@pytest.mark.asyncio
async def test_create_author_retries_when_allocated_id_is_taken(
    db_session: AsyncSession,
    seeded: None,
    monkeypatch,
):
    real_find_new_author_id = directory.find_new_author_id
    calls: list[int] = []

    async def find_taken_id_first(session: AsyncSession) -> int:
        calls.append(len(calls))
        if len(calls) == 1:
            return 2
        return await real_find_new_author_id(session)

    monkeypatch.setattr(directory, "find_new_author_id", find_taken_id_first)

    author = await directory.create_author(db_session, name="Ola", email="ola@example.com")

    assert author.author_id == 3
    assert len(calls) == 2
    assert await directory.count_authors(db_session) == 3


@pytest.mark.asyncio
async def test_create_author_gives_up_after_repeated_collisions(
    db_session: AsyncSession,
    seeded: None,
    monkeypatch,
):
    async def always_taken(session: AsyncSession) -> int:
        return 1

    monkeypatch.setattr(directory, "find_new_author_id", always_taken)
    monkeypatch.setattr(settings, "id_allocation_attempts", 2)

    with pytest.raises(RuntimeError):
        await directory.create_author(db_session, name="Ola", email="ola@example.com")

    assert await directory.count_authors(db_session) == 2


@pytest.mark.asyncio
async def test_ensure_author_keeps_lowest_id_after_racing_insert(
    db_session: AsyncSession,
    session_maker,
    seeded: None,
    monkeypatch,
):
    real_create_author = directory.create_author

    async def create_after_rival(session: AsyncSession, *, name: str, email: str):
        async with session_maker() as rival:
            await real_create_author(rival, name=name, email=email)
        return await real_create_author(session, name=name, email=email)

    monkeypatch.setattr(directory, "create_author", create_after_rival)

    author = await directory.ensure_author(db_session, name="New", email="new@example.com")

    assert author.author_id == 3
    rows = await directory.list_authors_by_email(db_session, "new@example.com")
    assert [row.author_id for row in rows] == [3]


@pytest.mark.asyncio
async def test_concurrent_ensure_author_leaves_one_author(session_maker, seeded: None):
    async with session_maker() as first, session_maker() as second:
        results = await asyncio.gather(
            directory.ensure_author(first, name="New", email="new@example.com"),
            directory.ensure_author(second, name="New", email="new@example.com"),
        )
        result_ids = [author.author_id for author in results]

    assert result_ids[0] == result_ids[1]
    async with session_maker() as session:
        rows = await directory.list_authors_by_email(session, "new@example.com")
        assert [row.author_id for row in rows] == result_ids[:1]
        assert await feed.create_post(session, "new@example.com", "first cheep") is not None


@pytest.mark.asyncio
async def test_write_from_outdated_author_row_is_rejected(session_maker, seeded: None):
    async with session_maker() as first, session_maker() as second:
        outdated = await directory.require_author_by_email(first, ADRIAN_EMAIL)
        current = await directory.require_author_by_email(second, ADRIAN_EMAIL)
        await directory.add_follow(second, current, 1)

        with pytest.raises(StaleDataError):
            await directory.add_like(first, outdated, 3)
        await first.rollback()

    async with session_maker() as session:
        assert await directory.list_following_ids(session, ADRIAN_EMAIL) == [1]
        assert await directory.list_liked_cheep_ids(session, ADRIAN_EMAIL) == [1]
