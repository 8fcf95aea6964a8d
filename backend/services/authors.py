"""Author directory: lookup, creation, deletion and social-graph lists."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, cast

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import settings
from db.errors import is_unique_violation
from models import Author

from .credentials import get_credential_store
from .errors import AuthorNotFoundError
from .pagination import page_limit, page_offset

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


def _directory_order() -> tuple[Any, Any]:
    # Names are not unique; author_id keeps equal names in a stable order.
    return _desc(Author.name), _asc(Author.author_id)


def _with_appended(values: Iterable[int], value: int) -> list[int]:
    return [*values, value]


def _without_first(values: Iterable[int], value: int) -> list[int]:
    remaining = list(values)
    remaining.remove(value)
    return remaining


async def count_authors(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Author))
    return int(result.scalar_one() or 0)


async def is_author_id_available(session: AsyncSession, author_id: int) -> bool:
    author_id_column = cast(ColumnElement[int], Author.author_id)
    result = await session.execute(
        select(author_id_column).where(_eq(author_id_column, author_id)).limit(1)
    )
    return result.scalar_one_or_none() is None


async def find_new_author_id(session: AsyncSession) -> int:
    """Return the first free id at or above ``count + 1``.

    The id is not reserved; ``create_author`` retries when a concurrent
    insert claims it first.
    """
    candidate = await count_authors(session) + 1
    while not await is_author_id_available(session, candidate):
        candidate += 1
    return candidate


async def create_author(session: AsyncSession, *, name: str, email: str) -> Author:
    """Insert a new author under a freshly allocated id.

    Email and name uniqueness are not checked here; see ``ensure_author``.
    """
    for attempt in range(1, settings.id_allocation_attempts + 1):
        author_id = await find_new_author_id(session)
        author = Author(
            author_id=author_id,
            name=name,
            email=email,
            following=[],
            liked_cheep_ids=[],
        )
        session.add(author)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if not is_unique_violation(exc):
                raise
            logger.warning(
                "Author id claimed by a concurrent insert, retrying",
                extra={"author_id": author_id, "attempt": attempt},
            )
            continue

        logger.info("Created author", extra={"author_id": author_id})
        return author

    raise RuntimeError("Could not reserve an author id")


async def list_authors_by_email(
    session: AsyncSession,
    email: str,
    page: int = 0,
    *,
    for_update: bool = False,
) -> list[Author]:
    query = (
        select(Author)
        .where(_eq(Author.email, email))
        .order_by(*_directory_order())
        .offset(page_offset(page))
        .limit(page_limit())
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_author_by_email(
    session: AsyncSession,
    email: str,
    *,
    for_update: bool = False,
) -> Author | None:
    authors = await list_authors_by_email(session, email, for_update=for_update)
    return authors[0] if authors else None


async def require_author_by_email(session: AsyncSession, email: str) -> Author:
    author = await get_author_by_email(session, email)
    if author is None:
        raise AuthorNotFoundError(email)
    return author


async def ensure_author(session: AsyncSession, *, name: str, email: str) -> Author:
    """Return the author for this identity, creating it on first use.

    Concurrent first-use calls may both insert. Each caller then re-reads the
    identity's rows and, unless its own row has the lowest id, deletes it and
    returns the lowest one, so a single author survives.
    """
    existing = await get_author_by_email(session, email)
    if existing is not None:
        return existing

    created = await create_author(session, name=name, email=email)
    created_id = created.author_id
    author_id_column = cast(ColumnElement[int], Author.author_id)
    result = await session.execute(
        select(Author)
        .where(_eq(Author.email, email))
        .order_by(_asc(author_id_column))
        .limit(1)
    )
    survivor = result.scalars().first()
    if survivor is None or survivor.author_id == created_id:
        return created

    await session.delete(created)
    await session.commit()
    logger.info(
        "Dropped duplicate author from concurrent first use",
        extra={"author_id": created_id, "kept_author_id": survivor.author_id},
    )
    return survivor


async def get_author_by_name(session: AsyncSession, name: str, page: int = 0) -> Author:
    result = await session.execute(
        select(Author)
        .where(_eq(Author.name, name))
        .order_by(*_directory_order())
        .offset(page_offset(page))
        .limit(page_limit())
    )
    author = result.scalars().first()
    if author is None:
        raise AuthorNotFoundError(name)
    return author


async def get_author_id(session: AsyncSession, email: str) -> int:
    author_id_column = cast(ColumnElement[int], Author.author_id)
    result = await session.execute(
        select(author_id_column)
        .where(_eq(Author.email, email))
        .order_by(*_directory_order())
        .limit(1)
    )
    author_id = result.scalar_one_or_none()
    if author_id is None:
        raise AuthorNotFoundError(email)
    return int(author_id)


async def list_following_ids(session: AsyncSession, email: str) -> list[int]:
    author = await get_author_by_email(session, email)
    if author is None:
        return []
    return list(author.following)


async def list_liked_cheep_ids(session: AsyncSession, email: str) -> list[int]:
    author = await get_author_by_email(session, email)
    if author is None:
        return []
    return list(author.liked_cheep_ids)


async def list_authors_by_ids(session: AsyncSession, author_ids: Iterable[int]) -> list[Author]:
    """Return matching authors in directory order, not in input order."""
    wanted = set(author_ids)
    if not wanted:
        return []
    author_id_column = cast(ColumnElement[int], Author.author_id)
    result = await session.execute(
        select(Author)
        .where(author_id_column.in_(wanted))
        .order_by(*_directory_order())
    )
    return list(result.scalars().all())


async def add_follow(
    session: AsyncSession,
    author: Author,
    followed_id: int,
    *,
    commit: bool = True,
) -> None:
    author.following = _with_appended(author.following, followed_id)
    session.add(author)
    if commit:
        await session.commit()


async def remove_follow(
    session: AsyncSession,
    author: Author,
    followed_id: int,
    *,
    commit: bool = True,
) -> None:
    """Drop one occurrence of ``followed_id``; absent ids are a no-op."""
    if followed_id not in author.following:
        return
    author.following = _without_first(author.following, followed_id)
    session.add(author)
    if commit:
        await session.commit()


async def add_like(
    session: AsyncSession,
    author: Author,
    cheep_id: int,
    *,
    commit: bool = True,
) -> None:
    author.liked_cheep_ids = _with_appended(author.liked_cheep_ids, cheep_id)
    session.add(author)
    if commit:
        await session.commit()


async def remove_like(
    session: AsyncSession,
    author: Author,
    cheep_id: int,
    *,
    commit: bool = True,
) -> None:
    if cheep_id not in author.liked_cheep_ids:
        return
    author.liked_cheep_ids = _without_first(author.liked_cheep_ids, cheep_id)
    session.add(author)
    if commit:
        await session.commit()


async def remove_followed_id_everywhere(
    session: AsyncSession,
    author_id: int,
    *,
    commit: bool = True,
) -> int:
    """Strip ``author_id`` from every author's following list.

    Following lists are JSON, so this is a full scan of the authors table
    with the filter applied in Python; every account deletion pays for it.
    Returns the number of authors that changed.
    """
    result = await session.execute(select(Author))
    changed = 0
    for author in result.scalars().all():
        if author.author_id == author_id or author_id not in author.following:
            continue
        author.following = [followed for followed in author.following if followed != author_id]
        session.add(author)
        changed += 1
    if commit and changed:
        await session.commit()
    return changed


async def delete_author(session: AsyncSession, email: str) -> bool:
    """Delete the single author registered under ``email``.

    Zero or several matches leave the store untouched and return False.
    Linked credentials are removed through the registered credential store
    once the row is gone.
    """
    authors = await list_authors_by_email(session, email)
    if len(authors) != 1:
        logger.info(
            "Skipping author deletion without a single email match",
            extra={"email": email, "matches": len(authors)},
        )
        return False

    author = authors[0]
    author_id = author.author_id
    await session.delete(author)
    await session.commit()
    await get_credential_store().remove_credentials(email)
    logger.info("Deleted author", extra={"author_id": author_id})
    return True
