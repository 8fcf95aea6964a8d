"""Cheep store: creation, deletion, likers and time-ordered pages."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, cast

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import settings
from db.errors import is_unique_violation
from models import Author, Cheep

from .errors import CheepTooLongError, EmptyCheepError
from .pagination import page_limit, page_offset

logger = logging.getLogger(__name__)

CheepRow = tuple[Cheep, str, str]


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def normalize_cheep_text(text: str) -> str:
    normalized = text.strip()
    if normalized == "":
        raise EmptyCheepError("Cheep must not be empty")
    if len(normalized) > settings.max_cheep_length:
        raise CheepTooLongError(settings.max_cheep_length)
    return normalized


def _cheep_rows_query() -> Select[Any]:
    cheep_entity = cast(Any, Cheep)
    author_name_column = cast(ColumnElement[str], Author.name)
    author_email_column = cast(ColumnElement[str], Author.email)
    return (
        select(cheep_entity, author_name_column, author_email_column)
        .join(Author, _eq(Author.author_id, Cheep.author_id))
        .order_by(
            _desc(Cheep.timestamp),
            _desc(Cheep.cheep_id),
        )
    )


async def _fetch_page(session: AsyncSession, query: Select[Any], page: int) -> list[CheepRow]:
    result = await session.execute(query.offset(page_offset(page)).limit(page_limit()))
    return [(cheep, author_name, author_email) for cheep, author_name, author_email in result.all()]


async def count_cheeps(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Cheep))
    return int(result.scalar_one() or 0)


async def next_cheep_id(session: AsyncSession) -> int:
    return await count_cheeps(session) + 1


async def is_cheep_id_available(session: AsyncSession, cheep_id: int) -> bool:
    cheep_id_column = cast(ColumnElement[int], Cheep.cheep_id)
    result = await session.execute(
        select(cheep_id_column).where(_eq(cheep_id_column, cheep_id)).limit(1)
    )
    return result.scalar_one_or_none() is None


async def create_cheep(session: AsyncSession, author: Author, text: str) -> Cheep:
    """Store ``text`` as a new cheep by ``author``, timestamped now.

    The id starts at ``next_cheep_id`` and moves up past ids that are still
    taken after earlier deletions or by a concurrent insert.
    """
    author_id = author.author_id
    cheep_id = await next_cheep_id(session)
    for attempt in range(1, settings.id_allocation_attempts + 1):
        while not await is_cheep_id_available(session, cheep_id):
            cheep_id += 1
        cheep = Cheep(
            cheep_id=cheep_id,
            text=text,
            author_id=author_id,
            liked_by_author_ids=[],
        )
        session.add(cheep)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if not is_unique_violation(exc):
                raise
            logger.warning(
                "Cheep id claimed by a concurrent insert, retrying",
                extra={"cheep_id": cheep_id, "attempt": attempt},
            )
            cheep_id += 1
            continue

        logger.info("Created cheep", extra={"cheep_id": cheep_id, "author_id": author_id})
        return cheep

    raise RuntimeError("Could not reserve a cheep id")


async def list_cheeps(session: AsyncSession, page: int = 0) -> list[CheepRow]:
    return await _fetch_page(session, _cheep_rows_query(), page)


async def list_cheeps_by_author_name(
    session: AsyncSession,
    name: str,
    page: int = 0,
) -> list[CheepRow]:
    query = _cheep_rows_query().where(_eq(Author.name, name))
    return await _fetch_page(session, query, page)


async def list_cheeps_by_author_ids(
    session: AsyncSession,
    author_ids: Iterable[int],
    page: int = 0,
) -> list[CheepRow]:
    wanted = set(author_ids)
    if not wanted:
        return []
    author_id_column = cast(ColumnElement[int], Cheep.author_id)
    query = _cheep_rows_query().where(author_id_column.in_(wanted))
    return await _fetch_page(session, query, page)


async def list_cheep_rows_by_ids(
    session: AsyncSession,
    cheep_ids: Iterable[int],
) -> dict[int, CheepRow]:
    wanted = set(cheep_ids)
    if not wanted:
        return {}
    cheep_id_column = cast(ColumnElement[int], Cheep.cheep_id)
    result = await session.execute(_cheep_rows_query().where(cheep_id_column.in_(wanted)))
    return {
        cheep.cheep_id: (cheep, author_name, author_email)
        for cheep, author_name, author_email in result.all()
    }


async def get_cheep(
    session: AsyncSession,
    cheep_id: int,
    *,
    for_update: bool = False,
) -> Cheep | None:
    query = select(Cheep).where(_eq(Cheep.cheep_id, cheep_id))
    if for_update:
        # Locked reads must not reuse a stale copy from the identity map.
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def list_cheeps_by_author_id(session: AsyncSession, author_id: int) -> list[Cheep]:
    result = await session.execute(select(Cheep).where(_eq(Cheep.author_id, author_id)))
    return list(result.scalars().all())


async def list_likers(session: AsyncSession, cheep_id: int) -> list[int]:
    likers_column = cast(ColumnElement[list[int]], Cheep.liked_by_author_ids)
    result = await session.execute(
        select(likers_column).where(_eq(Cheep.cheep_id, cheep_id))
    )
    likers = result.scalar_one_or_none()
    return list(likers) if likers is not None else []


async def add_liker(
    session: AsyncSession,
    cheep: Cheep,
    author_id: int,
    *,
    commit: bool = True,
) -> None:
    cheep.liked_by_author_ids = [*cheep.liked_by_author_ids, author_id]
    session.add(cheep)
    if commit:
        await session.commit()


async def remove_liker(
    session: AsyncSession,
    cheep: Cheep,
    author_id: int,
    *,
    commit: bool = True,
) -> None:
    if author_id not in cheep.liked_by_author_ids:
        return
    remaining = list(cheep.liked_by_author_ids)
    remaining.remove(author_id)
    cheep.liked_by_author_ids = remaining
    session.add(cheep)
    if commit:
        await session.commit()


async def delete_cheep(session: AsyncSession, cheep: Cheep, *, commit: bool = True) -> None:
    await session.delete(cheep)
    if commit:
        await session.commit()
