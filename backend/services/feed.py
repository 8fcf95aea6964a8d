"""Feed assembly and social-graph workflows.

Every multi-entity operation lives here: viewer-annotated timelines, the
follow and like toggles, post creation and account deletion. The like
toggle keeps ``Author.liked_cheep_ids`` and ``Cheep.liked_by_author_ids``
mirrored by changing both sides inside one transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core import settings
from models import Author, Cheep

from .authors import (
    add_follow,
    add_like,
    delete_author,
    get_author_by_email,
    get_author_id,
    list_authors_by_email,
    list_authors_by_ids,
    list_following_ids,
    remove_follow,
    remove_followed_id_everywhere,
    remove_like,
    require_author_by_email,
)
from .cheeps import (
    CheepRow,
    add_liker,
    create_cheep,
    delete_cheep,
    get_cheep,
    list_cheep_rows_by_ids,
    list_cheeps,
    list_cheeps_by_author_id,
    list_cheeps_by_author_ids,
    list_likers,
    remove_liker,
)
from .errors import AuthorNotFoundError

logger = logging.getLogger(__name__)


class FeedItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cheep_id: int
    author_name: str
    author_email: str
    text: str
    timestamp: str
    is_followed: bool = False
    like_count: int = 0
    is_liked: bool = False
    liker_ids: list[int] = Field(default_factory=list)


class AuthorView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str

    @classmethod
    def from_author(cls, author: Author) -> "AuthorView":
        return cls(name=author.name, email=author.email)


def format_timestamp(value: datetime) -> str:
    """Render a stored UTC timestamp in the process's local time zone."""
    if value.tzinfo is None:
        # SQLite drops the offset; stored values are UTC.
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime(settings.timestamp_format)


def build_feed_item(
    row: CheepRow,
    *,
    viewer_id: int | None = None,
    followed_ids: Collection[int] | None = None,
) -> FeedItem:
    cheep, author_name, author_email = row
    liker_ids = list(cheep.liked_by_author_ids)
    return FeedItem(
        cheep_id=cheep.cheep_id,
        author_name=author_name,
        author_email=author_email,
        text=cheep.text,
        timestamp=format_timestamp(cheep.timestamp),
        is_followed=followed_ids is not None and cheep.author_id in followed_ids,
        like_count=len(liker_ids),
        is_liked=viewer_id is not None and viewer_id in liker_ids,
        liker_ids=liker_ids,
    )


async def _resolve_viewer_id(session: AsyncSession, viewer_email: str | None) -> int | None:
    if not viewer_email:
        return None
    try:
        return await get_author_id(session, viewer_email)
    except AuthorNotFoundError:
        # Signed in, but no author row yet.
        return None


async def global_feed(
    session: AsyncSession,
    *,
    viewer_name: str | None = None,
    viewer_email: str | None = None,
    page: int = 0,
) -> list[FeedItem]:
    """Return one page of every cheep, newest first."""
    rows = await list_cheeps(session, page)
    viewer_id = await _resolve_viewer_id(session, viewer_email)

    followed_ids: list[int] | None = None
    if viewer_name and viewer_email:
        followed_ids = await list_following_ids(session, viewer_email)

    return [
        build_feed_item(row, viewer_id=viewer_id, followed_ids=followed_ids)
        for row in rows
    ]


async def timeline_for(
    session: AsyncSession,
    *,
    viewer_email: str | None,
    target: Author,
    page: int = 0,
) -> list[FeedItem]:
    """Return ``target``'s timeline as seen by the viewer.

    On their own timeline viewers see themselves plus everyone they follow;
    anywhere else only the target's cheeps are listed.
    """
    viewer_id = await _resolve_viewer_id(session, viewer_email)
    followed_ids: list[int] = []
    if viewer_email:
        followed_ids = await list_following_ids(session, viewer_email)

    is_own_timeline = viewer_email is not None and target.email == viewer_email
    if is_own_timeline and viewer_id is not None:
        followed_ids = [*followed_ids, viewer_id]
        rows = await list_cheeps_by_author_ids(session, followed_ids, page)
    else:
        rows = await list_cheeps_by_author_ids(session, [target.author_id], page)

    return [
        build_feed_item(row, viewer_id=viewer_id, followed_ids=followed_ids)
        for row in rows
    ]


async def my_cheeps(session: AsyncSession, viewer_email: str, page: int = 0) -> list[FeedItem]:
    author = await require_author_by_email(session, viewer_email)
    rows = await list_cheeps_by_author_ids(session, [author.author_id], page)
    return [build_feed_item(row, viewer_id=author.author_id) for row in rows]


async def liked_cheeps(session: AsyncSession, viewer_email: str) -> list[FeedItem]:
    """Return the viewer's liked cheeps in like order.

    Likes pointing at cheeps that no longer exist are dropped from the
    viewer's list as they are found.
    """
    author = await require_author_by_email(session, viewer_email)
    liked_ids = list(author.liked_cheep_ids)
    followed_ids = list(author.following)
    rows_by_id = await list_cheep_rows_by_ids(session, liked_ids)

    items: list[FeedItem] = []
    dangling: list[int] = []
    for cheep_id in liked_ids:
        row = rows_by_id.get(cheep_id)
        if row is None:
            dangling.append(cheep_id)
            continue
        items.append(
            build_feed_item(row, viewer_id=author.author_id, followed_ids=followed_ids)
        )

    if dangling:
        author_id = author.author_id
        for cheep_id in dangling:
            await remove_like(session, author, cheep_id, commit=False)
        await session.commit()
        logger.warning(
            "Removed likes of deleted cheeps",
            extra={"author_id": author_id, "cheep_ids": dangling},
        )
    return items


async def toggle_follow(
    session: AsyncSession,
    viewer_email: str,
    target_email: str,
) -> bool | None:
    """Follow ``target_email`` if not followed yet, otherwise unfollow.

    Returns the new follow state, or None when the viewer has no author row.
    Raises AuthorNotFoundError for an unknown target.
    """
    followed_id = await get_author_id(session, target_email)
    for attempt in range(1, settings.write_retry_attempts + 1):
        viewer = await get_author_by_email(session, viewer_email, for_update=True)
        if viewer is None:
            logger.info("Ignoring follow toggle from unknown viewer", extra={"email": viewer_email})
            return None

        viewer_id = viewer.author_id
        try:
            if followed_id in viewer.following:
                await remove_follow(session, viewer, followed_id, commit=False)
                following = False
            else:
                await add_follow(session, viewer, followed_id, commit=False)
                following = True
            await session.commit()
        except StaleDataError:
            await session.rollback()
            logger.warning(
                "Follow toggle raced a concurrent update, retrying",
                extra={"author_id": viewer_id, "attempt": attempt},
            )
            continue
        except Exception:
            await session.rollback()
            raise

        logger.info(
            "Toggled follow",
            extra={"author_id": viewer_id, "followed_id": followed_id, "following": following},
        )
        return following

    raise RuntimeError("Could not toggle follow against concurrent updates")


async def toggle_like(
    session: AsyncSession,
    cheep_id: int,
    viewer_email: str,
) -> bool | None:
    """Like or unlike ``cheep_id`` on both sides of the mirrored lists.

    Both rows are versioned: if another transaction changed either of them
    since it was read, the commit fails and the toggle runs again on fresh
    rows. Returns the new like state, or None when the cheep or viewer is
    unknown.
    """
    for attempt in range(1, settings.write_retry_attempts + 1):
        cheep = await get_cheep(session, cheep_id, for_update=True)
        viewer = await get_author_by_email(session, viewer_email, for_update=True)
        if cheep is None or viewer is None:
            logger.info(
                "Ignoring like toggle for unknown cheep or viewer",
                extra={"cheep_id": cheep_id, "email": viewer_email},
            )
            return None

        viewer_id = viewer.author_id
        try:
            if viewer_id in cheep.liked_by_author_ids:
                await remove_liker(session, cheep, viewer_id, commit=False)
                await remove_like(session, viewer, cheep_id, commit=False)
                liked = False
            else:
                await add_liker(session, cheep, viewer_id, commit=False)
                await add_like(session, viewer, cheep_id, commit=False)
                liked = True
            await session.commit()
        except StaleDataError:
            await session.rollback()
            logger.warning(
                "Like toggle raced a concurrent update, retrying",
                extra={"author_id": viewer_id, "cheep_id": cheep_id, "attempt": attempt},
            )
            continue
        except Exception:
            await session.rollback()
            raise

        logger.info(
            "Toggled like",
            extra={"author_id": viewer_id, "cheep_id": cheep_id, "liked": liked},
        )
        return liked

    raise RuntimeError("Could not toggle like against concurrent updates")


async def create_post(session: AsyncSession, viewer_email: str, text: str) -> Cheep | None:
    """Create a cheep for the single author registered under ``viewer_email``.

    Text is expected to be validated already (see ``normalize_cheep_text``).
    """
    authors = await list_authors_by_email(session, viewer_email)
    if len(authors) != 1:
        logger.info(
            "Skipping cheep creation without a single author match",
            extra={"email": viewer_email, "matches": len(authors)},
        )
        return None
    return await create_cheep(session, authors[0], text)


async def delete_account(session: AsyncSession, viewer_email: str) -> bool:
    """Delete the viewer's author row together with everything hanging off it.

    Likes are unmarked on the liked cheeps, the author's cheeps are deleted
    and other authors stop following them; the author row goes last and the
    whole cascade commits once.
    """
    authors = await list_authors_by_email(session, viewer_email)
    if not authors:
        raise AuthorNotFoundError(viewer_email)
    if len(authors) > 1:
        logger.info(
            "Skipping account deletion for ambiguous email",
            extra={"email": viewer_email, "matches": len(authors)},
        )
        return False

    author = authors[0]
    author_id = author.author_id
    liked_ids = list(author.liked_cheep_ids)
    try:
        for cheep_id in liked_ids:
            cheep = await get_cheep(session, cheep_id)
            if cheep is not None:
                await remove_liker(session, cheep, author_id, commit=False)

        own_cheeps = await list_cheeps_by_author_id(session, author_id)
        for cheep in own_cheeps:
            await delete_cheep(session, cheep, commit=False)
        await session.flush()

        await remove_followed_id_everywhere(session, author_id, commit=False)
        deleted = await delete_author(session, viewer_email)
    except Exception:
        await session.rollback()
        raise
    if not deleted:
        await session.rollback()
        return False

    logger.info(
        "Deleted account",
        extra={"author_id": author_id, "cheeps_deleted": len(own_cheeps)},
    )
    return deleted


async def list_following_views(session: AsyncSession, email: str) -> list[AuthorView]:
    followed_ids = await list_following_ids(session, email)
    authors = await list_authors_by_ids(session, followed_ids)
    return [AuthorView.from_author(author) for author in authors]


async def get_author_view(session: AsyncSession, email: str) -> AuthorView:
    author = await require_author_by_email(session, email)
    return AuthorView.from_author(author)


async def list_cheep_likers(session: AsyncSession, cheep_id: int) -> list[int]:
    return await list_likers(session, cheep_id)
