"""Signed-in author's own page: profile card, cheeps, follows, likes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, require_viewer_email
from services import AuthorView, FeedItem
from services.feed import (
    delete_account,
    get_author_view,
    liked_cheeps,
    list_following_views,
    my_cheeps,
)
from .pagination import PageQuery

router = APIRouter(prefix="/me", tags=["me"])


class AboutMeResponse(BaseModel):
    author: AuthorView
    cheeps: list[FeedItem]
    following: list[AuthorView]
    liked: list[FeedItem]


@router.get("", response_model=AboutMeResponse)
async def about_me(
    page: PageQuery = 0,
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
) -> AboutMeResponse:
    return AboutMeResponse(
        cheeps=await my_cheeps(session, viewer_email, page),
        author=await get_author_view(session, viewer_email),
        following=await list_following_views(session, viewer_email),
        liked=await liked_cheeps(session, viewer_email),
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def forget_me(
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
) -> Response:
    deleted = await delete_account(session, viewer_email)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email matches more than one author",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
