"""Author registration, author timelines and follow endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_viewer_email, get_viewer_name, require_viewer_email
from services import AuthorView, FeedItem
from services.authors import ensure_author, get_author_by_name
from services.feed import timeline_for, toggle_follow
from .pagination import PageQuery

router = APIRouter(tags=["authors"])


class AuthorRegisterRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)


class FollowToggleRequest(BaseModel):
    email: str = Field(min_length=1, max_length=200)


class FollowToggleResponse(BaseModel):
    email: str
    following: bool


@router.post("/authors", status_code=status.HTTP_201_CREATED, response_model=AuthorView)
async def register_author(
    payload: AuthorRegisterRequest,
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
    viewer_name: str | None = Depends(get_viewer_name),
) -> AuthorView:
    name = payload.name or viewer_name
    if name is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Author name is required",
        )
    author = await ensure_author(session, name=name, email=viewer_email)
    return AuthorView.from_author(author)


@router.get("/authors/{name}/cheeps", response_model=list[FeedItem])
async def author_timeline(
    name: str,
    page: PageQuery = 0,
    session: AsyncSession = Depends(get_db),
    viewer_email: str | None = Depends(get_viewer_email),
) -> list[FeedItem]:
    target = await get_author_by_name(session, name)
    return await timeline_for(session, viewer_email=viewer_email, target=target, page=page)


@router.post("/follows", response_model=FollowToggleResponse)
async def follow_author(
    payload: FollowToggleRequest,
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
) -> FollowToggleResponse:
    following = await toggle_follow(session, viewer_email, payload.email)
    if following is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Author not found")
    return FollowToggleResponse(email=payload.email, following=following)
