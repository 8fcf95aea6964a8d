"""Public timeline, cheep creation and like endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db, get_viewer_email, get_viewer_name, require_viewer_email
from services import CheepTextError, FeedItem
from services.cheeps import normalize_cheep_text
from services.feed import create_post, global_feed, list_cheep_likers, toggle_like
from .pagination import PageQuery

router = APIRouter(prefix="/cheeps", tags=["cheeps"])


class CheepCreateRequest(BaseModel):
    text: str


class CheepCreatedResponse(BaseModel):
    cheep_id: int
    text: str


class LikeToggleResponse(BaseModel):
    cheep_id: int
    liked: bool
    like_count: int


class CheepLikersResponse(BaseModel):
    cheep_id: int
    like_count: int
    liker_ids: list[int]


@router.get("", response_model=list[FeedItem])
async def public_timeline(
    page: PageQuery = 0,
    session: AsyncSession = Depends(get_db),
    viewer_email: str | None = Depends(get_viewer_email),
    viewer_name: str | None = Depends(get_viewer_name),
) -> list[FeedItem]:
    return await global_feed(
        session,
        viewer_name=viewer_name,
        viewer_email=viewer_email,
        page=page,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CheepCreatedResponse)
async def post_cheep(
    payload: CheepCreateRequest,
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
) -> CheepCreatedResponse:
    try:
        text = normalize_cheep_text(payload.text)
    except CheepTextError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(exc),
        ) from exc

    cheep = await create_post(session, viewer_email, text)
    if cheep is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Author not found")
    return CheepCreatedResponse(cheep_id=cheep.cheep_id, text=cheep.text)


@router.post("/{cheep_id}/like", response_model=LikeToggleResponse)
async def like_cheep(
    cheep_id: int,
    session: AsyncSession = Depends(get_db),
    viewer_email: str = Depends(require_viewer_email),
) -> LikeToggleResponse:
    liked = await toggle_like(session, cheep_id, viewer_email)
    if liked is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Cheep or author not found",
        )
    likers = await list_cheep_likers(session, cheep_id)
    return LikeToggleResponse(cheep_id=cheep_id, liked=liked, like_count=len(likers))


@router.get("/{cheep_id}/likers", response_model=CheepLikersResponse)
async def cheep_likers(
    cheep_id: int,
    session: AsyncSession = Depends(get_db),
) -> CheepLikersResponse:
    likers = await list_cheep_likers(session, cheep_id)
    return CheepLikersResponse(cheep_id=cheep_id, like_count=len(likers), liker_ids=likers)
