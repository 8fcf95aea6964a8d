"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from db import get_session

VIEWER_EMAIL_HEADER = "X-Viewer-Email"
VIEWER_NAME_HEADER = "X-Viewer-Name"


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


# The identity layer in front of this service authenticates the request
# and forwards the signed-in identity in these headers.
async def get_viewer_email(
    viewer_email: Annotated[str | None, Header(alias=VIEWER_EMAIL_HEADER)] = None,
) -> str | None:
    if viewer_email is None or viewer_email.strip() == "":
        return None
    return viewer_email.strip()


async def get_viewer_name(
    viewer_name: Annotated[str | None, Header(alias=VIEWER_NAME_HEADER)] = None,
) -> str | None:
    if viewer_name is None or viewer_name.strip() == "":
        return None
    return viewer_name.strip()


async def require_viewer_email(
    viewer_email: Annotated[str | None, Header(alias=VIEWER_EMAIL_HEADER)] = None,
) -> str:
    email = await get_viewer_email(viewer_email)
    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required",
        )
    return email
