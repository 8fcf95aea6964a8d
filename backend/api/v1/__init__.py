"""Version 1 routers."""

from fastapi import APIRouter

from .authors import router as authors_router
from .cheeps import router as cheeps_router
from .me import router as me_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(cheeps_router)
api_router.include_router(authors_router)
api_router.include_router(me_router)

__all__ = ["api_router"]
