"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from api.v1 import api_router
from core import configure_logging, settings
from services import AuthorNotFoundError

logger = logging.getLogger(__name__)


async def _author_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("Author lookup failed", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title=settings.app_name)
    application.include_router(api_router)
    application.add_exception_handler(AuthorNotFoundError, _author_not_found_handler)
    return application
