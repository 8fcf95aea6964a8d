"""Fixed-size, zero-based page helpers shared by the directory and cheep store."""

from __future__ import annotations

from core import settings


def page_offset(page: int) -> int:
    if page < 0:
        raise ValueError("page must be non-negative")
    return page * settings.page_size


def page_limit() -> int:
    return settings.page_size
