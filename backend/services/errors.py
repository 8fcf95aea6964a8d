"""Domain errors raised by the directory and feed services."""

from __future__ import annotations


class AuthorNotFoundError(LookupError):
    """A required author lookup matched no rows."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No authors found for {key!r}")
        self.key = key


class CheepTextError(ValueError):
    pass


class EmptyCheepError(CheepTextError):
    pass


class CheepTooLongError(CheepTextError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Cheep must be at most {limit} characters")
        self.limit = limit


__all__ = [
    "AuthorNotFoundError",
    "CheepTextError",
    "EmptyCheepError",
    "CheepTooLongError",
]
