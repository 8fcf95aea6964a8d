"""Business logic services."""

from .credentials import (
    NullCredentialStore,
    SupportsCredentialRemoval,
    get_credential_store,
    set_credential_store,
)
from .errors import AuthorNotFoundError, CheepTextError, CheepTooLongError, EmptyCheepError
from .feed import AuthorView, FeedItem

__all__ = [
    "AuthorNotFoundError",
    "AuthorView",
    "CheepTextError",
    "CheepTooLongError",
    "EmptyCheepError",
    "FeedItem",
    "NullCredentialStore",
    "SupportsCredentialRemoval",
    "get_credential_store",
    "set_credential_store",
]
