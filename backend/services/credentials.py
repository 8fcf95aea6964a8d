"""Hook for removing credentials owned by the external identity layer."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SupportsCredentialRemoval(Protocol):
    async def remove_credentials(self, email: str) -> None: ...


class NullCredentialStore:
    """Used until the identity layer registers its own store."""

    async def remove_credentials(self, email: str) -> None:
        return None


_credential_store: SupportsCredentialRemoval = NullCredentialStore()


def get_credential_store() -> SupportsCredentialRemoval:
    return _credential_store


def set_credential_store(store: SupportsCredentialRemoval | None) -> None:
    global _credential_store
    _credential_store = store if store is not None else NullCredentialStore()
