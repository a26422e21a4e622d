"""
TokenStore - Process-wide holder of the upstream credential pair.
"""

import asyncio
from dataclasses import dataclass


@dataclass(frozen=True)
class Credentials:
    """Access/refresh token pair. Empty strings mean absent."""

    access_token: str = ""
    refresh_token: str = ""

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)


class TokenStore:
    """
    Single owner of the current Credentials.

    Readers get an immutable snapshot; writers swap the whole pair. Callers
    that need read-check-write atomicity (login, refresh) hold ``lock`` for
    the duration and use the ``*_locked`` variants.
    """

    def __init__(self) -> None:
        self._credentials = Credentials()
        self.lock = asyncio.Lock()

    def snapshot(self) -> Credentials:
        return self._credentials

    def replace_locked(self, credentials: Credentials) -> None:
        """Swap the pair. Caller must hold ``lock``."""
        self._credentials = credentials

    def clear_locked(self) -> None:
        self._credentials = Credentials()

    async def replace(self, credentials: Credentials) -> None:
        async with self.lock:
            self.replace_locked(credentials)

    async def clear(self) -> None:
        async with self.lock:
            self.clear_locked()
