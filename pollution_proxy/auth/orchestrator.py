"""
AuthOrchestrator - Login/refresh state machine for the upstream pollution API.

States:
- UNAUTHENTICATED: No access token held yet
- AUTHENTICATED: Access token held, assumed valid until upstream says 401
- REFRESHING: A refresh exchange is in flight
- FAILED: The last call chain ended in an auth failure

Transitions:
- UNAUTHENTICATED → AUTHENTICATED: Successful login
- AUTHENTICATED → REFRESHING: First 401 for a call
- REFRESHING → AUTHENTICATED: Successful refresh
- REFRESHING → FAILED: Refresh impossible or rejected, or 401 after retry

FAILED only ends the current call. The next call starts again from whatever
credentials the store holds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from pydantic import ValidationError

from pollution_proxy.auth.token_store import Credentials, TokenStore
from pollution_proxy.models import LoginResponse
from pollution_proxy.services.client import UpstreamClient
from pollution_proxy.services.errors import (
    AuthRejectedError,
    AuthUnavailableError,
    ConfigurationError,
    UpstreamHTTPError,
    UpstreamTransportError,
)

T = TypeVar("T")


class AuthState(str, Enum):
    """Authentication states."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"
    REFRESHING = "REFRESHING"
    FAILED = "FAILED"


@dataclass
class RetryPolicy:
    """
    Per-call retry budget: one refresh-and-retry, then give up.
    """

    attempted_refresh: bool = False

    def allow_refresh(self) -> bool:
        """Consume the single refresh. False once it has been used."""
        if self.attempted_refresh:
            return False
        self.attempted_refresh = True
        return True


class AuthOrchestrator:
    """
    Runs authenticated requests against the upstream API.

    Usage:
        auth = AuthOrchestrator(client, base_url, username, password)

        data = await auth.execute_authenticated(
            lambda token: client.get_json(url, bearer_token=token)
        )
    """

    def __init__(
        self,
        client: UpstreamClient,
        base_url: str,
        username: str,
        password: str,
        store: TokenStore | None = None,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._store = store or TokenStore()
        self._state = AuthState.UNAUTHENTICATED

    @property
    def state(self) -> AuthState:
        return self._state

    def _url(self, path: str) -> str:
        if not self._base_url:
            raise ConfigurationError("API base URL is not configured")
        return f"{self._base_url}{path}"

    async def ensure_authenticated(self) -> str:
        """
        Log in if no access token is held. Returns the current access token.

        Token freshness is not checked here; an expired token is only found
        out when upstream answers 401.
        """
        credentials = self._store.snapshot()
        if credentials.has_access_token:
            return credentials.access_token

        async with self._store.lock:
            # Another call may have logged in while we waited
            credentials = self._store.snapshot()
            if credentials.has_access_token:
                return credentials.access_token

            credentials = await self._login_locked()
            return credentials.access_token

    async def execute_authenticated(self, request_fn: Callable[[str], Awaitable[T]]) -> T:
        """
        Run ``request_fn(access_token)``, refreshing once on 401.

        Raises:
            AuthUnavailableError: A refresh was needed but no refresh token is held
            AuthRejectedError: Upstream answered 401 again after the refresh
            UpstreamTransportError: Any other upstream failure, unretried
        """
        token = await self.ensure_authenticated()
        policy = RetryPolicy()

        while True:
            try:
                result = await request_fn(token)
            except UpstreamHTTPError as e:
                if not e.is_unauthorized:
                    raise
                if not policy.allow_refresh():
                    self._state = AuthState.FAILED
                    logger.error("Upstream rejected the refreshed access token")
                    raise AuthRejectedError(
                        "Upstream rejected credentials after token refresh",
                        service_id=e.service_id,
                    ) from e

                logger.warning("Access token rejected (401), refreshing")
                token = await self.refresh_access_token(stale_token=token)
                continue

            self._state = AuthState.AUTHENTICATED
            return result

    async def refresh_access_token(self, stale_token: str = "") -> str:
        """
        Exchange the refresh token for a new pair. Returns the new access token.

        If the stored access token already differs from ``stale_token`` a
        concurrent call has rotated it and that token is reused as is.
        """
        async with self._store.lock:
            credentials = self._store.snapshot()
            if credentials.has_access_token and credentials.access_token != stale_token:
                logger.debug("Access token already rotated, skipping refresh")
                return credentials.access_token

            if not credentials.has_refresh_token:
                self._state = AuthState.FAILED
                raise AuthUnavailableError("No refresh token available")

            self._state = AuthState.REFRESHING
            try:
                data = await self._client.post_json(
                    self._url("/auth/refresh"),
                    {"refresh_token": credentials.refresh_token},
                )
                credentials = self._parse_tokens(data, "refresh")
            except UpstreamHTTPError as e:
                self._state = AuthState.FAILED
                if e.is_unauthorized:
                    # Refresh token is dead too; next call must log in again
                    self._store.clear_locked()
                    raise AuthRejectedError(
                        "Upstream rejected the refresh token",
                        service_id=e.service_id,
                    ) from e
                raise
            except Exception:
                self._state = AuthState.FAILED
                raise

            self._store.replace_locked(credentials)
            self._state = AuthState.AUTHENTICATED
            logger.info("Refreshed upstream access token")
            return credentials.access_token

    async def _login_locked(self) -> Credentials:
        """Username/password exchange. Caller holds the store lock."""
        if not self._username or not self._password:
            self._state = AuthState.FAILED
            raise AuthUnavailableError("API username/password are not configured")

        try:
            data = await self._client.post_json(
                self._url("/auth/login"),
                {"username": self._username, "password": self._password},
            )
            credentials = self._parse_tokens(data, "login")
        except Exception:
            self._state = AuthState.FAILED
            raise

        self._store.replace_locked(credentials)
        self._state = AuthState.AUTHENTICATED
        logger.info(f"Logged in to upstream API as '{self._username}'")
        return credentials

    def _parse_tokens(self, data: Any, exchange: str) -> Credentials:
        try:
            response = LoginResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamTransportError(
                f"Malformed {exchange} response: {e.error_count()} invalid field(s)",
                service_id=self._client.service_id,
            ) from e

        if not response.token:
            raise UpstreamTransportError(
                f"Empty access token in {exchange} response",
                service_id=self._client.service_id,
            )

        return Credentials(
            access_token=response.token,
            refresh_token=response.refresh_token,
        )
