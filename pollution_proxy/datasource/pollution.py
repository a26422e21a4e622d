"""
Upstream pollution API data source.

Endpoints:
- POST /auth/login, POST /auth/refresh (handled by AuthOrchestrator)
- GET /pollution?country=&page=&limit= (Bearer auth)
"""

from pydantic import ValidationError

from pollution_proxy.auth.orchestrator import AuthOrchestrator
from pollution_proxy.datasource.base import BaseDataSource
from pollution_proxy.models import PollutionPage
from pollution_proxy.services.client import UpstreamClient
from pollution_proxy.services.errors import ConfigurationError, UpstreamTransportError


class PollutionSource(BaseDataSource):
    """
    Paginated pollution-by-city listing.

    Every request goes through the AuthOrchestrator, so an expired token is
    refreshed once and the page request retried once.
    """

    SERVICE_ID = "pollution_api"

    def __init__(
        self,
        client: UpstreamClient,
        auth: AuthOrchestrator,
        base_url: str,
    ):
        super().__init__(client)
        self.auth = auth
        self.base_url = base_url.rstrip("/")

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def fetch_page(self, country: str, page: int, limit: int) -> PollutionPage:
        """
        Fetch one raw page of cities for a country.

        Raises:
            ConfigurationError: No base URL configured
            UpstreamTransportError: Transport failure or unexpected payload shape
            AuthUnavailableError, AuthRejectedError: From the auth layer
        """
        if not self.is_configured():
            raise ConfigurationError(
                "API base URL is not configured", service_id=self.SERVICE_ID
            )

        url = f"{self.base_url}/pollution"
        params = {"country": country, "page": page, "limit": limit}

        data = await self.auth.execute_authenticated(
            lambda token: self.client.get_json(url, params=params, bearer_token=token)
        )

        try:
            return PollutionPage.model_validate(data)
        except ValidationError as e:
            raise UpstreamTransportError(
                f"Unexpected pollution payload: {e.error_count()} invalid field(s)",
                service_id=self.SERVICE_ID,
            ) from e
