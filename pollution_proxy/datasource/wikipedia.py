"""
Wikipedia REST summary lookup for city descriptions.

API Documentation: https://en.wikipedia.org/api/rest_v1/
No API key required, but a descriptive User-Agent is expected.
"""

from urllib.parse import quote

from loguru import logger

from pollution_proxy.datasource.base import BaseDataSource
from pollution_proxy.services.client import UpstreamClient
from pollution_proxy.services.errors import DescriptionLookupError, ServiceError


class WikipediaDescriptionSource(BaseDataSource):
    """
    Best-effort description lookup.

    ``describe`` never raises: failures (including 404 for unknown pages)
    are logged and turned into None.
    """

    BASE_URL = "https://en.wikipedia.org/api/rest_v1/page/summary"
    SERVICE_ID = "wikipedia"

    def __init__(
        self,
        client: UpstreamClient,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        super().__init__(client)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        return bool(self.base_url)

    def build_url(self, name: str) -> str:
        return f"{self.base_url}/{quote(name, safe='')}"

    async def fetch_extract(self, name: str) -> str | None:
        """
        Fetch the summary extract for a page title.

        Returns:
            The extract, or None if the page has none

        Raises:
            DescriptionLookupError: If the lookup itself failed
        """
        try:
            data = await self.client.get_json(self.build_url(name), timeout=self.timeout)
        except ServiceError as e:
            raise DescriptionLookupError(str(e), service_id=self.SERVICE_ID) from e

        if not isinstance(data, dict):
            return None
        extract = data.get("extract")
        return extract if isinstance(extract, str) else None

    async def describe(self, name: str) -> str | None:
        """Description for a city name, or None on any failure."""
        if not name:
            return None
        try:
            return await self.fetch_extract(name)
        except DescriptionLookupError as e:
            logger.warning(f"Description lookup failed for '{name}': {e}")
            return None
