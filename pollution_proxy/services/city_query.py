"""
CityQueryService - Cached, authenticated, cleaned city pollution pages.

Flow per call:
    cache lookup -> (miss) authenticated fetch -> cleaning -> cache store
"""

from datetime import timedelta
from typing import Any

from loguru import logger

from pollution_proxy.auth.orchestrator import AuthOrchestrator
from pollution_proxy.auth.token_store import TokenStore
from pollution_proxy.datasource.pollution import PollutionSource
from pollution_proxy.datasource.wikipedia import WikipediaDescriptionSource
from pollution_proxy.models import PageResult
from pollution_proxy.services.cache import ResultCache
from pollution_proxy.services.cleaning import CleaningPipeline
from pollution_proxy.services.client import UpstreamClient
from pollution_proxy.services.errors import InvalidInputError, ServiceError
from pollution_proxy.settings import Settings, global_settings


class CityQueryService:
    """
    Facade over cache, auth, upstream and cleaning.

    Usage:
        async with CityQueryService.from_settings(global_settings) as service:
            result = await service.get_cities("PL", page=1, limit=10)
    """

    def __init__(
        self,
        source: PollutionSource,
        pipeline: CleaningPipeline,
        cache: ResultCache,
        cache_ttl: timedelta = timedelta(seconds=60),
        clients: list[UpstreamClient] | None = None,
    ):
        self.source = source
        self.pipeline = pipeline
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._clients = clients or []

    @classmethod
    def from_settings(cls, settings: Settings) -> "CityQueryService":
        """Wire the full object graph from configuration."""
        api_client = UpstreamClient(
            service_id=PollutionSource.SERVICE_ID,
            default_timeout=settings.request_timeout,
        )
        description_client = UpstreamClient(
            service_id=WikipediaDescriptionSource.SERVICE_ID,
            default_timeout=settings.description_timeout,
            headers={"User-Agent": settings.user_agent},
        )

        auth = AuthOrchestrator(
            client=api_client,
            base_url=settings.api_base_url,
            username=settings.api_username,
            password=settings.api_password,
            store=TokenStore(),
        )
        source = PollutionSource(api_client, auth, settings.api_base_url)
        wikipedia = WikipediaDescriptionSource(
            description_client, base_url=settings.description_base_url
        )
        pipeline = CleaningPipeline(
            describe=wikipedia.describe,
            max_concurrency=settings.description_concurrency,
        )
        cache = ResultCache(
            max_size=settings.cache_max_size,
            default_ttl=timedelta(seconds=settings.cache_default_ttl_seconds),
            debug=settings.debug,
        )

        return cls(
            source=source,
            pipeline=pipeline,
            cache=cache,
            cache_ttl=timedelta(seconds=settings.cache_ttl_seconds),
            clients=[api_client, description_client],
        )

    async def get_cities(self, country: str, page: int, limit: int) -> PageResult:
        """
        Get one cleaned page of cities for a country.

        Args:
            country: Country filter, must not be blank
            page: 1-based page number
            limit: Page size requested upstream

        Raises:
            InvalidInputError: If country is blank (no network traffic)
            ServiceError: Any upstream or auth failure, with call context attached
        """
        if not country or not country.strip():
            raise InvalidInputError("Country is required")

        country = country.strip()
        cache_key = self.cache.generate_key(country, page, limit)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached.data

        try:
            raw = await self.source.fetch_page(country, page, limit)
            result = await self.pipeline.run(raw, limit)
        except ServiceError as e:
            e.context.update(
                {"operation": "get_cities", "country": country, "page": page, "limit": limit}
            )
            logger.error(
                f"get_cities failed (country={country}, page={page}, limit={limit}): "
                f"{type(e).__name__}: {e}"
            )
            raise

        await self.cache.set(cache_key, result, self.cache_ttl)
        logger.info(
            f"Cached {result.count} cities for country={country} page={page} limit={limit}"
        )
        return result

    def get_health_status(self) -> dict[str, Any]:
        """Cache statistics and auth state."""
        return {
            "cache": self.cache.get_stats().to_dict(),
            "auth_state": self.source.auth.state.value,
            "upstream_configured": self.source.is_configured(),
        }

    async def close(self) -> None:
        """Close HTTP clients."""
        for client in self._clients:
            await client.close()
        logger.debug("CityQueryService closed")

    async def __aenter__(self) -> "CityQueryService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


# Global service instance
_global_service: CityQueryService | None = None


def get_city_query_service() -> CityQueryService:
    """Get the global city query service, built from global settings."""
    global _global_service
    if _global_service is None:
        _global_service = CityQueryService.from_settings(global_settings)
    return _global_service


async def close_city_query_service() -> None:
    """Close the global city query service."""
    global _global_service
    if _global_service:
        await _global_service.close()
        _global_service = None
