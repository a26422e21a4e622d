"""
Tests for CityQueryService: cache-aside flow over auth, upstream and cleaning.
"""

from datetime import timedelta

import httpx
import pytest

from pollution_proxy.datasource.pollution import PollutionSource
from pollution_proxy.services.cache import ResultCache
from pollution_proxy.services.city_query import CityQueryService
from pollution_proxy.services.cleaning import CleaningPipeline
from pollution_proxy.services.errors import (
    AuthRejectedError,
    ConfigurationError,
    InvalidInputError,
    UpstreamHTTPError,
    UpstreamTransportError,
)
from pollution_proxy.settings import Settings

from tests.conftest import BASE_URL


class FakeDescriptions:
    """Records lookups; names in ``failing`` raise."""

    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.calls: list[str] = []

    async def __call__(self, name: str) -> str | None:
        self.calls.append(name)
        if name in self.failing:
            raise httpx.ReadTimeout("description lookup timed out")
        return f"About {name}"


@pytest.fixture
def descriptions():
    return FakeDescriptions()


@pytest.fixture
def service(api_client, auth, descriptions):
    return CityQueryService(
        source=PollutionSource(api_client, auth, BASE_URL),
        pipeline=CleaningPipeline(describe=descriptions),
        cache=ResultCache(),
        cache_ttl=timedelta(seconds=60),
        clients=[api_client],
    )


class TestGetCities:
    """Test cases for get_cities."""

    @pytest.mark.asyncio
    async def test_fetches_and_cleans(self, service, upstream):
        result = await service.get_cities("PL", page=2, limit=10)

        assert result.page == 2
        assert result.limit == 10
        assert result.count == len(result.cities) == 3
        assert [c.name for c in result.cities] == ["Zurich", "Krakow", "Sao Paulo"]
        assert result.cities[1].description == "About Krakow"

        request = upstream.requests_to("/pollution")[0]
        assert dict(request.url.params) == {"country": "PL", "page": "2", "limit": "10"}

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, service, upstream, descriptions):
        first = await service.get_cities("PL", 1, 10)
        requests_after_first = len(upstream.requests)
        lookups_after_first = len(descriptions.calls)

        second = await service.get_cities("PL", 1, 10)

        assert second == first
        assert len(upstream.requests) == requests_after_first
        assert len(descriptions.calls) == lookups_after_first

    @pytest.mark.asyncio
    async def test_whitespace_variants_share_cache_entry(self, service, upstream):
        await service.get_cities("PL", 1, 10)
        await service.get_cities("  PL ", 1, 10)

        assert upstream.count("/pollution") == 1

    @pytest.mark.asyncio
    async def test_different_parameters_miss_cache(self, service, upstream):
        await service.get_cities("PL", 1, 10)
        await service.get_cities("PL", 2, 10)
        await service.get_cities("PL", 1, 5)
        await service.get_cities("FR", 1, 10)

        assert upstream.count("/pollution") == 4
        assert upstream.count("/auth/login") == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_refetched(self, service, upstream):
        await service.get_cities("PL", 1, 10)
        key = service.cache.generate_key("PL", 1, 10)
        entry = await service.cache.get(key)

        later = entry.timestamp + timedelta(seconds=61)
        service.cache._now = lambda: later
        await service.get_cities("PL", 1, 10)

        assert upstream.count("/pollution") == 2

    @pytest.mark.parametrize("country", ["", "   ", "\t"])
    @pytest.mark.asyncio
    async def test_blank_country_rejected_without_network(self, service, upstream, country):
        with pytest.raises(InvalidInputError) as exc_info:
            await service.get_cities(country, 1, 10)

        assert exc_info.value.http_status == 400
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_expired_token_single_refresh(self, service, upstream):
        upstream.pollution_statuses = [401]

        result = await service.get_cities("PL", 1, 10)

        assert result.count == 3
        assert upstream.count("/auth/refresh") == 1
        assert upstream.count("/pollution") == 2

    @pytest.mark.asyncio
    async def test_repeated_unauthorized_is_fatal_and_not_cached(self, service, upstream):
        upstream.pollution_statuses = [401, 401]

        with pytest.raises(AuthRejectedError) as exc_info:
            await service.get_cities("PL", 1, 10)

        assert exc_info.value.http_status == 502
        assert exc_info.value.context["country"] == "PL"
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_upstream_error_carries_context_and_is_not_cached(self, service, upstream):
        upstream.pollution_statuses = [500]

        with pytest.raises(UpstreamHTTPError) as exc_info:
            await service.get_cities("PL", 3, 20)

        assert exc_info.value.context == {
            "operation": "get_cities",
            "country": "PL",
            "page": 3,
            "limit": 20,
        }

        # Failures are not cached: the next call goes upstream again
        await service.get_cities("PL", 3, 20)
        assert upstream.count("/pollution") == 2

    @pytest.mark.asyncio
    async def test_malformed_page_payload(self, service, upstream):
        upstream.results = [{"name": None}]

        with pytest.raises(UpstreamTransportError):
            await service.get_cities("PL", 1, 10)

    @pytest.mark.asyncio
    async def test_one_failed_description_still_succeeds_and_caches(
        self, service, upstream, descriptions
    ):
        descriptions.failing = {"Krakow"}

        result = await service.get_cities("PL", 1, 10)

        assert [c.description for c in result.cities] == [
            "About Zurich",
            None,
            "About Sao Paulo",
        ]
        assert len(service.cache) == 1

    @pytest.mark.asyncio
    async def test_missing_base_url(self, api_client, auth, descriptions):
        service = CityQueryService(
            source=PollutionSource(api_client, auth, ""),
            pipeline=CleaningPipeline(describe=descriptions),
            cache=ResultCache(),
        )

        with pytest.raises(ConfigurationError):
            await service.get_cities("PL", 1, 10)

    @pytest.mark.asyncio
    async def test_health_status(self, service):
        await service.get_cities("PL", 1, 10)
        await service.get_cities("PL", 1, 10)

        status = service.get_health_status()
        assert status["auth_state"] == "AUTHENTICATED"
        assert status["cache"]["hits"] == 1
        assert status["cache"]["misses"] == 1
        assert status["upstream_configured"] is True

        await service.close()


class TestFromSettings:
    """Object graph wiring from configuration."""

    @pytest.mark.asyncio
    async def test_builds_service(self):
        settings = Settings.model_validate(
            {
                "API_BASE_URL": "https://api.test/",
                "API_USERNAME": "user",
                "API_PASSWORD": "secret",
                "CACHE_TTL_SECONDS": "30",
                "CACHE_MAX_SIZE": "5",
            }
        )

        async with CityQueryService.from_settings(settings) as service:
            assert service.cache_ttl == timedelta(seconds=30)
            assert service.source.base_url == "https://api.test"
            assert service.get_health_status()["cache"]["max_size"] == 5
            assert service.get_health_status()["auth_state"] == "UNAUTHENTICATED"

    def test_settings_defaults(self):
        settings = Settings.model_validate({})

        assert settings.cache_ttl_seconds == 60
        assert settings.cache_default_ttl_seconds == 600
        assert settings.cache_max_size == 100
        assert settings.api_base_url == ""
