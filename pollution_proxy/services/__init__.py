"""
Service layer - HTTP client, result cache, cleaning and the query facade.

Provides:
- UpstreamClient: JSON over httpx with typed errors
- ResultCache: TTL + LRU cache for processed pages
- CleaningPipeline: Filter, normalize and enrich city entries

The CityQueryService facade lives in pollution_proxy.services.city_query.
"""

from pollution_proxy.services.errors import (
    ServiceError,
    InvalidInputError,
    ConfigurationError,
    UpstreamTransportError,
    UpstreamHTTPError,
    RequestTimeoutError,
    AuthUnavailableError,
    AuthRejectedError,
    DescriptionLookupError,
)
from pollution_proxy.services.cache import ResultCache, CacheEntry, CacheStats
from pollution_proxy.services.client import UpstreamClient
from pollution_proxy.services.cleaning import (
    CleaningPipeline,
    is_blacklisted,
    normalize_city_name,
    strip_diacritics,
)

__all__ = [
    # Errors
    "ServiceError",
    "InvalidInputError",
    "ConfigurationError",
    "UpstreamTransportError",
    "UpstreamHTTPError",
    "RequestTimeoutError",
    "AuthUnavailableError",
    "AuthRejectedError",
    "DescriptionLookupError",
    # Cache
    "ResultCache",
    "CacheEntry",
    "CacheStats",
    # Client
    "UpstreamClient",
    # Cleaning
    "CleaningPipeline",
    "is_blacklisted",
    "normalize_city_name",
    "strip_diacritics",
]
