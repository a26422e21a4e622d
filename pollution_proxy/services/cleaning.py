"""
City cleaning pipeline - filter, normalize, enrich.

Upstream mixes real cities with sensor and placeholder rows. Those are
dropped, survivors get a display name, then a best-effort description.
"""

import asyncio
import re
import unicodedata
from typing import Awaitable, Callable

from loguru import logger

from pollution_proxy.models import CleanedCityEntry, PageResult, PollutionPage, RawCityEntry

# Rows whose diacritic-free name matches any of these are not cities
BLACKLIST_PATTERNS = [
    re.compile(
        r"\b(station|zone|district|powerplant|unknown|industrial|monitoring)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\d"),
]

PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")
WORD_START_RE = re.compile(r"(^|\s)(\S)")

DescriptionLookup = Callable[[str], Awaitable[str | None]]


def strip_diacritics(name: str) -> str:
    """Decompose (NFD) and drop combining marks: "Zürich" -> "Zurich"."""
    decomposed = unicodedata.normalize("NFD", name)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_blacklisted(name: str) -> bool:
    stripped = strip_diacritics(name)
    return any(pattern.search(stripped) for pattern in BLACKLIST_PATTERNS)


def normalize_city_name(name: str) -> str:
    """
    Display form of a city name.

    "  são PAULO (Brazil) " -> "Sao Paulo". Idempotent.
    """
    cleaned = strip_diacritics(name)
    cleaned = PARENTHETICAL_RE.sub("", cleaned)
    cleaned = cleaned.strip().lower()
    return WORD_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), cleaned)


class CleaningPipeline:
    """
    Turns a raw upstream page into a PageResult.

    Usage:
        pipeline = CleaningPipeline(describe=wikipedia.describe)
        result = await pipeline.run(raw_page, limit=10)
    """

    def __init__(self, describe: DescriptionLookup, max_concurrency: int = 10):
        self._describe = describe
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    def filter_entries(self, entries: list[RawCityEntry]) -> list[RawCityEntry]:
        """Order-preserving removal of non-city rows."""
        kept = [entry for entry in entries if not is_blacklisted(entry.name)]
        dropped = len(entries) - len(kept)
        if dropped:
            logger.debug(f"Dropped {dropped} corrupted city entries")
        return kept

    async def enrich(self, names: list[str]) -> list[str | None]:
        """
        Look up one description per name concurrently.

        Results line up with ``names``. A failed lookup yields None and never
        cancels the others.
        """

        async def lookup(name: str) -> str | None:
            async with self._semaphore:
                return await self._describe(name)

        results = await asyncio.gather(
            *(lookup(name) for name in names), return_exceptions=True
        )

        descriptions: list[str | None] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning(f"Description lookup for '{name}' raised: {result!r}")
                descriptions.append(None)
            else:
                descriptions.append(result)
        return descriptions

    async def run(self, raw: PollutionPage, limit: int) -> PageResult:
        survivors = self.filter_entries(raw.results)
        names = [normalize_city_name(entry.name) for entry in survivors]
        descriptions = await self.enrich(names)

        cities = [
            CleanedCityEntry(
                name=name,
                pollution=entry.pollution,
                description=description,
            )
            for entry, name, description in zip(survivors, names, descriptions)
        ]

        return PageResult(
            page=raw.meta.page,
            count=len(cities),
            limit=limit,
            cities=cities,
        )
