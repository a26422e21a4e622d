"""
Wire and result models for the pollution proxy.
"""

from pydantic import BaseModel, Field


class LoginResponse(BaseModel):
    """Token pair returned by both the login and the refresh exchange."""

    token: str
    refresh_token: str = Field(alias="refreshToken")


class RawCityEntry(BaseModel):
    """City entry as the upstream sends it. Names may be sensor junk."""

    name: str
    pollution: int | float


class PageMeta(BaseModel):
    page: int
    total_pages: int | None = Field(default=None, alias="totalPages")


class PollutionPage(BaseModel):
    """One raw page of the upstream pollution listing."""

    meta: PageMeta
    results: list[RawCityEntry] = Field(default_factory=list)


class CleanedCityEntry(BaseModel):
    """City entry after filtering, name normalization and enrichment."""

    name: str
    pollution: int | float
    description: str | None = None


class PageResult(BaseModel):
    """Fully processed page served to callers and stored in the cache."""

    page: int
    count: int
    limit: int
    cities: list[CleanedCityEntry] = Field(default_factory=list)
