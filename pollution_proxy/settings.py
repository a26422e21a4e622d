import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Upstream pollution API
    api_base_url: str = Field(default="", alias="API_BASE_URL")
    api_username: str = Field(default="", alias="API_USERNAME")
    api_password: str = Field(default="", alias="API_PASSWORD")
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")

    # Description lookup
    description_base_url: str = Field(
        default="https://en.wikipedia.org/api/rest_v1/page/summary",
        alias="DESCRIPTION_BASE_URL",
    )
    description_timeout: float = Field(default=5.0, alias="DESCRIPTION_TIMEOUT")
    description_concurrency: int = Field(default=10, alias="DESCRIPTION_CONCURRENCY")
    user_agent: str = Field(default="pollution-proxy/0.1", alias="USER_AGENT")

    # Result cache
    cache_ttl_seconds: int = Field(default=60, alias="CACHE_TTL_SECONDS")
    cache_default_ttl_seconds: int = Field(default=600, alias="CACHE_DEFAULT_TTL")
    cache_max_size: int = Field(default=100, alias="CACHE_MAX_SIZE")

    debug: bool = Field(default=False, alias="DEBUG")


global_settings = Settings.model_validate(dict(os.environ))
