"""Runtime configuration, loaded from ``QUADRA_*`` environment variables or a ``.env`` file."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUADRA_", env_file=".env", extra="ignore")

    # Third-party proxy that fetches the page server-side (bypasses CORS)
    proxy_url: str = "https://api.allorigins.win/raw"
    translate_url: str = "https://translate.googleapis.com/translate_a/single"
    translate_client: str = "gtx"

    request_timeout: float = Field(default=10.0, gt=0, description="Seconds per outbound request.")
    max_content_size: int = Field(default=10 * 1024 * 1024, ge=1)
    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=8,
        description="Simultaneous translation calls per pipeline run (1 = sequential).",
    )
    rate_limit: str = "10/minute"


@lru_cache
def get_settings() -> Settings:
    return Settings()
