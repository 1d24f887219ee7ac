"""Typed configuration for the movies service and its client library."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# -- Service defaults -----------------------------------------------------------

DEFAULT_OMDB_API_BASE_URL = "http://www.omdbapi.com/"
DEFAULT_OMDB_TIMEOUT_SECONDS = 10.0
DATA_DIRECTORY = "data"
FAVORITES_FILE_NAME = "favorites.json"
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
DEFAULT_CORS_ORIGINS = "http://localhost:3000"
DEFAULT_LOG_LEVEL = "INFO"

# -- Client defaults ------------------------------------------------------------

DEFAULT_API_BASE_URL = "http://localhost:3001/movies"
CLIENT_RETRY_COUNT = 1
CLIENT_RETRY_DELAY_SECONDS = 1.0
CLIENT_TIMEOUT_SECONDS = 10.0
CLIENT_FAVORITES_PAGE_SIZE = DEFAULT_PAGE_SIZE


class Settings(BaseSettings):
    """Environment-driven settings.

    ``OMDB_API_KEY`` has no default credential: the catalog adapter
    refuses to start without one.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    omdb_api_key: str = ""
    omdb_api_base_url: str = DEFAULT_OMDB_API_BASE_URL
    omdb_timeout_seconds: float = Field(default=DEFAULT_OMDB_TIMEOUT_SECONDS, gt=0)
    favorites_file: Path = Path(DATA_DIRECTORY) / FAVORITES_FILE_NAME
    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    cors_origins: str = DEFAULT_CORS_ORIGINS
    log_level: str = DEFAULT_LOG_LEVEL
    environment: str = "development"

    @property
    def cors_origin_list(self) -> List[str]:
        """Comma-separated ``CORS_ORIGINS`` split into normalised origins."""
        origins = [o.strip().rstrip("/") for o in self.cors_origins.split(",")]
        return [o for o in origins if o]


@lru_cache
def get_settings() -> Settings:
    return Settings()
