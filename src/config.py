from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    rates_api_base_url: str = "https://open.er-api.com/v6"
    request_timeout: float = 10.0
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.5

    cache_file: Path | None = None
    use_cache: bool = True
    freshness_days: int = 7
    locale: str = "en_US"

    model_config = SettingsConfigDict(env_prefix="CURR_", env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()


def default_cache_path() -> Path:
    try:
        root = Path.home()
    except RuntimeError:
        root = Path.cwd()
    return root / ".curr-cache"
