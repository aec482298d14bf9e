"""
Configuration helpers for the branchstore backend.

Settings are read from the environment once and cached; tests call
``get_settings.cache_clear()`` after changing env vars. Nothing else in the
package reads ``os.environ`` directly: the store client receives an explicit
config built from these settings.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    data_repo: str
    service_token: str
    github_api_url: str
    github_api_version: str
    http_timeout: float
    registry_max_age: int
    public_max_age: int
    write_retries: int
    storage_backend: str
    admin_usernames: frozenset
    log_level: str
    public_url: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def _csv(value: str | None) -> frozenset:
        if not value:
            return frozenset()
        return frozenset(item.strip().lower() for item in value.split(",") if item.strip())

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        data_repo=(os.getenv("GITHUB_DATA_REPO") or "").strip(),
        service_token=os.getenv("GITHUB_APP_TOKEN") or os.getenv("GITHUB_CLIENT_SECRET") or "",
        github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
        github_api_version=os.getenv("GITHUB_API_VERSION", "2022-11-28"),
        http_timeout=_float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"), 10.0),
        registry_max_age=max(0, _int(os.getenv("REGISTRY_MAX_AGE", "60"), 60)),
        public_max_age=max(0, _int(os.getenv("PUBLIC_MAX_AGE", "60"), 60)),
        write_retries=max(0, _int(os.getenv("WRITE_RETRIES", "2"), 2)),
        storage_backend=(os.getenv("STORAGE_BACKEND") or "github").strip().lower(),
        admin_usernames=_csv(os.getenv("ADMIN_USERNAMES")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        public_url=(os.getenv("PUBLIC_URL") or os.getenv("NEXTAUTH_URL") or "").strip().rstrip("/"),
    )
