"""Configuration management for the URL shortener application.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    redis_url = settings.REDIS_URL

**Step 3 — Override for local development**::
    STORE_BACKEND=memory uvicorn shortener.main:app --reload

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ``STORE_BACKEND=memory`` runs the whole service without Redis.
- ``BASE_URL`` is optional; when unset short URLs use the request origin.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from shortener.enums import StoreBackend


class Settings(BaseSettings):
    APP_NAME: str = "url-shortener"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    BASE_URL: str | None = None

    # Key-value store
    STORE_BACKEND: StoreBackend = StoreBackend.REDIS
    REDIS_URL: str = "redis://redis:6379/0"
    LINKS_NAMESPACE: str = "links"
    ANALYTICS_NAMESPACE: str = "analytics"
    USERS_NAMESPACE: str = "users"

    # Short code config
    SHORT_CODE_LENGTH: int = 6
    SHORT_CODE_MAX_ATTEMPTS: int = 10
    LINK_ID_LENGTH: int = 16

    # Analytics
    CLICK_HISTORY_LIMIT: int = 100
    USER_AGENT_MAX_LENGTH: int = 200
    GEO_COUNTRY_HEADER: str = "CF-IPCountry"

    # Accounts
    VERIFY_TOKEN_TTL_SECONDS: int = 86400
    RESET_TOKEN_TTL_SECONDS: int = 900
    FRONTEND_URL: str = "http://localhost:3000"

    # Outbound email
    EMAIL_API_URL: str = "https://api.resend.com/emails"
    EMAIL_API_KEY: str | None = None
    EMAIL_FROM: str = "onboarding@resend.dev"
    EMAIL_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
