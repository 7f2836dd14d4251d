"""Dependency providers and settings management."""

import logging
from functools import lru_cache
from typing import Callable, List, Optional

from fastapi import Depends
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.meta_ads_client import MetaAdsClient
from .services.sheets_client import SheetsClient

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECRET_KEY = "metaboard-session-secret-change-this-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    # Meta Marketing API. Request parameters take precedence over these.
    META_ACCESS_TOKEN: Optional[str] = None
    META_AD_ACCOUNT_ID: Optional[str] = None
    META_API_VERSION: str = "v21.0"
    META_INSIGHTS_LOOKBACK_YEARS: int = 3
    META_PAGE_LIMIT: int = 500
    META_MAX_CONCURRENCY: int = 8

    # Google Sheets export
    GOOGLE_SHEETS_ID: Optional[str] = None
    GOOGLE_SERVICE_ACCOUNT_EMAIL: Optional[str] = None
    GOOGLE_PRIVATE_KEY: Optional[str] = None
    SHEETS_TAB_NAME: str = "Meta Ads Data"
    SHEETS_TIMEZONE: str = "America/Lima"

    BACKEND_CORS_ORIGINS: str = "*"

    # Dashboard
    DASHBOARD_API_BASE_URL: str = "http://localhost:8000"
    DASHBOARD_SESSIONS_DIR: str = ".metaboard_sessions"
    SESSION_SECRET_KEY: str = DEFAULT_SESSION_SECRET_KEY

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def google_private_key(self) -> Optional[str]:
        """Private key with escaped newlines restored (env vars flatten them)."""
        if not self.GOOGLE_PRIVATE_KEY:
            return None
        return self.GOOGLE_PRIVATE_KEY.replace("\\n", "\n")

    def missing_sheets_settings(self) -> List[str]:
        """Names of the Google Sheets settings that are not configured."""
        required = {
            "GOOGLE_SHEETS_ID": self.GOOGLE_SHEETS_ID,
            "GOOGLE_SERVICE_ACCOUNT_EMAIL": self.GOOGLE_SERVICE_ACCOUNT_EMAIL,
            "GOOGLE_PRIVATE_KEY": self.GOOGLE_PRIVATE_KEY,
        }
        return [name for name, value in required.items() if not value]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


MetaClientFactory = Callable[[str], MetaAdsClient]
SheetsClientFactory = Callable[[str, str], SheetsClient]


def get_meta_client_factory(settings: Settings = Depends(get_settings)) -> MetaClientFactory:
    """Return a callable building a MetaAdsClient for a given access token.

    Routers receive a factory rather than a client so that no client (and no
    network session) exists until configuration has been validated.
    """

    def factory(access_token: str) -> MetaAdsClient:
        return MetaAdsClient(
            access_token=access_token,
            api_version=settings.META_API_VERSION,
            page_limit=settings.META_PAGE_LIMIT,
        )

    return factory


def get_sheets_client_factory(settings: Settings = Depends(get_settings)) -> SheetsClientFactory:
    """Return a callable building a SheetsClient from service-account material."""

    def factory(service_account_email: str, private_key: str) -> SheetsClient:
        return SheetsClient.from_service_account(
            service_account_email=service_account_email,
            private_key=private_key,
        )

    return factory


def load_env_file() -> None:
    """Load environment variables from .env file if not already set.

    Does NOT overwrite existing environment variables.
    """
    from dotenv import load_dotenv

    loaded = load_dotenv(override=False)

    if loaded:
        logger.info("Loaded local .env file (existing variables were NOT overwritten)")
    else:
        logger.debug("No local .env file found or loaded")
