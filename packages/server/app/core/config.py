"""
Application configuration loaded from environment variables.
"""

from functools import lru_cache
from typing import Annotated, List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from fabledrop_shared.logs import LEVEL_NAMES


class Settings(BaseSettings):
    """FableDrop server configuration."""

    model_config = SettingsConfigDict(env_prefix="FD_", env_file=".env", extra="ignore")

    environment: Literal["development", "production"] = "development"

    # Order/subscription store
    store_backend: Literal["sql", "sheets"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./data/fabledrop.db"
    sheets_relay_url: str = "http://localhost:5001/submit"
    store_timeout_seconds: int = 30

    # Catalog (Google Books)
    books_api_url: str = "https://www.googleapis.com/books/v1"
    books_api_key: str = ""
    catalog_cache_ttl_seconds: int = 24 * 60 * 60
    catalog_cache_max_entries: int = 256

    # Identity (Google OAuth userinfo)
    userinfo_url: str = "https://www.googleapis.com/oauth2/v1/userinfo"
    authorized_emails: Annotated[List[str], NoDecode] = []
    identity_timeout_seconds: int = 10

    # Session security
    secret_key: str = "CHANGE_ME_IN_PRODUCTION"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 7 * 24 * 60

    # Plan
    plan_length_months: int = 6
    lifetime_order_cap: int = 6

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "text"] = "json"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LEVEL_NAMES:
            raise ValueError(f"log_level must be one of {', '.join(LEVEL_NAMES)}")
        return value

    @field_validator("authorized_emails", mode="before")
    @classmethod
    def _split_emails(cls, value):
        if isinstance(value, str):
            return [e.strip() for e in value.split(",") if e.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
