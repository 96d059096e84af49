from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5183", "http://localhost:5173"],
    )

    # Listing
    DEFAULT_PAGE_SIZE: int = 12
    USERS_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Optimistic concurrency on likes / stars / reviews
    MAX_UPDATE_ATTEMPTS: int = 3

    # Images
    DEFAULT_RECIPE_IMAGE: str = "/uploads/recipe-placeholder.jpg"
    IMAGE_STORAGE: Literal["local", "r2"] = "local"
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    R2_ACCOUNT_ID: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: Optional[str] = None
    R2_PUBLIC_URL: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
