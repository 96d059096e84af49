# src/app/context.py
"""
Process-wide application context, built once at startup and handed to
request handlers through FastAPI dependencies.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from supabase import create_client

from src.app.config import Settings
from src.app.infra.auth.base import AuthGateway
from src.app.infra.auth.supabase_auth import SupabaseAuthGateway
from src.app.infra.db.base import MessageRepository, RecipeRepository, UserRepository
from src.app.infra.db.supabase_repo import (
    SupabaseMessageRepository,
    SupabaseRecipeRepository,
    SupabaseUserRepository,
)
from src.app.infra.storage.base import StorageProvider
from src.app.infra.storage.local_provider import LocalStorageProvider
from src.app.infra.storage.r2_provider import R2StorageProvider

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    users: UserRepository
    recipes: RecipeRepository
    messages: MessageRepository
    auth: AuthGateway
    storage: StorageProvider


def build_storage(settings: Settings) -> StorageProvider:
    if settings.IMAGE_STORAGE == "r2":
        return R2StorageProvider(
            account_id=settings.R2_ACCOUNT_ID,
            access_key_id=settings.R2_ACCESS_KEY_ID,
            secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            bucket_name=settings.R2_BUCKET_NAME,
            public_url=settings.R2_PUBLIC_URL,
        )
    return LocalStorageProvider(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)


def build_context(settings: Settings) -> AppContext:
    client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    context = AppContext(
        settings=settings,
        users=SupabaseUserRepository(client),
        recipes=SupabaseRecipeRepository(client),
        messages=SupabaseMessageRepository(client),
        auth=SupabaseAuthGateway(client),
        storage=build_storage(settings),
    )
    logger.info("Application context ready: env=%s, image_storage=%s", settings.APP_ENV, settings.IMAGE_STORAGE)
    return context
