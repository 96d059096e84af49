# src/app/main.py
from __future__ import annotations
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.app.config import Settings, get_settings
from src.app.context import AppContext, build_context
from src.app.exception_handlers import register_exception_handlers
from src.app.routers.auth import router as auth_router
from src.app.routers.messages import router as messages_router
from src.app.routers.recipes import router as recipes_router
from src.app.routers.users import router as users_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(context: Optional[AppContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API. Without an explicit context, the Supabase-backed one is
    created at startup. Run with `uvicorn src.app.main:create_app --factory`.
    """
    if settings is None:
        settings = context.settings if context is not None else get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "context", None) is None:
            app.state.context = build_context(settings)
        logger.info("Recipe API started: env=%s", settings.APP_ENV)
        yield
        logger.info("Recipe API stopped")

    app = FastAPI(title="Recipe Share API", version="1.0.0", lifespan=lifespan)
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.FRONTEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(recipes_router)
    app.include_router(users_router)
    app.include_router(messages_router)

    if settings.IMAGE_STORAGE == "local":
        app.mount(
            settings.UPLOAD_URL_PREFIX,
            StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
            name="uploads",
        )

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "environment": settings.APP_ENV,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
