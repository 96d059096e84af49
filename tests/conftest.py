from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient

from src.app.config import Settings
from src.app.context import AppContext
from src.app.domain.models import AuthIdentity, Role, UserProfile
from src.app.main import create_app
from tests.fakes import (
    FakeAuthGateway,
    InMemoryMessageRepository,
    InMemoryRecipeRepository,
    InMemoryUserRepository,
    MemoryStorage,
    make_user,
)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        SUPABASE_URL="https://example.supabase.co",
        SUPABASE_SERVICE_ROLE_KEY="test-service-key",
        APP_ENV="test",
        UPLOAD_DIR=str(tmp_path / "uploads"),
    )


@pytest.fixture
def users_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def recipes_repo() -> InMemoryRecipeRepository:
    return InMemoryRecipeRepository()


@pytest.fixture
def messages_repo() -> InMemoryMessageRepository:
    return InMemoryMessageRepository()


@pytest.fixture
def auth() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def context(settings, users_repo, recipes_repo, messages_repo, auth, storage) -> AppContext:
    return AppContext(
        settings=settings,
        users=users_repo,
        recipes=recipes_repo,
        messages=messages_repo,
        auth=auth,
        storage=storage,
    )


@pytest.fixture
def client(context) -> TestClient:
    return TestClient(create_app(context=context))


@pytest.fixture
def register(users_repo, auth) -> Callable[..., tuple[UserProfile, dict[str, str]]]:
    """Create a profile with a valid token; returns (profile, auth headers)."""

    def _register(name: str = "Ada", role: Role = Role.USER) -> tuple[UserProfile, dict[str, str]]:
        profile = users_repo.create(make_user(name=name, role=role))
        token = auth.issue_token(AuthIdentity(id=profile.id, email=profile.email, name=profile.name))
        return profile, {"Authorization": f"Bearer {token}"}

    return _register
