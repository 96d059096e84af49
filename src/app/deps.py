# src/app/deps.py (exposes the application context and auth as dependencies)

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from src.app.context import AppContext
from src.app.domain.errors import AuthenticationError
from src.app.domain.models import Role
from src.app.domain.policies import Access, authorize
from src.app.services.message_service import MessageService
from src.app.services.recipe_service import RecipeService
from src.app.services.user_service import UserService


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_recipe_service(ctx: AppContext = Depends(get_context)) -> RecipeService:
    settings = ctx.settings
    return RecipeService(
        ctx.recipes,
        ctx.users,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        max_page_size=settings.MAX_PAGE_SIZE,
        max_update_attempts=settings.MAX_UPDATE_ATTEMPTS,
        default_image=settings.DEFAULT_RECIPE_IMAGE,
        storage=ctx.storage,
    )


def get_user_service(ctx: AppContext = Depends(get_context)) -> UserService:
    return UserService(
        ctx.users,
        ctx.recipes,
        ctx.auth,
        default_page_size=ctx.settings.USERS_PAGE_SIZE,
        max_page_size=ctx.settings.MAX_PAGE_SIZE,
    )


def get_message_service(ctx: AppContext = Depends(get_context)) -> MessageService:
    return MessageService(ctx.messages, ctx.recipes)


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    role: Role = Role.USER
    avatar: str | None = None


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    ctx: AppContext = Depends(get_context),
    users: UserService = Depends(get_user_service),
) -> CurrentUser:
    """
    Receives Authorization: Bearer <access_token>, validates it with the
    identity provider and loads (or creates) the caller's profile.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise AuthenticationError("Not authorized, no token")

    identity = ctx.auth.verify_token(cred.credentials)
    profile = users.ensure_profile(identity)
    return CurrentUser(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        role=profile.role,
        avatar=profile.avatar,
    )


def require(access: Access) -> Callable[..., CurrentUser]:
    """Routing dependency enforcing the authorization policy for an access level."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        authorize(user.role, access)
        return user

    return dependency


require_user = require(Access.AUTHENTICATED)
require_admin = require(Access.ADMIN)
