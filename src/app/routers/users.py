# src/app/routers/users.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.app.deps import CurrentUser, get_user_service, require_admin, require_user
from src.app.domain.models import UserProfile
from src.app.routers.recipes import _iso, _recipe_to_response
from src.app.schemas.common import MessageResponse
from src.app.schemas.recipes import RecipeOut
from src.app.schemas.users import (
    ProfileResponse,
    ProfileUpdate,
    RoleUpdate,
    StarredRecipeOut,
    UserListResponse,
    UserOut,
)
from src.app.services.user_service import UserService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _user_to_response(user: UserProfile) -> UserOut:
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        avatar=user.avatar,
        starredRecipes=list(user.starred_recipes),
        createdAt=_iso(user.created_at),
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    user: CurrentUser = Depends(require_user),
    service: UserService = Depends(get_user_service),
) -> ProfileResponse:
    profile, starred = service.get_profile(user.id)
    return ProfileResponse(
        id=profile.id,
        name=profile.name,
        email=profile.email,
        role=profile.role,
        avatar=profile.avatar,
        starredRecipes=[
            StarredRecipeOut(
                id=recipe.id,
                title=recipe.title,
                image=recipe.image,
                prepTime=recipe.prep_time,
                cookTime=recipe.cook_time,
                difficulty=recipe.difficulty,
                category=recipe.category,
            )
            for recipe in starred
        ],
        createdAt=_iso(profile.created_at),
    )


@router.put("/profile", response_model=UserOut)
def update_profile(
    body: ProfileUpdate,
    user: CurrentUser = Depends(require_user),
    service: UserService = Depends(get_user_service),
) -> UserOut:
    updated = service.update_profile(
        user.id,
        name=body.name,
        email=str(body.email) if body.email else None,
        avatar=body.avatar,
        password=body.password,
    )
    return _user_to_response(updated)


@router.get("/starred", response_model=list[RecipeOut])
def get_starred_recipes(
    user: CurrentUser = Depends(require_user),
    service: UserService = Depends(get_user_service),
) -> list[RecipeOut]:
    recipes, authors = service.get_starred_recipes(user.id)
    return [_recipe_to_response(recipe, authors) for recipe in recipes]


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    result = service.list_users(page=page, limit=limit)
    return UserListResponse(
        users=[_user_to_response(user) for user in result.items],
        page=result.page,
        pages=result.pages,
        total=result.total,
    )


@router.put("/{user_id}/role", response_model=UserOut)
def update_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
) -> UserOut:
    updated = service.update_role(user_id, body.role)
    log.info("users.role user=%s role=%s by=%s", user_id, updated.role.value, admin.id)
    return _user_to_response(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: UserService = Depends(get_user_service),
) -> MessageResponse:
    service.delete_user(admin.id, user_id)
    return MessageResponse(message="User removed successfully")
