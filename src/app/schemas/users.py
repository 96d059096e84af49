from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.app.domain.models import Category, Difficulty, Role


class StarredRecipeOut(BaseModel):
    id: str
    title: str
    image: Optional[str] = None
    prepTime: int
    cookTime: int
    difficulty: Difficulty
    category: Category


class UserOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Role
    avatar: Optional[str] = None
    starredRecipes: list[str] = Field(default_factory=list)
    createdAt: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Role
    avatar: Optional[str] = None
    starredRecipes: list[StarredRecipeOut] = Field(default_factory=list)
    createdAt: Optional[str] = None


class UserListResponse(BaseModel):
    users: list[UserOut]
    page: int
    pages: int
    total: int


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email", "password", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RoleUpdate(BaseModel):
    role: Optional[Role] = None
