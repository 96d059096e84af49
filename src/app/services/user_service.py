# src/app/services/user_service.py
"""
User profile service.
Profiles, starred recipes and admin user management.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from src.app.domain import aggregates
from src.app.domain.errors import (
    EmailInUseError,
    SelfDeleteError,
    UserNotFoundError,
    ValidationError,
)
from src.app.domain.models import (
    AuthIdentity,
    AuthorSummary,
    PageResult,
    Recipe,
    Role,
    UserProfile,
)
from src.app.infra.auth.base import AuthGateway
from src.app.infra.db.base import RecipeRepository, UserRepository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MIN_PASSWORD_LENGTH = 6


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def resolve_authors(users: UserRepository, user_ids: Iterable[str]) -> dict[str, AuthorSummary]:
    """Map user id -> {id, name, avatar}. Unknown ids are left out."""
    ids = sorted({uid for uid in user_ids if uid})
    if not ids:
        return {}
    return {
        user.id: AuthorSummary(id=user.id, name=user.name, avatar=user.avatar)
        for user in users.get_many(ids)
    }


def _ordered(recipes: list[Recipe], recipe_ids: list[str]) -> list[Recipe]:
    by_id = {recipe.id: recipe for recipe in recipes}
    return [by_id[rid] for rid in recipe_ids if rid in by_id]


class UserService:
    def __init__(
        self,
        users: UserRepository,
        recipes: RecipeRepository,
        auth: AuthGateway,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._users = users
        self._recipes = recipes
        self._auth = auth
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def ensure_profile(self, identity: AuthIdentity) -> UserProfile:
        """
        Load the profile of an authenticated identity, creating it with
        role USER on first sight.
        """
        profile = self._users.get_by_id(identity.id)
        if profile is not None:
            return profile

        # phone and OAuth-only identities have no email; store NULL, not ""
        email = (identity.email or "").strip().lower() or None
        name = (identity.name or "").strip() or (email or "").split("@")[0] or "User"
        now = _now_utc()
        try:
            profile = self._users.create(
                UserProfile(
                    id=identity.id,
                    name=name,
                    email=email,
                    role=Role.USER,
                    created_at=now,
                    updated_at=now,
                )
            )
        except EmailInUseError:
            # a concurrent first request may have created it already
            existing = self._users.get_by_id(identity.id)
            if existing is None:
                raise
            return existing

        logger.info("Profile created on first login: user=%s", identity.id)
        return profile

    def get_profile(self, user_id: str) -> tuple[UserProfile, list[Recipe]]:
        """Profile plus its starred recipes in starred order."""
        profile = self._require_user(user_id)
        starred = _ordered(self._recipes.get_many(profile.starred_recipes), profile.starred_recipes)
        return profile, starred

    def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserProfile:
        """
        Update own profile. Blank values keep the current value.

        Raises:
            UserNotFoundError: If the profile does not exist
            EmailInUseError: If another account already uses the email
        """
        profile = self._require_user(user_id)
        if password and len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        changes: dict[str, str] = {}

        if name and name.strip():
            changes["name"] = name.strip()
        if email and email.strip():
            normalized = email.strip().lower()
            if normalized != profile.email:
                existing = self._users.get_by_email(normalized)
                if existing is not None and existing.id != user_id:
                    raise EmailInUseError(normalized)
                changes["email"] = normalized
        if avatar and avatar.strip():
            changes["avatar"] = avatar.strip()

        if password:
            self._auth.update_password(user_id, password)
        # login email lives on the identity
        if "email" in changes:
            self._auth.update_email(user_id, changes["email"])

        if not changes:
            return profile

        updated = self._users.update_fields(user_id, changes)
        if updated is None:
            raise UserNotFoundError(user_id)
        logger.info("Profile updated: user=%s, fields=%s", user_id, sorted(changes))
        return updated

    def get_starred_recipes(self, user_id: str) -> tuple[list[Recipe], dict[str, AuthorSummary]]:
        profile = self._require_user(user_id)
        recipes = _ordered(self._recipes.get_many(profile.starred_recipes), profile.starred_recipes)
        return recipes, resolve_authors(self._users, [recipe.author_id for recipe in recipes])

    def list_users(self, page: int = 1, limit: Optional[int] = None) -> PageResult:
        size = self.default_page_size if limit is None else limit
        if size < 1:
            raise ValidationError("Limit must be 1 or greater")
        size = min(size, self.max_page_size)
        offset = aggregates.page_offset(page, size)

        users, total = self._users.list_page(offset, size)
        return PageResult(
            items=users,
            page=page,
            pages=aggregates.page_count(total, size),
            total=total,
        )

    def update_role(self, user_id: str, role: Optional[Role]) -> UserProfile:
        """An omitted role leaves the user unchanged."""
        profile = self._require_user(user_id)
        if role is None or role == profile.role:
            return profile

        updated = self._users.update_fields(user_id, {"role": role})
        if updated is None:
            raise UserNotFoundError(user_id)
        logger.info("Role changed: user=%s, %s -> %s", user_id, profile.role.value, updated.role.value)
        return updated

    def delete_user(self, actor_id: str, user_id: str) -> None:
        """
        Remove the identity, then its profile (the row also cascades from
        the identity in the database).

        Raises:
            UserNotFoundError: If the user does not exist
            SelfDeleteError: If an admin tries to delete their own account
        """
        self._require_user(user_id)
        if user_id == actor_id:
            raise SelfDeleteError(user_id)

        self._auth.delete_identity(user_id)
        self._users.delete(user_id)
        logger.info("User deleted: user=%s, by=%s", user_id, actor_id)

    def ensure_admin(self, email: str, password: Optional[str], name: str) -> tuple[UserProfile, bool]:
        """
        Make `email` an admin, creating the identity and profile when missing.
        Idempotent. Returns the profile and whether anything changed.

        Raises:
            ValidationError: If the identity must be created and no usable password is given
        """
        email = email.strip().lower()
        identity = self._auth.find_identity(email)
        if identity is None:
            if not password or len(password) < MIN_PASSWORD_LENGTH:
                raise ValidationError(
                    f"A password of at least {MIN_PASSWORD_LENGTH} characters is required to create {email}"
                )
            identity = self._auth.create_identity(email, password, name)

        profile = self._users.get_by_id(identity.id)
        if profile is None:
            now = _now_utc()
            profile = self._users.create(
                UserProfile(
                    id=identity.id,
                    name=name or email.split("@")[0],
                    email=email,
                    role=Role.ADMIN,
                    created_at=now,
                    updated_at=now,
                )
            )
            logger.info("Admin created: user=%s, email=%s", profile.id, email)
            return profile, True

        if profile.is_admin:
            return profile, False

        updated = self._users.update_fields(profile.id, {"role": Role.ADMIN})
        if updated is None:
            raise UserNotFoundError(profile.id)
        logger.info("User promoted to admin: user=%s, email=%s", updated.id, email)
        return updated, True

    def _require_user(self, user_id: str) -> UserProfile:
        profile = self._users.get_by_id(user_id)
        if profile is None:
            raise UserNotFoundError(user_id)
        return profile
