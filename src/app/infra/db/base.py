# src/app/infra/db/base.py
"""
Abstract repositories for users, recipes and messages.
This interface allows easy swapping between different storage backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from src.app.domain.models import (
    Message,
    MessageStatus,
    Recipe,
    RecipeFilters,
    UserProfile,
)


class UserRepository(ABC):
    """
    Abstract interface for user profiles.

    Implementations:
    - SupabaseUserRepository: `users` table in Supabase
    """

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    def get_many(self, user_ids: Sequence[str]) -> list[UserProfile]:
        """Profiles for the given ids, in no particular order. Unknown ids are skipped."""
        pass

    @abstractmethod
    def create(self, profile: UserProfile) -> UserProfile:
        """
        Insert a new profile.

        Raises:
            EmailInUseError: If the email is already taken
        """
        pass

    @abstractmethod
    def update_fields(self, user_id: str, changes: dict[str, Any]) -> Optional[UserProfile]:
        """
        Update plain profile fields (name, email, avatar, role).

        Returns:
            The updated profile, or None if it does not exist
        """
        pass

    @abstractmethod
    def save_starred(self, user: UserProfile, expected_version: int) -> Optional[UserProfile]:
        """
        Write user.starred_recipes only if the stored version still equals
        expected_version, bumping the version.

        Returns:
            The updated profile, or None on version conflict / missing row
        """
        pass

    @abstractmethod
    def list_page(self, offset: int, limit: int) -> tuple[list[UserProfile], int]:
        """
        Newest-first page of profiles.

        Returns:
            Tuple of (profiles, total count)
        """
        pass

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        pass


class RecipeRepository(ABC):
    """
    Abstract interface for recipes.

    Implementations:
    - SupabaseRecipeRepository: `recipes` table with a full-text index
    """

    @abstractmethod
    def get_by_id(self, recipe_id: str) -> Optional[Recipe]:
        pass

    @abstractmethod
    def get_many(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        pass

    @abstractmethod
    def search(
        self,
        filters: RecipeFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[Recipe], int]:
        """
        Newest-first page of recipes matching every given filter.

        Args:
            filters: category / difficulty equality and free-text search
            offset: Rows to skip
            limit: Max rows to return

        Returns:
            Tuple of (recipes, total matching count)
        """
        pass

    @abstractmethod
    def create(self, recipe: Recipe) -> Recipe:
        pass

    @abstractmethod
    def update_fields(self, recipe_id: str, changes: dict[str, Any]) -> Optional[Recipe]:
        """
        Update editable recipe fields. Engagement fields and author are not
        accepted here.

        Returns:
            The updated recipe, or None if it does not exist
        """
        pass

    @abstractmethod
    def save_engagement(self, recipe: Recipe, expected_version: int) -> Optional[Recipe]:
        """
        Write likes, stars, reviews and average_rating only if the stored
        version still equals expected_version, bumping the version.

        Returns:
            The updated recipe, or None on version conflict / missing row
        """
        pass

    @abstractmethod
    def delete(self, recipe_id: str) -> bool:
        pass


class MessageRepository(ABC):
    """
    Abstract interface for the admin inbox.

    Implementations:
    - SupabaseMessageRepository: `messages` table
    """

    @abstractmethod
    def create(self, message: Message) -> Message:
        pass

    @abstractmethod
    def get_by_id(self, message_id: str) -> Optional[Message]:
        pass

    @abstractmethod
    def list_all(self, status: Optional[MessageStatus] = None) -> list[Message]:
        """Newest first, optionally restricted to one status."""
        pass

    @abstractmethod
    def list_by_user(self, user_id: str) -> list[Message]:
        """Newest first."""
        pass

    @abstractmethod
    def update_fields(self, message_id: str, changes: dict[str, Any]) -> Optional[Message]:
        """
        Single-row update. status and admin_reply passed together are written
        atomically.
        """
        pass

    @abstractmethod
    def delete(self, message_id: str) -> bool:
        pass
