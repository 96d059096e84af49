# src/app/services/recipe_service.py
"""
Recipe service.
Handles recipe CRUD, listing and the engagement aggregate (likes, stars, reviews).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar
from uuid import uuid4

from src.app.domain import aggregates
from src.app.domain.errors import (
    ConcurrentUpdateError,
    RecipeNotFoundError,
    StorageError,
    UserNotFoundError,
    ValidationError,
)
from src.app.domain.models import (
    AuthorSummary,
    PageResult,
    Recipe,
    RecipeFilters,
    Review,
    ToggleResult,
    UserProfile,
)
from src.app.infra.db.base import RecipeRepository, UserRepository
from src.app.infra.storage.base import StorageProvider
from src.app.services.uploads import ImageUpload, store_image
from src.app.services.user_service import resolve_authors

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
DEFAULT_MAX_UPDATE_ATTEMPTS = 3

EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "ingredients",
    "instructions",
    "tags",
    "prep_time",
    "cook_time",
    "servings",
    "difficulty",
    "category",
    "image",
})
REQUIRED_FIELDS = frozenset({"title", "description", "prep_time", "cook_time"})


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RecipeService:
    """
    Service for recipes and their engagement aggregate.

    Engagement writes follow load -> mutate -> conditional save on the
    loaded version; a version conflict reloads and reapplies the mutation
    up to max_update_attempts times.
    """

    def __init__(
        self,
        recipes: RecipeRepository,
        users: UserRepository,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        max_update_attempts: int = DEFAULT_MAX_UPDATE_ATTEMPTS,
        default_image: Optional[str] = None,
        storage: Optional[StorageProvider] = None,
    ):
        self._recipes = recipes
        self._users = users
        self._storage = storage
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.max_update_attempts = max_update_attempts
        self.default_image = default_image

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_recipes(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        filters: Optional[RecipeFilters] = None,
    ) -> PageResult:
        """
        Newest-first page of recipes matching all given filters.

        Args:
            page: 1-based page number
            limit: Page size (defaults to default_page_size, capped at max_page_size)
            filters: category / difficulty / free-text search

        Returns:
            PageResult with recipes, page count, total and resolved authors
        """
        size = self.default_page_size if limit is None else limit
        if size < 1:
            raise ValidationError("Limit must be 1 or greater")
        size = min(size, self.max_page_size)
        offset = aggregates.page_offset(page, size)

        recipes, total = self._recipes.search(filters or RecipeFilters(), offset, size)
        return PageResult(
            items=recipes,
            page=page,
            pages=aggregates.page_count(total, size),
            total=total,
            authors=resolve_authors(self._users, [recipe.author_id for recipe in recipes]),
        )

    def get_recipe(self, recipe_id: str) -> tuple[Recipe, dict[str, AuthorSummary]]:
        """Recipe with its author and review authors resolved."""
        recipe = self._require_recipe(recipe_id)
        return recipe, self.authors_for(recipe)

    def authors_for(self, recipe: Recipe) -> dict[str, AuthorSummary]:
        user_ids = [recipe.author_id, *(review.user_id for review in recipe.reviews)]
        return resolve_authors(self._users, user_ids)

    def get_reviews(self, recipe_id: str) -> tuple[list[Review], dict[str, AuthorSummary]]:
        recipe = self._require_recipe(recipe_id)
        authors = resolve_authors(self._users, [review.user_id for review in recipe.reviews])
        return list(recipe.reviews), authors

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_recipe(
        self,
        author_id: str,
        fields: dict[str, Any],
        image: Optional[ImageUpload] = None,
    ) -> Recipe:
        """
        Create a recipe authored by author_id. An uploaded image is stored
        only once the fields are valid, and removed again if the insert fails.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown recipe fields: {', '.join(sorted(unknown))}")
        missing = [name for name in sorted(REQUIRED_FIELDS) if fields.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        values = {key: value for key, value in fields.items() if value is not None}
        if "instructions" in values:
            values["instructions"] = sorted(values["instructions"], key=lambda item: item.step)

        stored_url = self._store_upload(author_id, image)
        if stored_url:
            values["image"] = stored_url
        if not values.get("image"):
            values["image"] = self.default_image

        now = _now_utc()
        recipe = Recipe(
            id=str(uuid4()),
            author_id=author_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        try:
            created = self._recipes.create(recipe)
        except Exception:
            self._discard_image(stored_url)
            raise
        logger.info("Recipe created: id=%s, author=%s, title=%r", created.id, author_id, created.title)
        return created

    def update_recipe(
        self,
        recipe_id: str,
        changes: dict[str, Any],
        image: Optional[ImageUpload] = None,
        uploader_id: Optional[str] = None,
    ) -> Recipe:
        """
        Update editable fields. author, likes, stars, reviews and the
        average rating are not editable. A replaced upload is removed from
        storage after the row is written.
        """
        protected = set(changes) - EDITABLE_FIELDS
        if protected:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(protected))}")

        values = {key: value for key, value in changes.items() if value is not None}
        current = self._require_recipe(recipe_id)
        if "instructions" in values:
            values["instructions"] = sorted(values["instructions"], key=lambda item: item.step)

        stored_url = self._store_upload(uploader_id or current.author_id, image)
        if stored_url:
            values["image"] = stored_url
        if not values:
            return current

        try:
            updated = self._recipes.update_fields(recipe_id, values)
        except Exception:
            self._discard_image(stored_url)
            raise
        if updated is None:
            self._discard_image(stored_url)
            raise RecipeNotFoundError(recipe_id)

        if current.image and current.image != updated.image:
            self._discard_image(current.image)
        logger.info("Recipe updated: id=%s, fields=%s", recipe_id, sorted(values))
        return updated

    def delete_recipe(self, recipe_id: str) -> None:
        recipe = self._require_recipe(recipe_id)
        if not self._recipes.delete(recipe_id):
            raise RecipeNotFoundError(recipe_id)
        self._discard_image(recipe.image)
        logger.info("Recipe deleted: id=%s", recipe_id)

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    def toggle_like(self, recipe_id: str, user_id: str) -> ToggleResult:
        _, result = self._mutate_recipe(recipe_id, lambda recipe: aggregates.toggle_like(recipe, user_id))
        logger.info("Like toggled: recipe=%s, user=%s, liked=%s", recipe_id, user_id, result.active)
        return result

    def toggle_star(self, recipe_id: str, user_id: str) -> ToggleResult:
        """
        Toggle the user's star on the recipe and mirror it on the user's
        starred list. The two documents are written independently.
        """
        self._require_recipe(recipe_id)
        if self._users.get_by_id(user_id) is None:
            raise UserNotFoundError(user_id)

        _, result = self._mutate_recipe(recipe_id, lambda recipe: aggregates.toggle_star(recipe, user_id))
        self._mutate_user(user_id, lambda user: aggregates.set_starred(user, recipe_id, result.active))
        logger.info("Star toggled: recipe=%s, user=%s, starred=%s", recipe_id, user_id, result.active)
        return result

    def add_review(
        self,
        recipe_id: str,
        user_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> Recipe:
        """
        Add a review and recompute the average rating.

        Raises:
            RecipeNotFoundError: If the recipe does not exist
            DuplicateReviewError: If the user already reviewed the recipe
        """
        def mutate(recipe: Recipe) -> tuple[Recipe, None]:
            return aggregates.add_review(recipe, user_id, rating, comment), None

        saved, _ = self._mutate_recipe(recipe_id, mutate)
        logger.info(
            "Review added: recipe=%s, user=%s, rating=%d, average=%.2f",
            recipe_id,
            user_id,
            rating,
            saved.average_rating,
        )
        return saved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_recipe(self, recipe_id: str) -> Recipe:
        recipe = self._recipes.get_by_id(recipe_id)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def _store_upload(self, owner_id: str, image: Optional[ImageUpload]) -> Optional[str]:
        if image is None:
            return None
        if self._storage is None:
            raise StorageError("Image uploads are not configured")
        return store_image(self._storage, owner_id, image.filename, image.content_type, image.data)

    def _discard_image(self, url: Optional[str]) -> None:
        """Remove an upload we stored. Other URLs (placeholders, external links) are left alone."""
        if self._storage is None:
            return
        key = self._storage.key_for_url(url)
        if key is None:
            return
        try:
            removed = self._storage.delete_object(key)
        except StorageError as error:
            logger.warning("Failed to remove image: key=%s, error=%s", key, error)
            return
        if not removed:
            logger.warning("Image was not removed: key=%s", key)

    def _mutate_recipe(
        self,
        recipe_id: str,
        mutate: Callable[[Recipe], tuple[Recipe, T]],
    ) -> tuple[Recipe, T]:
        for attempt in range(1, self.max_update_attempts + 1):
            recipe = self._require_recipe(recipe_id)
            updated, outcome = mutate(recipe)
            saved = self._recipes.save_engagement(updated, expected_version=recipe.version)
            if saved is not None:
                return saved, outcome
            logger.warning(
                "Version conflict on recipe=%s (attempt %d/%d), reloading",
                recipe_id,
                attempt,
                self.max_update_attempts,
            )
        raise ConcurrentUpdateError("recipe", recipe_id, self.max_update_attempts)

    def _mutate_user(
        self,
        user_id: str,
        mutate: Callable[[UserProfile], UserProfile],
    ) -> UserProfile:
        for attempt in range(1, self.max_update_attempts + 1):
            user = self._users.get_by_id(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            updated = mutate(user)
            if updated is user:
                return user
            saved = self._users.save_starred(updated, expected_version=user.version)
            if saved is not None:
                return saved
            logger.warning(
                "Version conflict on user=%s (attempt %d/%d), reloading",
                user_id,
                attempt,
                self.max_update_attempts,
            )
        raise ConcurrentUpdateError("user", user_id, self.max_update_attempts)
