# src/app/domain/aggregates.py
"""
Pure mutations of the Recipe, UserProfile and Message aggregates.

Every function returns new aggregate instances and never touches storage;
the services persist the results with versioned conditional writes.
"""
from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from src.app.domain.errors import DuplicateReviewError, ValidationError
from src.app.domain.models import (
    AdminReply,
    Message,
    MessageStatus,
    Recipe,
    Review,
    ToggleResult,
    UserProfile,
)

MIN_RATING = 1
MAX_RATING = 5


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def toggle_membership(members: Sequence[str], member_id: str) -> tuple[list[str], bool]:
    """
    Remove member_id if present, otherwise append it.

    Returns:
        Tuple of (new member list, whether member_id is now a member)
    """
    if member_id in members:
        return [m for m in members if m != member_id], False
    return [*members, member_id], True


def compute_average_rating(reviews: Sequence[Review]) -> float:
    """Mean of all review ratings, recomputed in full. 0 with no reviews."""
    if not reviews:
        return 0.0
    return sum(review.rating for review in reviews) / len(reviews)


def has_reviewed(recipe: Recipe, user_id: str) -> bool:
    return any(review.user_id == user_id for review in recipe.reviews)


def validate_rating(rating: object) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be an integer between 1 and 5")
    return rating


def add_review(
    recipe: Recipe,
    user_id: str,
    rating: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Recipe:
    """
    Append a review and recompute the average rating.

    Raises:
        DuplicateReviewError: If the user already reviewed this recipe
        ValidationError: If the rating is outside 1-5
    """
    if has_reviewed(recipe, user_id):
        raise DuplicateReviewError(recipe.id, user_id)

    review = Review(
        user_id=user_id,
        rating=validate_rating(rating),
        comment=comment,
        created_at=now or _now_utc(),
    )
    reviews = [*recipe.reviews, review]
    return replace(recipe, reviews=reviews, average_rating=compute_average_rating(reviews))


def toggle_like(recipe: Recipe, user_id: str) -> tuple[Recipe, ToggleResult]:
    likes, liked = toggle_membership(recipe.likes, user_id)
    return replace(recipe, likes=likes), ToggleResult(members=likes, active=liked)


def toggle_star(recipe: Recipe, user_id: str) -> tuple[Recipe, ToggleResult]:
    stars, starred = toggle_membership(recipe.stars, user_id)
    return replace(recipe, stars=stars), ToggleResult(members=stars, active=starred)


def set_starred(user: UserProfile, recipe_id: str, starred: bool) -> UserProfile:
    """
    Mirror a star toggle on the user's starred list.
    Starring adds the recipe exactly once; unstarring removes every occurrence.
    """
    current = user.starred_recipes
    if starred:
        if recipe_id in current:
            return user
        return replace(user, starred_recipes=[*current, recipe_id])
    if recipe_id not in current:
        return user
    return replace(user, starred_recipes=[rid for rid in current if rid != recipe_id])


def apply_reply(message: Message, content: str, now: Optional[datetime] = None) -> Message:
    """Set the admin reply and move the message to REPLIED in one step."""
    text = (content or "").strip()
    if not text:
        raise ValidationError("Reply content is required")
    return replace(
        message,
        admin_reply=AdminReply(content=text, replied_at=now or _now_utc()),
        status=MessageStatus.REPLIED,
    )


def page_count(total: int, page_size: int) -> int:
    """ceil(total / page_size); 0 when there are no results."""
    if page_size <= 0:
        raise ValidationError("Page size must be positive")
    return math.ceil(total / page_size)


def page_offset(page: int, page_size: int) -> int:
    if page < 1:
        raise ValidationError("Page must be 1 or greater")
    return (page - 1) * page_size
