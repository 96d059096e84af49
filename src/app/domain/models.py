# src/app/domain/models.py
"""
Domain models for the recipe sharing backend.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    """Account role. Admins manage recipes, users and the inbox."""
    USER = "user"
    ADMIN = "admin"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Category(str, Enum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    DESSERT = "Dessert"
    SNACK = "Snack"
    VEGETARIAN = "Vegetarian"
    VEGAN = "Vegan"
    QUICK = "Quick"


class MessageType(str, Enum):
    SUGGESTION = "suggestion"
    FEEDBACK = "feedback"
    REVIEW = "review"
    QUESTION = "question"


class MessageStatus(str, Enum):
    """Inbox status. Any value may be set by an admin at any time."""
    PENDING = "pending"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"


@dataclass
class Instruction:
    step: int
    text: str


@dataclass
class Review:
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Recipe:
    """
    Recipe aggregate.
    likes, stars, reviews and average_rating are derived engagement fields
    and are only written through the aggregate functions.
    """
    id: str
    title: str
    description: str
    author_id: str
    prep_time: int  # minutes
    cook_time: int  # minutes
    ingredients: list[str] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    servings: int = 4
    difficulty: Difficulty = Difficulty.MEDIUM
    category: Category = Category.DINNER
    image: Optional[str] = None

    # Engagement
    likes: list[str] = field(default_factory=list)
    stars: list[str] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
    average_rating: float = 0.0

    # Optimistic concurrency
    version: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_time(self) -> int:
        return self.prep_time + self.cook_time


@dataclass
class UserProfile:
    id: str
    name: str
    email: Optional[str] = None
    role: Role = Role.USER
    avatar: Optional[str] = None
    starred_recipes: list[str] = field(default_factory=list)
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class AdminReply:
    content: str
    replied_at: datetime


@dataclass
class Message:
    id: str
    user_id: str
    type: MessageType
    title: str
    content: str
    recipe_id: Optional[str] = None
    image: Optional[str] = None
    status: MessageStatus = MessageStatus.PENDING
    admin_reply: Optional[AdminReply] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class AuthIdentity:
    """Identity resolved from an access token by the identity provider."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class AuthorSummary:
    id: str
    name: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class RecipeFilters:
    category: Optional[Category] = None
    difficulty: Optional[Difficulty] = None
    search: Optional[str] = None


@dataclass
class ToggleResult:
    """Membership list after a toggle and whether the actor is now a member."""
    members: list[str]
    active: bool


@dataclass
class PageResult:
    items: list[Any]
    page: int
    pages: int
    total: int
    authors: dict[str, AuthorSummary] = field(default_factory=dict)
