from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from src.app.domain.errors import EmailInUseError, RepositoryError
from src.app.domain.models import (
    AdminReply,
    Category,
    Difficulty,
    Instruction,
    Message,
    MessageStatus,
    MessageType,
    Recipe,
    RecipeFilters,
    Review,
    Role,
    UserProfile,
)
from src.app.infra.db.base import MessageRepository, RecipeRepository, UserRepository

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
SEARCH_COLUMN = "fts"
SEARCH_CONFIG = "english"

RECIPE_EDITABLE_FIELDS = frozenset({
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
USER_EDITABLE_FIELDS = frozenset({"name", "email", "avatar", "role"})
MESSAGE_EDITABLE_FIELDS = frozenset({"status", "admin_reply"})


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _id_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def _execute(operation: str, builder: Any) -> Any:
    try:
        return builder.execute()
    except APIError as error:
        logger.error("PostgREST error during %s: code=%s, message=%s", operation, error.code, error.message)
        raise RepositoryError(operation, error.message or str(error)) from error
    except (httpx.HTTPError, ConnectionError, TimeoutError) as error:
        logger.error("Network error during %s: %s", operation, error)
        raise RepositoryError(operation, str(error)) from error


def _first(result: Any) -> dict[str, Any] | None:
    rows = result.data or []
    return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def _row_to_user(row: dict[str, Any]) -> UserProfile:
    return UserProfile(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        email=_safe_str(row.get("email")),
        role=Role(str(row.get("role") or Role.USER.value)),
        avatar=_safe_str(row.get("avatar")),
        starred_recipes=_id_list(row.get("starred_recipes")),
        version=_safe_int(row.get("version")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _instruction_from_json(entry: dict[str, Any]) -> Instruction:
    return Instruction(step=_safe_int(entry.get("step")), text=str(entry.get("text") or ""))


def _review_from_json(entry: dict[str, Any]) -> Review:
    return Review(
        user_id=str(entry.get("user_id") or ""),
        rating=_safe_int(entry.get("rating")),
        comment=_safe_str(entry.get("comment")),
        created_at=_parse_datetime(entry.get("created_at")),
    )


def _review_to_json(review: Review) -> dict[str, Any]:
    return {
        "user_id": review.user_id,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": _format_datetime(review.created_at),
    }


def _row_to_recipe(row: dict[str, Any]) -> Recipe:
    instructions = row.get("instructions") or []
    reviews = row.get("reviews") or []
    return Recipe(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        description=str(row.get("description") or ""),
        author_id=str(row["author_id"]),
        prep_time=_safe_int(row.get("prep_time")),
        cook_time=_safe_int(row.get("cook_time")),
        ingredients=[str(item) for item in row.get("ingredients") or []],
        instructions=[_instruction_from_json(item) for item in instructions if isinstance(item, dict)],
        tags=[str(item) for item in row.get("tags") or []],
        servings=_safe_int(row.get("servings"), 4),
        difficulty=Difficulty(str(row.get("difficulty") or Difficulty.MEDIUM.value)),
        category=Category(str(row.get("category") or Category.DINNER.value)),
        image=_safe_str(row.get("image")),
        likes=_id_list(row.get("likes")),
        stars=_id_list(row.get("stars")),
        reviews=[_review_from_json(item) for item in reviews if isinstance(item, dict)],
        average_rating=float(row.get("average_rating") or 0),
        version=_safe_int(row.get("version")),
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _recipe_value_to_json(key: str, value: Any) -> Any:
    if key == "instructions":
        return [{"step": item.step, "text": item.text} for item in value]
    if key == "difficulty" and value is not None:
        return Difficulty(value).value
    if key == "category" and value is not None:
        return Category(value).value
    return value


def _recipe_to_row(recipe: Recipe) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": recipe.id,
        "author_id": recipe.author_id,
        "likes": list(recipe.likes),
        "stars": list(recipe.stars),
        "reviews": [_review_to_json(review) for review in recipe.reviews],
        "average_rating": recipe.average_rating,
        "version": recipe.version,
        "created_at": _format_datetime(recipe.created_at or _now_utc()),
        "updated_at": _format_datetime(recipe.updated_at or _now_utc()),
    }
    for key in RECIPE_EDITABLE_FIELDS:
        row[key] = _recipe_value_to_json(key, getattr(recipe, key))
    return row


def _row_to_message(row: dict[str, Any]) -> Message:
    reply_data = row.get("admin_reply")
    admin_reply = None
    if isinstance(reply_data, dict) and reply_data.get("content"):
        admin_reply = AdminReply(
            content=str(reply_data["content"]),
            replied_at=_parse_datetime(reply_data.get("replied_at")) or _now_utc(),
        )
    return Message(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        type=MessageType(str(row.get("type") or MessageType.SUGGESTION.value)),
        title=str(row.get("title") or ""),
        content=str(row.get("content") or ""),
        recipe_id=_safe_str(row.get("recipe_id")),
        image=_safe_str(row.get("image")),
        status=MessageStatus(str(row.get("status") or MessageStatus.PENDING.value)),
        admin_reply=admin_reply,
        created_at=_parse_datetime(row.get("created_at")),
        updated_at=_parse_datetime(row.get("updated_at")),
    )


def _message_value_to_json(key: str, value: Any) -> Any:
    if key == "status":
        return MessageStatus(value).value
    if key == "admin_reply":
        if value is None:
            return None
        return {"content": value.content, "replied_at": _format_datetime(value.replied_at)}
    return value


def _check_fields(changes: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Fields not updatable here: {', '.join(sorted(unknown))}")


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

class SupabaseUserRepository(UserRepository):
    TABLE_NAME = "users"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseUserRepository initialized")

    def _table(self):
        return self._client.table(self.TABLE_NAME)

    def get_by_id(self, user_id: str) -> UserProfile | None:
        if not _is_uuid(user_id):
            return None
        result = _execute("get user", self._table().select("*").eq("id", user_id).limit(1))
        row = _first(result)
        return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> UserProfile | None:
        result = _execute("get user by email", self._table().select("*").eq("email", email.lower()).limit(1))
        row = _first(result)
        return _row_to_user(row) if row else None

    def get_many(self, user_ids: Sequence[str]) -> list[UserProfile]:
        ids = sorted({uid for uid in user_ids if _is_uuid(uid)})
        if not ids:
            return []
        result = _execute("get users", self._table().select("*").in_("id", ids))
        return [_row_to_user(row) for row in result.data or []]

    def create(self, profile: UserProfile) -> UserProfile:
        now = _now_utc()
        row = {
            "id": profile.id,
            "name": profile.name,
            "email": profile.email.lower() if profile.email else None,
            "role": profile.role.value,
            "avatar": profile.avatar,
            "starred_recipes": list(profile.starred_recipes),
            "version": profile.version,
            "created_at": _format_datetime(profile.created_at or now),
            "updated_at": _format_datetime(profile.updated_at or now),
        }
        try:
            result = self._table().insert(row).execute()
        except APIError as error:
            if error.code == UNIQUE_VIOLATION:
                raise EmailInUseError(profile.email) from error
            logger.error("PostgREST error creating user: %s", error.message)
            raise RepositoryError("create user", error.message or str(error)) from error

        created = _first(result)
        if not created:
            raise RepositoryError("create user", "no row returned")
        logger.info("Created user profile: id=%s, role=%s", profile.id, profile.role.value)
        return _row_to_user(created)

    def update_fields(self, user_id: str, changes: dict[str, Any]) -> UserProfile | None:
        _check_fields(changes, USER_EDITABLE_FIELDS)
        if not _is_uuid(user_id):
            return None

        payload: dict[str, Any] = {"updated_at": _now_utc().isoformat()}
        for key, value in changes.items():
            if key == "role":
                value = Role(value).value
            elif key == "email":
                value = str(value).lower()
            payload[key] = value

        try:
            result = self._table().update(payload).eq("id", user_id).execute()
        except APIError as error:
            if error.code == UNIQUE_VIOLATION and "email" in changes:
                raise EmailInUseError(str(changes["email"])) from error
            logger.error("PostgREST error updating user: %s", error.message)
            raise RepositoryError("update user", error.message or str(error)) from error

        row = _first(result)
        return _row_to_user(row) if row else None

    def save_starred(self, user: UserProfile, expected_version: int) -> UserProfile | None:
        payload = {
            "starred_recipes": list(user.starred_recipes),
            "version": expected_version + 1,
            "updated_at": _now_utc().isoformat(),
        }
        result = _execute(
            "save starred recipes",
            self._table().update(payload).eq("id", user.id).eq("version", expected_version),
        )
        row = _first(result)
        return _row_to_user(row) if row else None

    def list_page(self, offset: int, limit: int) -> tuple[list[UserProfile], int]:
        count_result = _execute("count users", self._table().select("id", count="exact").limit(1))
        total = getattr(count_result, "count", 0) or 0
        if offset >= total:
            return [], total

        result = _execute(
            "list users",
            self._table().select("*").order("created_at", desc=True).range(offset, offset + limit - 1),
        )
        return [_row_to_user(row) for row in result.data or []], total

    def delete(self, user_id: str) -> bool:
        if not _is_uuid(user_id):
            return False
        result = _execute("delete user", self._table().delete().eq("id", user_id))
        return bool(result.data)


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseRecipeRepository initialized")

    def _table(self):
        return self._client.table(self.TABLE_NAME)

    def get_by_id(self, recipe_id: str) -> Recipe | None:
        if not _is_uuid(recipe_id):
            return None
        result = _execute("get recipe", self._table().select("*").eq("id", recipe_id).limit(1))
        row = _first(result)
        return _row_to_recipe(row) if row else None

    def get_many(self, recipe_ids: Sequence[str]) -> list[Recipe]:
        ids = sorted({rid for rid in recipe_ids if _is_uuid(rid)})
        if not ids:
            return []
        result = _execute("get recipes", self._table().select("*").in_("id", ids))
        return [_row_to_recipe(row) for row in result.data or []]

    def _apply_filters(self, query: Any, filters: RecipeFilters) -> Any:
        if filters.category:
            query = query.eq("category", Category(filters.category).value)
        if filters.difficulty:
            query = query.eq("difficulty", Difficulty(filters.difficulty).value)
        if filters.search:
            query = query.text_search(
                SEARCH_COLUMN,
                filters.search,
                options={"type": "websearch", "config": SEARCH_CONFIG},
            )
        return query

    def search(
        self,
        filters: RecipeFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[Recipe], int]:
        count_query = self._apply_filters(self._table().select("id", count="exact"), filters)
        count_result = _execute("count recipes", count_query.limit(1))
        total = getattr(count_result, "count", 0) or 0

        # PostgREST rejects ranges past the end, an empty page is not an error here
        if offset >= total:
            return [], total

        query = self._apply_filters(self._table().select("*"), filters)
        result = _execute(
            "search recipes",
            query.order("created_at", desc=True).range(offset, offset + limit - 1),
        )
        return [_row_to_recipe(row) for row in result.data or []], total

    def create(self, recipe: Recipe) -> Recipe:
        result = _execute("create recipe", self._table().insert(_recipe_to_row(recipe)))
        row = _first(result)
        if not row:
            raise RepositoryError("create recipe", "no row returned")
        logger.info("Created recipe: id=%s, author=%s", recipe.id, recipe.author_id)
        return _row_to_recipe(row)

    def update_fields(self, recipe_id: str, changes: dict[str, Any]) -> Recipe | None:
        _check_fields(changes, RECIPE_EDITABLE_FIELDS)
        if not _is_uuid(recipe_id):
            return None

        payload = {key: _recipe_value_to_json(key, value) for key, value in changes.items()}
        payload["updated_at"] = _now_utc().isoformat()
        result = _execute("update recipe", self._table().update(payload).eq("id", recipe_id))
        row = _first(result)
        return _row_to_recipe(row) if row else None

    def save_engagement(self, recipe: Recipe, expected_version: int) -> Recipe | None:
        payload = {
            "likes": list(recipe.likes),
            "stars": list(recipe.stars),
            "reviews": [_review_to_json(review) for review in recipe.reviews],
            "average_rating": recipe.average_rating,
            "version": expected_version + 1,
            "updated_at": _now_utc().isoformat(),
        }
        result = _execute(
            "save recipe engagement",
            self._table().update(payload).eq("id", recipe.id).eq("version", expected_version),
        )
        row = _first(result)
        return _row_to_recipe(row) if row else None

    def delete(self, recipe_id: str) -> bool:
        if not _is_uuid(recipe_id):
            return False
        result = _execute("delete recipe", self._table().delete().eq("id", recipe_id))
        return bool(result.data)


class SupabaseMessageRepository(MessageRepository):
    TABLE_NAME = "messages"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseMessageRepository initialized")

    def _table(self):
        return self._client.table(self.TABLE_NAME)

    def create(self, message: Message) -> Message:
        now = _now_utc()
        row = {
            "id": message.id,
            "user_id": message.user_id,
            "type": message.type.value,
            "title": message.title,
            "content": message.content,
            "recipe_id": message.recipe_id,
            "image": message.image,
            "status": message.status.value,
            "admin_reply": _message_value_to_json("admin_reply", message.admin_reply),
            "created_at": _format_datetime(message.created_at or now),
            "updated_at": _format_datetime(message.updated_at or now),
        }
        result = _execute("create message", self._table().insert(row))
        created = _first(result)
        if not created:
            raise RepositoryError("create message", "no row returned")
        return _row_to_message(created)

    def get_by_id(self, message_id: str) -> Message | None:
        if not _is_uuid(message_id):
            return None
        result = _execute("get message", self._table().select("*").eq("id", message_id).limit(1))
        row = _first(result)
        return _row_to_message(row) if row else None

    def list_all(self, status: Optional[MessageStatus] = None) -> list[Message]:
        query = self._table().select("*")
        if status is not None:
            query = query.eq("status", MessageStatus(status).value)
        result = _execute("list messages", query.order("created_at", desc=True))
        return [_row_to_message(row) for row in result.data or []]

    def list_by_user(self, user_id: str) -> list[Message]:
        if not _is_uuid(user_id):
            return []
        result = _execute(
            "list user messages",
            self._table().select("*").eq("user_id", user_id).order("created_at", desc=True),
        )
        return [_row_to_message(row) for row in result.data or []]

    def update_fields(self, message_id: str, changes: dict[str, Any]) -> Message | None:
        _check_fields(changes, MESSAGE_EDITABLE_FIELDS)
        if not _is_uuid(message_id):
            return None

        payload = {key: _message_value_to_json(key, value) for key, value in changes.items()}
        payload["updated_at"] = _now_utc().isoformat()
        result = _execute("update message", self._table().update(payload).eq("id", message_id))
        row = _first(result)
        return _row_to_message(row) if row else None

    def delete(self, message_id: str) -> bool:
        if not _is_uuid(message_id):
            return False
        result = _execute("delete message", self._table().delete().eq("id", message_id))
        return bool(result.data)
