from __future__ import annotations

import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from src.app.domain.errors import EmailInUseError, RepositoryError
from src.app.domain.models import (
    AdminReply,
    Category,
    Difficulty,
    MessageStatus,
    RecipeFilters,
    Review,
    Role,
    UserProfile,
)
from src.app.infra.db.supabase_repo import (
    SEARCH_COLUMN,
    SupabaseMessageRepository,
    SupabaseRecipeRepository,
    SupabaseUserRepository,
)
from tests.fakes import make_recipe, make_user

RECIPE_ID = "0b9a3f0e-5a4c-4d7e-9f51-6f0c2d9a1e11"
USER_ID = "6d2c1a90-1f7e-4b7b-8a8e-2c3d4e5f6a7b"
MESSAGE_ID = "9e8d7c6b-5a49-4c3b-8a2d-1e0f9a8b7c6d"

CHAIN_METHODS = ("select", "eq", "in_", "limit", "order", "range", "insert", "update", "delete", "text_search")


def _builder(*results: SimpleNamespace) -> MagicMock:
    builder = MagicMock()
    for name in CHAIN_METHODS:
        getattr(builder, name).return_value = builder
    builder.execute.side_effect = list(results)
    return builder


def _result(data=None, count=None) -> SimpleNamespace:
    return SimpleNamespace(data=data or [], count=count)


def _client(builder: MagicMock) -> MagicMock:
    client = MagicMock()
    client.table.return_value = builder
    return client


def _recipe_row(**overrides):
    row = {
        "id": RECIPE_ID,
        "title": "Shakshuka",
        "description": "Eggs in tomato sauce",
        "author_id": USER_ID,
        "prep_time": 10,
        "cook_time": 25,
        "ingredients": ["eggs", "tomatoes"],
        "instructions": [{"step": 1, "text": "Simmer sauce"}, {"step": 2, "text": "Add eggs"}],
        "tags": ["brunch"],
        "servings": 2,
        "difficulty": "Easy",
        "category": "Breakfast",
        "image": "/uploads/shakshuka.jpg",
        "likes": [USER_ID],
        "stars": [],
        "reviews": [
            {"user_id": USER_ID, "rating": 4, "comment": "Good", "created_at": "2026-01-02T10:00:00Z"}
        ],
        "average_rating": 4,
        "version": 7,
        "created_at": "2026-01-01T08:00:00+00:00",
        "updated_at": "2026-01-02T10:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestRecipeRowMapping:
    def test_get_by_id_maps_row(self) -> None:
        builder = _builder(_result([_recipe_row()]))
        repo = SupabaseRecipeRepository(_client(builder))

        recipe = repo.get_by_id(RECIPE_ID)

        assert recipe.title == "Shakshuka"
        assert recipe.difficulty == Difficulty.EASY
        assert recipe.category == Category.BREAKFAST
        assert [i.text for i in recipe.instructions] == ["Simmer sauce", "Add eggs"]
        assert recipe.reviews[0].rating == 4
        assert recipe.reviews[0].created_at == datetime(2026, 1, 2, 10, 0, tzinfo=timezone.utc)
        assert recipe.version == 7
        builder.eq.assert_called_with("id", RECIPE_ID)

    def test_invalid_id_skips_query(self) -> None:
        builder = _builder()
        client = _client(builder)
        repo = SupabaseRecipeRepository(client)

        assert repo.get_by_id("not-a-uuid") is None
        client.table.assert_not_called()

    def test_missing_row(self) -> None:
        repo = SupabaseRecipeRepository(_client(_builder(_result([]))))
        assert repo.get_by_id(RECIPE_ID) is None


class TestRecipeSearch:
    def test_empty_when_offset_past_total(self) -> None:
        builder = _builder(_result([], count=3))
        repo = SupabaseRecipeRepository(_client(builder))

        recipes, total = repo.search(RecipeFilters(), offset=12, limit=12)

        assert recipes == []
        assert total == 3
        assert builder.execute.call_count == 1
        builder.range.assert_not_called()

    def test_filters_and_range(self) -> None:
        builder = _builder(_result([], count=1), _result([_recipe_row()]))
        repo = SupabaseRecipeRepository(_client(builder))

        recipes, total = repo.search(
            RecipeFilters(category=Category.BREAKFAST, difficulty=Difficulty.EASY, search="eggs tomato"),
            offset=0,
            limit=12,
        )

        assert total == 1
        assert [r.id for r in recipes] == [RECIPE_ID]
        builder.eq.assert_any_call("category", "Breakfast")
        builder.eq.assert_any_call("difficulty", "Easy")
        builder.text_search.assert_called_with(
            SEARCH_COLUMN,
            "eggs tomato",
            options={"type": "websearch", "config": "english"},
        )
        builder.order.assert_called_with("created_at", desc=True)
        builder.range.assert_called_with(0, 11)


class TestRecipeWrites:
    def test_save_engagement_is_conditional_on_version(self) -> None:
        builder = _builder(_result([_recipe_row(version=8)]))
        repo = SupabaseRecipeRepository(_client(builder))
        recipe = make_recipe(
            id=RECIPE_ID,
            likes=["a"],
            reviews=[Review(user_id="a", rating=5)],
            average_rating=5.0,
            version=7,
        )

        saved = repo.save_engagement(recipe, expected_version=7)

        payload = builder.update.call_args.args[0]
        assert payload["version"] == 8
        assert payload["likes"] == ["a"]
        assert payload["reviews"][0]["rating"] == 5
        assert payload["average_rating"] == 5.0
        builder.eq.assert_any_call("version", 7)
        assert saved.version == 8

    def test_save_engagement_conflict_returns_none(self) -> None:
        repo = SupabaseRecipeRepository(_client(_builder(_result([]))))
        assert repo.save_engagement(make_recipe(id=RECIPE_ID), expected_version=1) is None

    def test_update_fields_serializes_enums(self) -> None:
        builder = _builder(_result([_recipe_row(difficulty="Hard")]))
        repo = SupabaseRecipeRepository(_client(builder))

        repo.update_fields(RECIPE_ID, {"difficulty": Difficulty.HARD})

        payload = builder.update.call_args.args[0]
        assert payload["difficulty"] == "Hard"
        assert "updated_at" in payload

    def test_update_fields_rejects_engagement_fields(self) -> None:
        repo = SupabaseRecipeRepository(_client(_builder()))
        with pytest.raises(ValueError):
            repo.update_fields(RECIPE_ID, {"likes": []})

    def test_api_error_wrapped(self) -> None:
        builder = _builder()
        builder.execute.side_effect = APIError({"message": "boom", "code": "500", "hint": None, "details": None})
        repo = SupabaseRecipeRepository(_client(builder))

        with pytest.raises(RepositoryError):
            repo.delete(RECIPE_ID)


class TestUserRepository:
    def _user_row(self, **overrides):
        row = {
            "id": USER_ID,
            "name": "Ada",
            "email": "ada@example.com",
            "role": "admin",
            "avatar": None,
            "starred_recipes": [RECIPE_ID],
            "version": 2,
            "created_at": "2026-01-01T00:00:00+00:00",
            "updated_at": "2026-01-01T00:00:00+00:00",
        }
        row.update(overrides)
        return row

    def test_maps_row(self) -> None:
        repo = SupabaseUserRepository(_client(_builder(_result([self._user_row()]))))

        user = repo.get_by_id(USER_ID)

        assert user.role == Role.ADMIN
        assert user.starred_recipes == [RECIPE_ID]
        assert user.version == 2

    def test_duplicate_email_on_create(self) -> None:
        builder = _builder()
        builder.execute.side_effect = APIError(
            {"message": "duplicate key value", "code": "23505", "hint": None, "details": None}
        )
        repo = SupabaseUserRepository(_client(builder))

        with pytest.raises(EmailInUseError):
            repo.create(make_user(id=USER_ID))

    def test_profile_without_email_stores_null(self) -> None:
        builder = _builder(_result([self._user_row(email=None, role="user")]))
        repo = SupabaseUserRepository(_client(builder))

        created = repo.create(UserProfile(id=USER_ID, name="User", email=None))

        assert builder.insert.call_args.args[0]["email"] is None
        assert created.email is None

    def test_save_starred_is_conditional(self) -> None:
        builder = _builder(_result([self._user_row(version=3)]))
        repo = SupabaseUserRepository(_client(builder))

        saved = repo.save_starred(make_user(id=USER_ID, starred_recipes=[RECIPE_ID]), expected_version=2)

        payload = builder.update.call_args.args[0]
        assert payload["starred_recipes"] == [RECIPE_ID]
        assert payload["version"] == 3
        builder.eq.assert_any_call("version", 2)
        assert saved.version == 3

    def test_list_page(self) -> None:
        builder = _builder(_result([], count=21), _result([self._user_row()]))
        repo = SupabaseUserRepository(_client(builder))

        users, total = repo.list_page(offset=20, limit=20)

        assert total == 21
        assert len(users) == 1
        builder.range.assert_called_with(20, 39)


class TestMessageRepository:
    def test_admin_reply_roundtrip_shape(self) -> None:
        row = {
            "id": MESSAGE_ID,
            "user_id": USER_ID,
            "type": "question",
            "title": "Hi",
            "content": "Question",
            "recipe_id": None,
            "image": None,
            "status": "replied",
            "admin_reply": {"content": "Answer", "replied_at": "2026-02-01T00:00:00+00:00"},
            "created_at": "2026-01-31T00:00:00+00:00",
            "updated_at": "2026-02-01T00:00:00+00:00",
        }
        builder = _builder(_result([row]))
        repo = SupabaseMessageRepository(_client(builder))

        updated = repo.update_fields(
            MESSAGE_ID,
            {
                "admin_reply": AdminReply(content="Answer", replied_at=datetime(2026, 2, 1, tzinfo=timezone.utc)),
                "status": MessageStatus.REPLIED,
            },
        )

        payload = builder.update.call_args.args[0]
        assert payload["status"] == "replied"
        assert payload["admin_reply"] == {"content": "Answer", "replied_at": "2026-02-01T00:00:00+00:00"}
        assert updated.admin_reply.content == "Answer"
        assert updated.status == MessageStatus.REPLIED

    def test_list_all_filters_status(self) -> None:
        builder = _builder(_result([]))
        repo = SupabaseMessageRepository(_client(builder))

        repo.list_all(MessageStatus.PENDING)

        builder.eq.assert_called_with("status", "pending")
        builder.order.assert_called_with("created_at", desc=True)
