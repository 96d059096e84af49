from __future__ import annotations

import json

import pytest

from src.app.domain.models import Role
from tests.fakes import make_recipe


@pytest.fixture
def admin(register):
    return register("Chef", Role.ADMIN)


@pytest.fixture
def member(register):
    return register("Eater")


RECIPE_BODY = {
    "title": "Pasta al Limone",
    "description": "Bright lemony pasta",
    "ingredients": ["spaghetti", "lemon", "parmesan"],
    "instructions": ["Boil pasta", "Toss with sauce"],
    "tags": ["quick"],
    "prepTime": 5,
    "cookTime": 12,
    "difficulty": "Easy",
    "category": "Dinner",
}


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestListRecipes:
    def test_public_listing(self, client, recipes_repo) -> None:
        for i in range(3):
            recipes_repo.create(make_recipe(title=f"Dish {i}", minutes_ago=i))

        response = client.get("/api/recipes", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert [r["title"] for r in body["recipes"]] == ["Dish 0", "Dish 1"]
        assert body["page"] == 1
        assert body["pages"] == 2
        assert body["total"] == 3

    def test_empty_listing(self, client) -> None:
        body = client.get("/api/recipes").json()
        assert body == {"recipes": [], "page": 1, "pages": 0, "total": 0}

    def test_page_past_end(self, client, recipes_repo) -> None:
        recipes_repo.create(make_recipe())
        body = client.get("/api/recipes", params={"page": 9}).json()
        assert body["recipes"] == []
        assert body["total"] == 1

    def test_invalid_category(self, client) -> None:
        response = client.get("/api/recipes", params={"category": "Brunch"})
        assert response.status_code == 400
        assert "category" in response.json()["message"]


class TestGetRecipe:
    def test_resolves_author(self, client, recipes_repo, admin) -> None:
        profile, _ = admin
        recipe = recipes_repo.create(make_recipe(author_id=profile.id))

        body = client.get(f"/api/recipes/{recipe.id}").json()

        assert body["author"] == {"id": profile.id, "name": "Chef", "avatar": None}
        assert body["totalTime"] == 30

    def test_not_found(self, client) -> None:
        response = client.get("/api/recipes/missing")
        assert response.status_code == 404
        assert response.json() == {"message": "Recipe not found"}


class TestCreateRecipe:
    def test_admin_creates_from_json(self, client, admin, recipes_repo) -> None:
        profile, headers = admin

        response = client.post("/api/recipes", json=RECIPE_BODY, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["author"]["id"] == profile.id
        assert body["instructions"] == [
            {"step": 1, "text": "Boil pasta"},
            {"step": 2, "text": "Toss with sauce"},
        ]
        assert body["servings"] == 4
        assert body["averageRating"] == 0
        assert body["id"] in recipes_repo.rows

    def test_admin_creates_from_multipart_with_image(self, client, admin, storage) -> None:
        _, headers = admin
        form = {key: value for key, value in RECIPE_BODY.items() if not isinstance(value, list)}
        form.update({key: json.dumps(RECIPE_BODY[key]) for key in ("ingredients", "instructions", "tags")})
        form = {key: str(value) for key, value in form.items()}

        response = client.post(
            "/api/recipes",
            data=form,
            files={"image": ("pasta.png", b"\x89PNG\r\n", "image/png")},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ingredients"] == ["spaghetti", "lemon", "parmesan"]
        assert body["image"].startswith("/uploads/recipes/")
        assert len(storage.objects) == 1

    def test_rejects_bad_image_type(self, client, admin) -> None:
        _, headers = admin
        form = {"title": "X", "description": "Y", "prepTime": "1", "cookTime": "1"}

        response = client.post(
            "/api/recipes",
            data=form,
            files={"image": ("x.pdf", b"%PDF", "application/pdf")},
            headers=headers,
        )

        assert response.status_code == 400

    def test_invalid_form_stores_no_image(self, client, admin, storage) -> None:
        _, headers = admin
        form = {"description": "No title here", "prepTime": "1", "cookTime": "1"}

        response = client.post(
            "/api/recipes",
            data=form,
            files={"image": ("a.png", b"\x89PNG\r\n", "image/png")},
            headers=headers,
        )

        assert response.status_code == 400
        assert storage.objects == {}

    def test_validation_error(self, client, admin) -> None:
        _, headers = admin
        response = client.post("/api/recipes", json={**RECIPE_BODY, "title": "x" * 101}, headers=headers)
        assert response.status_code == 400
        assert "title" in response.json()["message"]

    def test_requires_token(self, client) -> None:
        response = client.post("/api/recipes", json=RECIPE_BODY)
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, no token"}

    def test_invalid_token(self, client) -> None:
        response = client.post("/api/recipes", json=RECIPE_BODY, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, token failed"}

    def test_forbidden_for_users(self, client, member) -> None:
        _, headers = member
        response = client.post("/api/recipes", json=RECIPE_BODY, headers=headers)
        assert response.status_code == 403
        assert response.json() == {"message": "Not authorized as an admin"}


class TestUpdateAndDelete:
    def test_update(self, client, admin, recipes_repo) -> None:
        _, headers = admin
        recipe = recipes_repo.create(make_recipe(title="Old"))

        response = client.put(f"/api/recipes/{recipe.id}", json={"title": "New"}, headers=headers)

        assert response.status_code == 200
        assert response.json()["title"] == "New"
        assert recipes_repo.rows[recipe.id].title == "New"

    def test_update_rejects_engagement_fields(self, client, admin, recipes_repo) -> None:
        _, headers = admin
        recipe = recipes_repo.create(make_recipe())

        response = client.put(f"/api/recipes/{recipe.id}", json={"likes": ["x"]}, headers=headers)

        assert response.status_code == 400

    def test_delete(self, client, admin, recipes_repo) -> None:
        _, headers = admin
        recipe = recipes_repo.create(make_recipe())

        response = client.delete(f"/api/recipes/{recipe.id}", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Recipe removed"}
        assert recipe.id not in recipes_repo.rows

    def test_update_missing_recipe_stores_no_image(self, client, admin, storage) -> None:
        _, headers = admin

        response = client.put(
            "/api/recipes/00000000-0000-0000-0000-000000000000",
            data={"title": "New"},
            files={"image": ("a.png", b"\x89PNG\r\n", "image/png")},
            headers=headers,
        )

        assert response.status_code == 404
        assert storage.objects == {}

    def test_new_image_replaces_stored_one(self, client, admin, recipes_repo, storage) -> None:
        _, headers = admin
        old_url = storage.put_object("recipes/chef/2026/01/abc_old.png", b"old", "image/png")
        recipe = recipes_repo.create(make_recipe(image=old_url))

        response = client.put(
            f"/api/recipes/{recipe.id}",
            data={"title": "New"},
            files={"image": ("new.png", b"\x89PNG\r\n", "image/png")},
            headers=headers,
        )

        assert response.status_code == 200
        new_url = response.json()["image"]
        assert new_url != old_url
        assert list(storage.objects) == [storage.key_for_url(new_url)]

    def test_delete_removes_stored_image(self, client, admin, recipes_repo, storage) -> None:
        _, headers = admin
        url = storage.put_object("recipes/chef/2026/01/abc_dish.png", b"img", "image/png")
        recipe = recipes_repo.create(make_recipe(image=url))

        response = client.delete(f"/api/recipes/{recipe.id}", headers=headers)

        assert response.status_code == 200
        assert storage.objects == {}

    def test_delete_keeps_placeholder_image(self, client, admin, recipes_repo, storage) -> None:
        _, headers = admin
        storage.objects["recipe-placeholder.jpg"] = (b"img", "image/jpeg")
        recipe = recipes_repo.create(make_recipe(image="/uploads/recipe-placeholder.jpg"))

        response = client.delete(f"/api/recipes/{recipe.id}", headers=headers)

        assert response.status_code == 200
        assert "recipe-placeholder.jpg" in storage.objects


class TestEngagement:
    def test_like_toggle(self, client, member, recipes_repo) -> None:
        profile, headers = member
        recipe = recipes_repo.create(make_recipe())

        first = client.post(f"/api/recipes/{recipe.id}/like", headers=headers).json()
        second = client.post(f"/api/recipes/{recipe.id}/like", headers=headers).json()

        assert first == {"likes": [profile.id], "liked": True}
        assert second == {"likes": [], "liked": False}

    def test_star_updates_profile(self, client, member, recipes_repo) -> None:
        profile, headers = member
        recipe = recipes_repo.create(make_recipe())

        body = client.post(f"/api/recipes/{recipe.id}/star", headers=headers).json()
        starred = client.get("/api/users/starred", headers=headers).json()

        assert body == {"stars": [profile.id], "starred": True}
        assert [r["id"] for r in starred] == [recipe.id]

    def test_like_requires_login(self, client, recipes_repo) -> None:
        recipe = recipes_repo.create(make_recipe())
        assert client.post(f"/api/recipes/{recipe.id}/like").status_code == 401

    def test_conflict_returns_409(self, client, member, recipes_repo) -> None:
        _, headers = member
        recipe = recipes_repo.create(make_recipe())
        recipes_repo.conflicts = 10

        response = client.post(f"/api/recipes/{recipe.id}/like", headers=headers)

        assert response.status_code == 409

    def test_reviews(self, client, register, recipes_repo) -> None:
        recipe = recipes_repo.create(make_recipe())
        _, alice = register("Alice")
        _, bob = register("Bob")

        first = client.post(f"/api/recipes/{recipe.id}/reviews", json={"rating": 4, "comment": "Nice"}, headers=alice)
        second = client.post(f"/api/recipes/{recipe.id}/reviews", json={"rating": 2}, headers=bob)
        duplicate = client.post(f"/api/recipes/{recipe.id}/reviews", json={"rating": 5}, headers=alice)

        assert first.status_code == 201
        assert first.json()["message"] == "Review added successfully"
        assert second.json()["averageRating"] == 3
        assert duplicate.status_code == 400
        assert duplicate.json() == {"message": "You have already reviewed this recipe"}

        reviews = client.get(f"/api/recipes/{recipe.id}/reviews").json()
        assert [(r["user"]["name"], r["rating"]) for r in reviews] == [("Alice", 4), ("Bob", 2)]
        assert client.get(f"/api/recipes/{recipe.id}").json()["averageRating"] == 3

    def test_review_rating_out_of_range(self, client, member, recipes_repo) -> None:
        _, headers = member
        recipe = recipes_repo.create(make_recipe())

        response = client.post(f"/api/recipes/{recipe.id}/reviews", json={"rating": 6}, headers=headers)

        assert response.status_code == 400
