from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from src.app.domain.errors import (
    ConcurrentUpdateError,
    PermissionDeniedError,
    RecipeNotFoundError,
    RepositoryError,
    ValidationError,
)
from src.app.exception_handlers import (
    format_validation_errors,
    register_exception_handlers,
    status_for,
)


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    def not_found():
        raise RecipeNotFoundError("r1")

    @app.get("/repository")
    def repository():
        raise RepositoryError("get recipe", "connection reset")

    @app.get("/http")
    def http():
        raise HTTPException(status_code=418, detail="teapot")

    @app.get("/boom")
    def boom():
        raise RuntimeError("unexpected")

    @app.get("/typed")
    def typed(count: int):
        return {"count": count}

    return TestClient(app, raise_server_exceptions=False)


class TestStatusFor:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (RecipeNotFoundError("x"), 404),
            (ValidationError("bad"), 400),
            (PermissionDeniedError(), 403),
            (ConcurrentUpdateError("recipe", "x", 3), 409),
            (RepositoryError("op", "reason"), 500),
        ],
    )
    def test_mapping(self, error, expected) -> None:
        assert status_for(error) == expected


class TestFormatValidationErrors:
    def test_strips_location_prefix(self) -> None:
        errors = [{"loc": ("body", "title"), "msg": "Field required"}]
        assert format_validation_errors(errors) == "title: Field required"

    def test_empty(self) -> None:
        assert format_validation_errors([]) == "Invalid request"


class TestHandlers:
    def test_domain_error(self, client) -> None:
        response = client.get("/not-found")
        assert response.status_code == 404
        assert response.json() == {"message": "Recipe not found"}

    def test_repository_error_is_500(self, client) -> None:
        response = client.get("/repository")
        assert response.status_code == 500
        assert "get recipe" in response.json()["message"]

    def test_http_exception_uses_message_key(self, client) -> None:
        response = client.get("/http")
        assert response.status_code == 418
        assert response.json() == {"message": "teapot"}

    def test_request_validation_is_400(self, client) -> None:
        response = client.get("/typed", params={"count": "many"})
        assert response.status_code == 400
        assert response.json()["message"].startswith("count:")

    def test_unhandled_exception(self, client) -> None:
        response = client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {"message": "Internal server error"}

    def test_unknown_route(self, client) -> None:
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}
