from __future__ import annotations

import pytest

from src.app.domain.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    DuplicateReviewError,
    EmailInUseError,
    MessageNotFoundError,
    NotFoundError,
    PermissionDeniedError,
    RecipeAppError,
    RecipeNotFoundError,
    RepositoryError,
    SelfDeleteError,
    StorageError,
    UploadRejectedError,
    UserNotFoundError,
    ValidationError,
)


class TestRecipeAppError:
    def test_base_exception(self) -> None:
        error = RecipeAppError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)


class TestNotFoundErrors:
    @pytest.mark.parametrize(
        "error_cls, expected",
        [
            (RecipeNotFoundError, "Recipe not found"),
            (UserNotFoundError, "User not found"),
            (MessageNotFoundError, "Message not found"),
        ],
    )
    def test_message_names_resource(self, error_cls, expected) -> None:
        error = error_cls("abc")
        assert str(error) == expected
        assert error.resource_id == "abc"
        assert isinstance(error, NotFoundError)


class TestValidationErrors:
    def test_duplicate_review(self) -> None:
        error = DuplicateReviewError("r1", "u1")
        assert str(error) == "You have already reviewed this recipe"
        assert error.recipe_id == "r1"
        assert error.user_id == "u1"
        assert isinstance(error, ValidationError)

    def test_self_delete(self) -> None:
        error = SelfDeleteError("u1")
        assert "own account" in str(error)
        assert isinstance(error, ValidationError)

    def test_email_in_use(self) -> None:
        error = EmailInUseError("a@example.com")
        assert "a@example.com" in str(error)
        assert error.email == "a@example.com"
        assert isinstance(error, ValidationError)

    def test_upload_rejected(self) -> None:
        assert isinstance(UploadRejectedError("too big"), ValidationError)


class TestAccessErrors:
    def test_authentication_default_message(self) -> None:
        assert str(AuthenticationError()) == "Not authorized, token failed"

    def test_authentication_custom_message(self) -> None:
        assert str(AuthenticationError("Not authorized, no token")) == "Not authorized, no token"

    def test_permission_default_message(self) -> None:
        assert str(PermissionDeniedError()) == "Not authorized as an admin"


class TestConcurrentUpdateError:
    def test_attributes(self) -> None:
        error = ConcurrentUpdateError("recipe", "r1", 3)
        assert error.resource == "recipe"
        assert error.resource_id == "r1"
        assert error.attempts == 3
        assert "3 attempts" in str(error)


class TestInfrastructureErrors:
    def test_repository_error(self) -> None:
        error = RepositoryError("get recipe", "connection refused")
        assert error.operation == "get recipe"
        assert error.reason == "connection refused"
        assert "get recipe" in str(error)
        assert isinstance(error, RecipeAppError)

    def test_storage_error(self) -> None:
        assert isinstance(StorageError("disk full"), RecipeAppError)
