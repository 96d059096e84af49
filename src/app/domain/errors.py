from __future__ import annotations

from typing import Optional


class RecipeAppError(Exception):
    pass


class NotFoundError(RecipeAppError):
    resource = "Resource"

    def __init__(self, resource_id: str):
        super().__init__(f"{self.resource} not found")
        self.resource_id = resource_id


class RecipeNotFoundError(NotFoundError):
    resource = "Recipe"


class UserNotFoundError(NotFoundError):
    resource = "User"


class MessageNotFoundError(NotFoundError):
    resource = "Message"


class ValidationError(RecipeAppError):
    pass


class DuplicateReviewError(ValidationError):
    def __init__(self, recipe_id: str, user_id: str):
        super().__init__("You have already reviewed this recipe")
        self.recipe_id = recipe_id
        self.user_id = user_id


class SelfDeleteError(ValidationError):
    def __init__(self, user_id: str):
        super().__init__("Cannot delete your own account")
        self.user_id = user_id


class EmailInUseError(ValidationError):
    def __init__(self, email: Optional[str]):
        super().__init__(f"Email already in use: {email}" if email else "Email already in use")
        self.email = email


class UploadRejectedError(ValidationError):
    pass


class AuthenticationError(RecipeAppError):
    def __init__(self, message: str = "Not authorized, token failed"):
        super().__init__(message)


class PermissionDeniedError(RecipeAppError):
    def __init__(self, message: str = "Not authorized as an admin"):
        super().__init__(message)


class ConcurrentUpdateError(RecipeAppError):
    def __init__(self, resource: str, resource_id: str, attempts: int):
        super().__init__(
            f"Concurrent update on {resource} {resource_id} after {attempts} attempts, please retry"
        )
        self.resource = resource
        self.resource_id = resource_id
        self.attempts = attempts


class RepositoryError(RecipeAppError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class StorageError(RecipeAppError):
    pass
