from __future__ import annotations

import logging

from supabase import Client

from src.app.domain.errors import AuthenticationError, EmailInUseError, RepositoryError
from src.app.domain.models import AuthIdentity
from src.app.infra.auth.base import AuthGateway

logger = logging.getLogger(__name__)

IDENTITY_PAGE_SIZE = 200
EMAIL_EXISTS = "email_exists"


class SupabaseAuthGateway(AuthGateway):
    def __init__(self, client: Client):
        self._client = client

    def verify_token(self, token: str) -> AuthIdentity:
        if not token:
            raise AuthenticationError("Not authorized, no token")
        try:
            res = self._client.auth.get_user(token)
        except Exception as error:
            logger.info("Token rejected by identity provider: %s", error)
            raise AuthenticationError() from error

        user = res.user if res else None
        if not user:
            raise AuthenticationError()

        # metadata may carry the display name
        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return AuthIdentity(id=str(user.id), email=user.email, name=name)

    def update_password(self, user_id: str, password: str) -> None:
        try:
            self._client.auth.admin.update_user_by_id(user_id, {"password": password})
        except Exception as error:
            logger.error("Failed to update password for user=%s: %s", user_id, error)
            raise RepositoryError("update password", str(error)) from error
        logger.info("Password updated: user=%s", user_id)

    def update_email(self, user_id: str, email: str) -> None:
        try:
            self._client.auth.admin.update_user_by_id(user_id, {"email": email, "email_confirm": True})
        except Exception as error:
            if getattr(error, "code", None) == EMAIL_EXISTS:
                raise EmailInUseError(email) from error
            logger.error("Failed to update email for user=%s: %s", user_id, error)
            raise RepositoryError("update email", str(error)) from error
        logger.info("Login email updated: user=%s", user_id)

    def delete_identity(self, user_id: str) -> None:
        try:
            self._client.auth.admin.delete_user(user_id)
        except Exception as error:
            logger.error("Failed to delete identity user=%s: %s", user_id, error)
            raise RepositoryError("delete identity", str(error)) from error
        logger.info("Identity deleted: user=%s", user_id)

    def find_identity(self, email: str) -> AuthIdentity | None:
        target = email.strip().lower()
        page = 1
        while True:
            try:
                users = self._client.auth.admin.list_users(page=page, per_page=IDENTITY_PAGE_SIZE)
            except Exception as error:
                logger.error("Failed to list identities: %s", error)
                raise RepositoryError("list identities", str(error)) from error
            for user in users:
                if (user.email or "").lower() == target:
                    meta = getattr(user, "user_metadata", None) or {}
                    return AuthIdentity(id=str(user.id), email=user.email, name=meta.get("name"))
            if len(users) < IDENTITY_PAGE_SIZE:
                return None
            page += 1

    def create_identity(self, email: str, password: str, name: str) -> AuthIdentity:
        try:
            res = self._client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"name": name},
                }
            )
        except Exception as error:
            logger.error("Failed to create identity email=%s: %s", email, error)
            raise RepositoryError("create identity", str(error)) from error
        logger.info("Identity created: user=%s", res.user.id)
        return AuthIdentity(id=str(res.user.id), email=res.user.email, name=name)
