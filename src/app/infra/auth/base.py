# src/app/infra/auth/base.py
"""
Abstract base class for the identity provider.
Token issuance and credential storage live with the provider.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from src.app.domain.models import AuthIdentity


class AuthGateway(ABC):
    """
    Implementations:
    - SupabaseAuthGateway: Supabase Auth (GoTrue)
    """

    @abstractmethod
    def verify_token(self, token: str) -> AuthIdentity:
        """
        Resolve an access token to its identity.

        Raises:
            AuthenticationError: If the token is missing, invalid or expired
        """
        pass

    @abstractmethod
    def update_password(self, user_id: str, password: str) -> None:
        pass

    @abstractmethod
    def update_email(self, user_id: str, email: str) -> None:
        """
        Change the login email of an identity.

        Raises:
            EmailInUseError: If another identity already uses the email
        """
        pass

    @abstractmethod
    def delete_identity(self, user_id: str) -> None:
        pass

    @abstractmethod
    def find_identity(self, email: str) -> AuthIdentity | None:
        """Look up an identity by email (case-insensitive)."""
        pass

    @abstractmethod
    def create_identity(self, email: str, password: str, name: str) -> AuthIdentity:
        """Create a confirmed identity with a password credential."""
        pass
