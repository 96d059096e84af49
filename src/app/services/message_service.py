# src/app/services/message_service.py
"""
Admin inbox service.
Users send messages; admins read, reply, archive and delete them.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from src.app.domain import aggregates
from src.app.domain.errors import MessageNotFoundError, RecipeNotFoundError
from src.app.domain.models import Message, MessageStatus, MessageType
from src.app.infra.db.base import MessageRepository, RecipeRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "No title"
DEFAULT_CONTENT = "No content"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MessageService:
    """
    Status changes are unconstrained: an admin may set any status at any
    time. Only reply() writes the admin reply, together with REPLIED.
    """

    def __init__(self, messages: MessageRepository, recipes: RecipeRepository):
        self._messages = messages
        self._recipes = recipes

    def send_message(
        self,
        user_id: str,
        type: Optional[MessageType] = None,
        title: Optional[str] = None,
        content: Optional[str] = None,
        recipe_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Message:
        if recipe_id and self._recipes.get_by_id(recipe_id) is None:
            raise RecipeNotFoundError(recipe_id)

        now = _now_utc()
        message = Message(
            id=str(uuid4()),
            user_id=user_id,
            type=type or MessageType.SUGGESTION,
            title=(title or "").strip() or DEFAULT_TITLE,
            content=(content or "").strip() or DEFAULT_CONTENT,
            recipe_id=recipe_id or None,
            image=image or None,
            status=MessageStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        created = self._messages.create(message)
        logger.info("Message sent: id=%s, user=%s, type=%s", created.id, user_id, created.type.value)
        return created

    def list_for_user(self, user_id: str) -> list[Message]:
        return self._messages.list_by_user(user_id)

    def list_all(self, status: Optional[MessageStatus] = None) -> list[Message]:
        return self._messages.list_all(status)

    def get_message(self, message_id: str) -> Message:
        message = self._messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    def update_status(self, message_id: str, status: Optional[MessageStatus]) -> Message:
        """An omitted status leaves the message unchanged."""
        message = self.get_message(message_id)
        if status is None or status == message.status:
            return message

        updated = self._messages.update_fields(message_id, {"status": status})
        if updated is None:
            raise MessageNotFoundError(message_id)
        logger.info("Message status: id=%s, %s -> %s", message_id, message.status.value, updated.status.value)
        return updated

    def reply(self, message_id: str, content: str) -> Message:
        message = self.get_message(message_id)
        replied = aggregates.apply_reply(message, content)

        updated = self._messages.update_fields(
            message_id,
            {"admin_reply": replied.admin_reply, "status": replied.status},
        )
        if updated is None:
            raise MessageNotFoundError(message_id)
        logger.info("Message replied: id=%s", message_id)
        return updated

    def delete_message(self, message_id: str) -> None:
        if not self._messages.delete(message_id):
            raise MessageNotFoundError(message_id)
        logger.info("Message deleted: id=%s", message_id)
