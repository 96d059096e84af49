# src/app/routers/messages.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.app.deps import CurrentUser, get_message_service, require_admin, require_user
from src.app.domain.models import Message, MessageStatus
from src.app.routers.recipes import _iso
from src.app.schemas.common import MessageResponse
from src.app.schemas.messages import (
    AdminReplyOut,
    MessageCreate,
    MessageOut,
    ReplyCreate,
    StatusUpdate,
)
from src.app.services.message_service import MessageService

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _message_to_response(message: Message) -> MessageOut:
    reply = None
    if message.admin_reply is not None:
        reply = AdminReplyOut(
            content=message.admin_reply.content,
            repliedAt=_iso(message.admin_reply.replied_at),
        )
    return MessageOut(
        id=message.id,
        user=message.user_id,
        type=message.type,
        title=message.title,
        content=message.content,
        recipe=message.recipe_id,
        image=message.image,
        status=message.status,
        adminReply=reply,
        createdAt=_iso(message.created_at),
        updatedAt=_iso(message.updated_at),
    )


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    body: MessageCreate,
    user: CurrentUser = Depends(require_user),
    service: MessageService = Depends(get_message_service),
) -> MessageOut:
    message = service.send_message(
        user.id,
        type=body.type,
        title=body.title,
        content=body.content,
        recipe_id=body.recipeId,
        image=body.image,
    )
    return _message_to_response(message)


@router.get("/my-messages", response_model=list[MessageOut])
def list_my_messages(
    user: CurrentUser = Depends(require_user),
    service: MessageService = Depends(get_message_service),
) -> list[MessageOut]:
    return [_message_to_response(message) for message in service.list_for_user(user.id)]


@router.get("", response_model=list[MessageOut])
def list_messages(
    status_filter: Optional[MessageStatus] = Query(None, alias="status"),
    admin: CurrentUser = Depends(require_admin),
    service: MessageService = Depends(get_message_service),
) -> list[MessageOut]:
    return [_message_to_response(message) for message in service.list_all(status_filter)]


@router.get("/{message_id}", response_model=MessageOut)
def get_message(
    message_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: MessageService = Depends(get_message_service),
) -> MessageOut:
    return _message_to_response(service.get_message(message_id))


@router.put("/{message_id}/status", response_model=MessageOut)
def update_message_status(
    message_id: str,
    body: StatusUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: MessageService = Depends(get_message_service),
) -> MessageOut:
    return _message_to_response(service.update_status(message_id, body.status))


@router.post("/{message_id}/reply", response_model=MessageOut)
def reply_to_message(
    message_id: str,
    body: ReplyCreate,
    admin: CurrentUser = Depends(require_admin),
    service: MessageService = Depends(get_message_service),
) -> MessageOut:
    return _message_to_response(service.reply(message_id, body.content))


@router.delete("/{message_id}", response_model=MessageResponse)
def delete_message(
    message_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: MessageService = Depends(get_message_service),
) -> MessageResponse:
    service.delete_message(message_id)
    return MessageResponse(message="Message deleted successfully")
