from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.app.domain.models import MessageStatus, MessageType


class MessageCreate(BaseModel):
    type: Optional[MessageType] = None
    title: Optional[str] = Field(None, max_length=100)
    content: Optional[str] = Field(None, max_length=1000)
    recipeId: Optional[str] = None
    image: Optional[str] = None


class AdminReplyOut(BaseModel):
    content: str
    repliedAt: Optional[str] = None


class MessageOut(BaseModel):
    id: str
    user: str
    type: MessageType
    title: str
    content: str
    recipe: Optional[str] = None
    image: Optional[str] = None
    status: MessageStatus
    adminReply: Optional[AdminReplyOut] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[MessageStatus] = None


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
