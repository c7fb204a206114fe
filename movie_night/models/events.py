from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Set

from pydantic import BaseModel, Field


class MessageReceived(BaseModel):
    message_id: str
    author_id: str
    author_name: str
    channel_id: str
    text: str = Field(max_length=4000)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc))


class ReactionAdded(BaseModel):
    actor_id: str
    channel_id: str
    message_id: str
    emoji: str


class EventAck(BaseModel):
    ok: bool
    handled: bool


class RoleInfo(BaseModel):
    """Role memberships of one member as reported by the chat platform."""
    role_ids: Set[str] = Field(default_factory=set)
    administrator_role_ids: Set[str] = Field(default_factory=set)

    @property
    def is_administrator(self) -> bool:
        return bool(self.role_ids & self.administrator_role_ids)


class Requester(BaseModel):
    user_id: str
    user_name: str
    roles: RoleInfo = Field(default_factory=RoleInfo)

    @property
    def is_administrator(self) -> bool:
        return self.roles.is_administrator


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = True


class FormattedMessage(BaseModel):
    """Platform-neutral rich message; the gateway renders it."""
    title: str = ""
    description: str = ""
    color: int = 0
    url: Optional[str] = None
    author_name: Optional[str] = None
    footer: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    fields: List[EmbedField] = Field(default_factory=list)
