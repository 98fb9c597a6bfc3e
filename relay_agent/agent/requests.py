"""Inbound request and result models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from relay_agent.agent.memory import ConversationTurn
from relay_agent.utils.helpers import conversation_key


class RequestContext(BaseModel):
    """Conversation context sent by the chat bridge (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    channel_id: str = Field(default="", alias="channelId")
    user_id: str = Field(default="", alias="userId")
    conversation_id: str = Field(default="", alias="conversationId")
    thread_ts: str | None = Field(default=None, alias="threadTs")
    recent_messages: list[Any] = Field(default_factory=list, alias="recentMessages")
    memory: Any = None
    media: Any = None
    auth_token: str | None = Field(default=None, alias="authToken")

    def resolved_conversation_id(self) -> str:
        if self.conversation_id.strip():
            return self.conversation_id.strip()
        return conversation_key(self.channel_id, self.thread_ts) or "default"

    def attachments(self) -> list[dict[str, Any]]:
        """Platform file objects from ``media`` (a list, or a dict with ``files``)."""
        media = self.media
        if isinstance(media, dict):
            media = media.get("files") or media.get("attachments") or []
        if not isinstance(media, list):
            return []
        return [item for item in media if isinstance(item, dict)]

    def media_token(self) -> str | None:
        if isinstance(self.media, dict):
            token = self.media.get("authToken") or self.media.get("auth_token")
            if token:
                return str(token)
        return self.auth_token or None

    def seed_turns(self) -> list[dict[str, Any]]:
        """Previously fetched window (``memory`` may be the /api/memory payload or a list)."""
        memory = self.memory
        if isinstance(memory, dict):
            memory = memory.get("memory")
        if not isinstance(memory, list):
            return []
        return [item for item in memory if isinstance(item, dict)]


class ProcessRequest(BaseModel):
    """Body of /api/process and /api/store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str
    context: RequestContext = Field(default_factory=RequestContext)
    timestamp: str | None = None


@dataclass
class ProcessResult:
    """Terminal success state of the pipeline."""

    response: str
    memory: list[ConversationTurn]
    conversation_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "memory": [turn.to_dict() for turn in self.memory],
            "conversationId": self.conversation_id,
        }
