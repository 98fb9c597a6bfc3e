"""Short-term conversation windows and the memory gateway."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from relay_agent.agent.long_term import LongTermMemory
from relay_agent.utils.helpers import now_iso

DEFAULT_WINDOW_SIZE = 10
ROLES = {"user", "assistant", "system"}


@dataclass(frozen=True)
class ConversationTurn:
    """One entry of a conversation window."""

    role: str
    content: Any
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationTurn:
        role = str(data.get("role") or "user")
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        return cls(
            role=role,
            content=data.get("content", ""),
            timestamp=str(data.get("timestamp") or now_iso()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    def to_message(self) -> dict[str, Any]:
        """Provider message shape; timestamps are not part of the wire format."""
        return {"role": self.role, "content": self.content}


def append_and_trim(
    window: list[ConversationTurn],
    turn: ConversationTurn,
    limit: int = DEFAULT_WINDOW_SIZE,
) -> list[ConversationTurn]:
    """Append a turn and keep the most recent ``limit`` turns, oldest first."""
    updated = [*window, turn]
    return updated[-limit:] if limit > 0 else []


class ConversationStore(Protocol):
    """Storage for short-term windows keyed by conversation id."""

    def get(self, conversation_id: str) -> list[ConversationTurn]: ...

    def append(self, conversation_id: str, turn: ConversationTurn) -> list[ConversationTurn]: ...

    def trim(self, conversation_id: str) -> list[ConversationTurn]: ...

    def count(self) -> int: ...


class InMemoryConversationStore:
    """Process-lifetime window store. Concurrent writers to one id are last-write-wins."""

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE):
        self.window_size = window_size
        self._windows: dict[str, list[ConversationTurn]] = {}

    def get(self, conversation_id: str) -> list[ConversationTurn]:
        return list(self._windows.get(conversation_id, []))

    def append(self, conversation_id: str, turn: ConversationTurn) -> list[ConversationTurn]:
        window = append_and_trim(self.get(conversation_id), turn, self.window_size)
        self._windows[conversation_id] = window
        return list(window)

    def trim(self, conversation_id: str) -> list[ConversationTurn]:
        window = self.get(conversation_id)[-self.window_size:]
        self._windows[conversation_id] = window
        return list(window)

    def count(self) -> int:
        return len(self._windows)


class MemoryGateway:
    """
    Single entry point for short-term and long-term memory.

    Short-term windows live in the injected ConversationStore. Long-term
    writes run as background tasks whose outcome is only logged.
    """

    def __init__(
        self,
        store: ConversationStore | None = None,
        long_term: LongTermMemory | None = None,
    ):
        self.store = store or InMemoryConversationStore()
        self.long_term = long_term or LongTermMemory()
        self._background: set[asyncio.Task[None]] = set()

    def window(self, conversation_id: str) -> list[ConversationTurn]:
        return self.store.get(conversation_id)

    def seed(self, conversation_id: str, turns: list[dict[str, Any]]) -> list[ConversationTurn]:
        """Load a caller-supplied window when nothing is held for this conversation."""
        if self.store.get(conversation_id):
            return self.store.get(conversation_id)
        for raw in turns:
            if not isinstance(raw, dict):
                continue
            try:
                self.store.append(conversation_id, ConversationTurn.from_dict(raw))
            except ValueError as e:
                logger.debug(f"Skipping seeded turn: {e}")
        return self.store.get(conversation_id)

    def append(self, conversation_id: str, turn: ConversationTurn) -> list[ConversationTurn]:
        return self.store.append(conversation_id, turn)

    def remember_in_background(
        self,
        conversation_id: str,
        user_id: str,
        text: str,
        timestamp: str,
        visual_summary: str | None = None,
    ) -> None:
        """Schedule a long-term write. Returns immediately and cannot fail observably."""
        if not self.long_term.enabled:
            return
        task = asyncio.create_task(
            self.long_term.store(conversation_id, user_id, text, timestamp, visual_summary)
        )
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Background long-term write failed: {error}")

    async def recall(self, text: str) -> list[str]:
        return await self.long_term.query(text)

    async def drain(self) -> None:
        """Wait for outstanding background writes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._background)
