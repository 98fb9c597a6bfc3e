"""Client for the external long-term memory service (Letta archival memory)."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from relay_agent.utils.helpers import truncate


class LongTermMemory:
    """
    Best-effort long-term memory scoped to one agent identity.

    Every operation degrades to a no-op when the service is unconfigured or
    unreachable: writes log and return, queries return an empty list.
    """

    def __init__(
        self,
        base_url: str | None = None,
        agent_id: str | None = None,
        api_key: str | None = None,
        top_k: int = 5,
        timeout_seconds: float = 5.0,
    ):
        self.base_url = (base_url or "").strip().rstrip("/")
        self.agent_id = (agent_id or "").strip()
        self.api_key = api_key or ""
        self.top_k = max(1, int(top_k))
        self.timeout_seconds = timeout_seconds

        if not self.enabled:
            logger.warning(
                "Long-term memory not configured (memory.base_url / memory.agent_id); "
                "continuing with short-term memory only"
            )

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.agent_id)

    @property
    def _archival_url(self) -> str:
        return f"{self.base_url}/v1/agents/{self.agent_id}/archival-memory"

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    @staticmethod
    def build_memory_text(
        conversation_id: str,
        user_id: str,
        text: str,
        timestamp: str,
        visual_summary: str | None = None,
    ) -> str:
        """Render one durable fact for the archival store."""
        lines = [f"[{timestamp}] user {user_id} in conversation {conversation_id}: {text}"]
        if visual_summary:
            lines.append(f"Visual context: {visual_summary}")
        return "\n".join(lines)

    async def store(
        self,
        conversation_id: str,
        user_id: str,
        text: str,
        timestamp: str,
        visual_summary: str | None = None,
    ) -> None:
        """Write one fact. Never raises."""
        if not self.enabled:
            return
        payload = {
            "text": self.build_memory_text(conversation_id, user_id, text, timestamp, visual_summary),
            "tags": [f"conversation:{conversation_id}", f"user:{user_id}"],
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self._archival_url, json=payload, headers=self._headers()
                )
            if response.status_code >= 400:
                logger.warning(
                    f"Long-term memory write failed: status={response.status_code} "
                    f"body={response.text[:200]}"
                )
                return
            logger.debug(f"Stored long-term memory for {conversation_id}")
        except Exception as e:
            logger.warning(f"Long-term memory write failed: {e}")

    async def query(self, text: str) -> list[str]:
        """Fetch relevant fragments in the store's relevance order. Never raises."""
        if not self.enabled or not (text or "").strip():
            return []
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    f"{self._archival_url}/search",
                    params={"query": text, "top_k": self.top_k},
                    headers=self._headers(),
                )
            if response.status_code >= 400:
                logger.warning(
                    f"Long-term memory query failed: status={response.status_code} "
                    f"body={response.text[:200]}"
                )
                return []
            fragments = self._extract_fragments(response.json() if response.content else {})
        except Exception as e:
            logger.warning(f"Long-term memory query failed: {e}")
            return []

        if fragments:
            logger.info(f"Long-term memory returned {len(fragments)} fragment(s) for '{truncate(text, 60)}'")
        return fragments

    @staticmethod
    def _extract_fragments(data: Any) -> list[str]:
        rows = data.get("results", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            return []
        fragments: list[str] = []
        for row in rows:
            if isinstance(row, str):
                content = row
            elif isinstance(row, dict):
                content = str(row.get("content") or row.get("text") or "")
            else:
                continue
            content = content.strip()
            if content:
                fragments.append(content)
        return fragments
