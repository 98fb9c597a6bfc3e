"""Context builder for assembling relay prompts."""

from typing import Any

from relay_agent.agent.memory import ConversationTurn
from relay_agent.config.schema import DEFAULT_SYSTEM_PROMPT
from relay_agent.utils.helpers import truncate


class ContextBuilder:
    """
    Builds the system prompt and provider message list for one request.

    Long-term fragments and visual summaries are appended verbatim; an empty
    long-term result leaves the prompt untouched.
    """

    MAX_RECENT_MESSAGES = 5

    def __init__(self, base_prompt: str = DEFAULT_SYSTEM_PROMPT):
        self.base_prompt = base_prompt.strip()

    def build_system_prompt(
        self,
        long_term_context: list[str] | None = None,
        visual_summary: str | None = None,
        recent_messages: list[dict[str, Any]] | None = None,
    ) -> str:
        """
        Build the system prompt.

        Args:
            long_term_context: Fragments from the long-term store, in store order.
            visual_summary: Optional description of attached images.
            recent_messages: Optional recent channel messages supplied by the caller.

        Returns:
            Complete system prompt.
        """
        parts = [self.base_prompt]

        if long_term_context:
            memory = "\n".join(f"- {fragment}" for fragment in long_term_context)
            parts.append(f"## Relevant long-term memory\n\n{memory}")

        if visual_summary:
            parts.append(f"## Visual context\n\n{visual_summary}")

        recent = self._format_recent(recent_messages)
        if recent:
            parts.append(f"## Recent channel activity\n\n{recent}")

        return "\n\n".join(parts)

    def _format_recent(self, recent_messages: list[dict[str, Any]] | None) -> str:
        lines = []
        for item in (recent_messages or [])[: self.MAX_RECENT_MESSAGES]:
            if not isinstance(item, dict):
                continue
            text = truncate(str(item.get("text") or ""), 300)
            if not text:
                continue
            author = str(item.get("user") or item.get("username") or "someone")
            lines.append(f"- {author}: {text}")
        return "\n".join(lines)

    def build_messages(self, window: list[ConversationTurn]) -> list[dict[str, Any]]:
        """Provider-agnostic {role, content} list in chronological order."""
        return [turn.to_message() for turn in window]
