"""Visual analysis of attached images."""

from __future__ import annotations

from loguru import logger

from relay_agent.media.resolver import MediaBundle
from relay_agent.providers.formatters import format_payload
from relay_agent.providers.gateway import LLMGateway
from relay_agent.providers.router import ProviderRouter

DESCRIBE_SYSTEM_PROMPT = "You write short factual descriptions of images for a conversation log."
DESCRIBE_INSTRUCTION = (
    "Describe the attached image(s) in at most three sentences. "
    "Mention visible text, people, objects, and anything that looks like a UI or chart."
)


class VisualAnalyzer:
    """Asks the vision model for a short summary of the images in a bundle."""

    def __init__(self, gateway: LLMGateway, router: ProviderRouter, max_tokens: int = 300):
        self.gateway = gateway
        self.router = router
        self.max_tokens = max_tokens

    async def describe(self, media: MediaBundle) -> str | None:
        """Return a summary, or None when there is nothing to describe. Provider errors propagate."""
        if not media.images:
            return None
        route = self.router.select_provider(media)
        request = format_payload(
            route.family,
            [{"role": "user", "content": DESCRIBE_INSTRUCTION}],
            DESCRIBE_SYSTEM_PROMPT,
            media,
            model=route.model,
            max_tokens=self.max_tokens,
        )
        summary = (await self.gateway.complete(request)).strip()
        logger.info(f"Visual summary generated ({len(summary)} chars)")
        return summary or None
