"""Request orchestrator: the relay's core processing pipeline."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from relay_agent.agent.context import ContextBuilder
from relay_agent.agent.long_term import LongTermMemory
from relay_agent.agent.memory import (
    DEFAULT_WINDOW_SIZE,
    ConversationStore,
    ConversationTurn,
    InMemoryConversationStore,
    MemoryGateway,
    append_and_trim,
)
from relay_agent.agent.requests import ProcessResult, RequestContext
from relay_agent.agent.vision import VisualAnalyzer
from relay_agent.config.schema import Config
from relay_agent.media.resolver import MediaBundle, MediaResolver
from relay_agent.providers.base import ProviderError
from relay_agent.providers.factory import build_gateway, build_router
from relay_agent.providers.formatters import format_payload
from relay_agent.providers.gateway import LLMGateway
from relay_agent.providers.router import ProviderRouter
from relay_agent.utils.helpers import now_iso, truncate


class ProcessingError(RuntimeError):
    """Fatal request failure surfaced to the caller."""

    def __init__(self, details: str, error: str = "Failed to process message"):
        super().__init__(f"{error}: {details}")
        self.error = error
        self.details = details

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "details": self.details}


def _coerce_context(context: RequestContext | dict[str, Any] | None) -> RequestContext:
    if isinstance(context, RequestContext):
        return context
    return RequestContext.model_validate(context or {})


class RequestOrchestrator:
    """
    Sequences one inbound message through the relay pipeline.

    1. Load the short-term window
    2. Analyze media (best-effort)
    3. Write to long-term memory (background, best-effort)
    4. Query long-term memory (best-effort)
    5. Build the system prompt
    6. Route, format, dispatch, and parse (fatal on failure)
    7. Update the short-term window and respond
    """

    def __init__(
        self,
        *,
        router: ProviderRouter,
        gateway: LLMGateway,
        memory: MemoryGateway | None = None,
        resolver: MediaResolver | None = None,
        context_builder: ContextBuilder | None = None,
        analyzer: VisualAnalyzer | None = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
        max_tokens: int = 1024,
        request_timeout_seconds: float | None = 120.0,
    ):
        window_size = max(1, min(int(window_size), DEFAULT_WINDOW_SIZE))
        self.router = router
        self.gateway = gateway
        self.memory = memory or MemoryGateway(InMemoryConversationStore(window_size))
        self.resolver = resolver or MediaResolver()
        self.context = context_builder or ContextBuilder()
        self.analyzer = analyzer
        self.window_size = window_size
        self.max_tokens = max_tokens
        self.request_timeout_seconds = request_timeout_seconds

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        store: ConversationStore | None = None,
    ) -> RequestOrchestrator:
        """Wire every collaborator from configuration."""
        router = build_router(config)
        gateway = build_gateway(config)
        window_size = config.orchestrator.window_size
        memory = MemoryGateway(
            store=store or InMemoryConversationStore(window_size),
            long_term=LongTermMemory(
                base_url=config.memory.base_url,
                agent_id=config.memory.agent_id,
                api_key=config.memory.api_key,
                top_k=config.memory.top_k,
                timeout_seconds=config.memory.timeout_seconds,
            ),
        )
        resolver = MediaResolver(
            timeout_seconds=config.media.timeout_seconds,
            max_bytes=config.media.max_bytes,
            default_token=config.slack.bot_token or None,
        )
        analyzer = VisualAnalyzer(gateway, router) if config.media.describe_images else None
        return cls(
            router=router,
            gateway=gateway,
            memory=memory,
            resolver=resolver,
            context_builder=ContextBuilder(config.orchestrator.system_prompt),
            analyzer=analyzer,
            window_size=window_size,
            max_tokens=config.llm.max_tokens,
            request_timeout_seconds=config.orchestrator.request_timeout_seconds,
        )

    async def process(
        self,
        message: str,
        context: RequestContext | dict[str, Any] | None = None,
        timestamp: str | None = None,
    ) -> ProcessResult:
        """
        Process one message end to end.

        Args:
            message: Inbound user text.
            context: Conversation context from the chat bridge.
            timestamp: Message timestamp (defaults to now).

        Returns:
            Reply text, updated window, and conversation id.

        Raises:
            ProcessingError: Dispatch or response parsing failed, or the
                request exceeded its deadline.
        """
        ctx = _coerce_context(context)
        pipeline = self._run(message, ctx, timestamp or now_iso())
        if not self.request_timeout_seconds:
            return await pipeline
        try:
            return await asyncio.wait_for(pipeline, timeout=self.request_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"Request exceeded {self.request_timeout_seconds}s deadline")
            raise ProcessingError(
                f"request exceeded the {self.request_timeout_seconds:g}s deadline"
            ) from e

    async def _run(self, message: str, ctx: RequestContext, timestamp: str) -> ProcessResult:
        conversation_id = ctx.resolved_conversation_id()
        logger.info(
            f"Processing message in {conversation_id} from {ctx.user_id or 'unknown'}: "
            f"{truncate(message, 80)}"
        )

        window = self.memory.seed(conversation_id, ctx.seed_turns())

        media, visual_summary = await self._analyze_media(message, ctx)

        self._write_long_term(conversation_id, ctx.user_id, message, timestamp, visual_summary)

        long_term_context = await self._query_long_term(message)

        system_prompt = self.context.build_system_prompt(
            long_term_context=long_term_context,
            visual_summary=visual_summary,
            recent_messages=ctx.recent_messages,
        )

        user_turn = ConversationTurn(role="user", content=message, timestamp=timestamp)
        recent = append_and_trim(window, user_turn, self.window_size)
        route = self.router.select_provider(media)
        request = format_payload(
            route.family,
            self.context.build_messages(recent),
            system_prompt,
            media,
            model=route.model,
            max_tokens=self.max_tokens,
        )

        try:
            response_text = await self.gateway.complete(request)
        except ProviderError as e:
            logger.error(f"Provider call failed for {conversation_id}: {e} ({e.details})")
            raise ProcessingError(e.details) from e
        except Exception as e:
            logger.error(f"Provider call failed for {conversation_id}: {e}")
            raise ProcessingError(str(e)) from e

        self.memory.append(conversation_id, user_turn)
        updated = self.memory.append(
            conversation_id,
            ConversationTurn(role="assistant", content=response_text, timestamp=now_iso()),
        )
        logger.info(f"Response generated for {conversation_id} via {route.model}")
        return ProcessResult(response=response_text, memory=updated, conversation_id=conversation_id)

    async def _analyze_media(
        self, message: str, ctx: RequestContext
    ) -> tuple[MediaBundle, str | None]:
        try:
            media = await self.resolver.resolve(message, ctx.attachments(), ctx.media_token())
        except Exception as e:
            logger.warning(f"Media analysis failed; continuing without media: {e}")
            return MediaBundle(), None

        visual_summary = None
        if self.analyzer is not None and media.images:
            try:
                visual_summary = await self.analyzer.describe(media)
            except Exception as e:
                logger.warning(f"Visual analysis failed; continuing without summary: {e}")
        return media, visual_summary

    def _write_long_term(
        self,
        conversation_id: str,
        user_id: str,
        message: str,
        timestamp: str,
        visual_summary: str | None,
    ) -> None:
        try:
            self.memory.remember_in_background(
                conversation_id, user_id, message, timestamp, visual_summary
            )
        except Exception as e:
            logger.warning(f"Long-term write not scheduled: {e}")

    async def _query_long_term(self, message: str) -> list[str]:
        try:
            return await self.memory.recall(message)
        except Exception as e:
            logger.warning(f"Long-term query failed; continuing without context: {e}")
            return []

    async def store(
        self,
        message: str,
        context: RequestContext | dict[str, Any] | None = None,
        timestamp: str | None = None,
    ) -> dict[str, Any]:
        """Record a message in short-term and long-term memory without generating a reply."""
        try:
            ctx = _coerce_context(context)
            conversation_id = ctx.resolved_conversation_id()
            stamp = timestamp or now_iso()
            self.memory.seed(conversation_id, ctx.seed_turns())
            self.memory.append(
                conversation_id, ConversationTurn(role="user", content=message, timestamp=stamp)
            )
            self._write_long_term(conversation_id, ctx.user_id, message, stamp, None)
        except Exception as e:
            logger.warning(f"Store-only request failed: {e}")
            return {"success": False}
        return {"success": True}

    def get_memory(self, conversation_id: str) -> dict[str, Any]:
        window = self.memory.window(conversation_id)
        return {
            "conversationId": conversation_id,
            "memory": [turn.to_dict() for turn in window],
            "messageCount": len(window),
        }

    @property
    def active_conversations(self) -> int:
        return self.memory.store.count()

    async def aclose(self) -> None:
        """Wait for background long-term writes before shutdown."""
        await self.memory.drain()
