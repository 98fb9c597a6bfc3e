"""Provider selection and response normalization."""

from __future__ import annotations

from typing import Any

from loguru import logger

from relay_agent.media.resolver import MediaBundle
from relay_agent.providers.base import ProviderFamily, ProviderResponseError, ProviderRoute

_EXPLICIT_PREFIXES = (
    ("openai/", ProviderFamily.OPENAI),
    ("anthropic/", ProviderFamily.ANTHROPIC),
    ("claude/", ProviderFamily.ANTHROPIC),
    ("gemini/", ProviderFamily.GEMINI),
    ("google/", ProviderFamily.GEMINI),
)

# Checked in order after exact entries and prefixes.
_FAMILY_MARKERS = (
    ("claude", ProviderFamily.ANTHROPIC),
    ("gemini", ProviderFamily.GEMINI),
)

DEFAULT_REGISTRY: dict[str, ProviderFamily] = {
    "gpt-4o": ProviderFamily.OPENAI,
    "gpt-4o-mini": ProviderFamily.OPENAI,
    "gpt-4.1": ProviderFamily.OPENAI,
    "gpt-4.1-mini": ProviderFamily.OPENAI,
    "claude-3-5-sonnet-latest": ProviderFamily.ANTHROPIC,
    "claude-3-5-haiku-latest": ProviderFamily.ANTHROPIC,
    "claude-sonnet-4-20250514": ProviderFamily.ANTHROPIC,
    "gemini-1.5-pro": ProviderFamily.GEMINI,
    "gemini-1.5-flash": ProviderFamily.GEMINI,
    "gemini-2.0-flash": ProviderFamily.GEMINI,
    "gemini-2.5-pro": ProviderFamily.GEMINI,
}


class ProviderRegistry:
    """Explicit model -> provider family mapping."""

    def __init__(self, entries: dict[str, Any] | None = None):
        self._entries: dict[str, ProviderFamily] = dict(DEFAULT_REGISTRY)
        for model, family in (entries or {}).items():
            try:
                self._entries[model.strip().lower()] = ProviderFamily(str(family).strip().lower())
            except ValueError:
                logger.warning(f"Ignoring registry entry {model!r}: unknown family {family!r}")

    def register(self, model: str, family: ProviderFamily) -> None:
        self._entries[model.strip().lower()] = family

    def family_for(self, model: str) -> ProviderFamily:
        """Resolve family: exact entry, explicit prefix, family marker, else fail closed to OpenAI."""
        key = (model or "").strip().lower()
        family = self._entries.get(key)
        if family is not None:
            return family
        for prefix, prefixed_family in _EXPLICIT_PREFIXES:
            if key.startswith(prefix):
                return prefixed_family
        for marker, marked_family in _FAMILY_MARKERS:
            if marker in key:
                return marked_family
        logger.warning(f"Model {model!r} not recognized; using openai wire format")
        return ProviderFamily.OPENAI


class ProviderRouter:
    """Chooses the model for a request from the presence of media."""

    def __init__(
        self,
        default_model: str,
        vision_model: str,
        registry: ProviderRegistry | None = None,
    ):
        self.default_model = default_model
        self.vision_model = vision_model
        self.registry = registry or ProviderRegistry()

    def select_provider(self, media: MediaBundle | None) -> ProviderRoute:
        """Vision model whenever media is present, otherwise the default text model."""
        if media is not None and media.has_media:
            model = self.vision_model
            route = ProviderRoute(model=model, family=self.registry.family_for(model), vision=True)
        else:
            model = self.default_model
            route = ProviderRoute(model=model, family=self.registry.family_for(model))
        logger.debug(f"Routing to {route.model} ({route.family.value}, vision={route.vision})")
        return route


def _dig(payload: Any, path: tuple[Any, ...]) -> Any:
    node = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                raise KeyError(step)
        elif not isinstance(node, dict) or step not in node:
            raise KeyError(step)
        node = node[step]
    return node


_RESPONSE_PATHS: dict[ProviderFamily, tuple[Any, ...]] = {
    ProviderFamily.OPENAI: ("choices", 0, "message", "content"),
    ProviderFamily.ANTHROPIC: ("content", 0, "text"),
    ProviderFamily.GEMINI: ("candidates", 0, "content", "parts", 0, "text"),
}


def parse_response(family: ProviderFamily, payload: Any) -> str:
    """
    Extract the reply text from a provider response.

    Raises:
        ProviderResponseError: The payload lacks the family's expected shape.
    """
    path = _RESPONSE_PATHS[family]
    try:
        text = _dig(payload, path)
    except KeyError as e:
        shape = ".".join(str(step) for step in path)
        raise ProviderResponseError(
            f"Unexpected {family.value} response",
            details=f"missing '{e.args[0]}' while reading {shape}",
        ) from e
    if not isinstance(text, str):
        raise ProviderResponseError(
            f"Unexpected {family.value} response",
            details=f"reply text is {type(text).__name__}, expected string",
        )
    return text
