"""LLM provider routing, formatting, and dispatch."""

from relay_agent.providers.base import (
    ProviderDispatchError,
    ProviderError,
    ProviderFamily,
    ProviderRequest,
    ProviderResponseError,
    ProviderRoute,
)
from relay_agent.providers.factory import build_gateway, build_router
from relay_agent.providers.formatters import format_payload
from relay_agent.providers.gateway import LLMGateway
from relay_agent.providers.router import ProviderRegistry, ProviderRouter, parse_response

__all__ = [
    "LLMGateway",
    "ProviderDispatchError",
    "ProviderError",
    "ProviderFamily",
    "ProviderRegistry",
    "ProviderRequest",
    "ProviderResponseError",
    "ProviderRoute",
    "ProviderRouter",
    "build_gateway",
    "build_router",
    "format_payload",
    "parse_response",
]
