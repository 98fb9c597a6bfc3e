"""Build provider runtime objects from configuration."""

from __future__ import annotations

from relay_agent.config.schema import Config
from relay_agent.providers.gateway import LLMGateway
from relay_agent.providers.router import ProviderRegistry, ProviderRouter


def build_router(config: Config) -> ProviderRouter:
    """Router over the configured default/vision models and registry entries."""
    return ProviderRouter(
        default_model=config.llm.default_model,
        vision_model=config.llm.vision_model,
        registry=ProviderRegistry(config.llm.registry),
    )


def build_gateway(config: Config) -> LLMGateway:
    """Gateway client for the configured forward proxy (or direct upstreams)."""
    return LLMGateway(
        token=config.gateway.token,
        base_url=config.gateway.base_url,
        timeout_seconds=config.gateway.timeout_seconds,
        endpoints=config.gateway.endpoints,
    )
