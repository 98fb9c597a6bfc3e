"""Provider families, routes, requests, and errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderFamily(str, Enum):
    """Request/response wire shapes a language-model backend may use."""

    OPENAI = "openai"  # flat message list, system as a message
    ANTHROPIC = "anthropic"  # separate top-level system field
    GEMINI = "gemini"  # single content tree of parts


@dataclass(frozen=True)
class ProviderRoute:
    """Model chosen for one call plus the family used to talk to it."""

    model: str
    family: ProviderFamily
    vision: bool = False


@dataclass
class ProviderRequest:
    """Provider-specific request built fresh per call."""

    family: ProviderFamily
    model: str
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class ProviderError(RuntimeError):
    """Fatal-to-request provider failure."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details or message


class ProviderDispatchError(ProviderError):
    """The provider call itself failed (network, HTTP status, invalid JSON)."""


class ProviderResponseError(ProviderError):
    """The provider answered but not in the expected shape."""
