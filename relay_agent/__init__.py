"""Relay Agent - chat-to-LLM relay with short-term and long-term memory."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("relay-agent")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "🛰"
__brand__ = "relay-agent"
