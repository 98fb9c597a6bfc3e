"""Utility helpers."""

from relay_agent.utils.helpers import conversation_key, first_success, now_iso

__all__ = ["conversation_key", "first_success", "now_iso"]
