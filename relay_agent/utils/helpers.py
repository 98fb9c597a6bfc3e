"""Utility functions for relay-agent."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from loguru import logger

C = TypeVar("C")
R = TypeVar("R")


def get_data_path() -> Path:
    """Get the relay-agent data directory (~/.relay-agent)."""
    return Path.home() / ".relay-agent"


def now_iso() -> str:
    """Current UTC time as ISO-8601 with a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def conversation_key(channel_id: str, thread_ts: str | None = None) -> str:
    """Derive a conversation id from channel + thread timestamp."""
    channel = str(channel_id or "").strip()
    thread = str(thread_ts or "").strip()
    if channel and thread:
        return f"{channel}_{thread}"
    return channel or thread


def truncate(text: str, limit: int = 200) -> str:
    """Compact a string for log lines."""
    compact = " ".join(str(text or "").split())
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."


async def first_success(
    candidates: Iterable[C],
    attempt: Callable[[C], Awaitable[R]],
    accept: Callable[[R], bool] | None = None,
) -> tuple[C, R] | None:
    """
    Try candidates in order until one produces an acceptable result.

    Args:
        candidates: Ordered resources to try.
        attempt: Async callable producing a result for one candidate.
        accept: Optional predicate the result must satisfy.

    Returns:
        The winning (candidate, result) pair, or None when every candidate
        raised or was rejected.
    """
    for candidate in candidates:
        try:
            result = await attempt(candidate)
        except Exception as e:
            logger.debug(f"Candidate {candidate!r} failed: {e}")
            continue
        if accept is not None and not accept(result):
            logger.debug(f"Candidate {candidate!r} rejected")
            continue
        return candidate, result
    return None
