"""Media detection and retrieval."""

from relay_agent.media.resolver import MediaBundle, MediaItem, MediaResolver

__all__ = ["MediaBundle", "MediaItem", "MediaResolver"]
