"""Provider-specific request body builders."""

from __future__ import annotations

import mimetypes
from typing import Any

from loguru import logger

from relay_agent.media.resolver import MediaBundle, MediaItem, parse_data_uri
from relay_agent.providers.base import ProviderFamily, ProviderRequest

ANTHROPIC_VERSION = "2023-06-01"
IMAGE_DETAIL = "high"


def _text_of(content: Any) -> str:
    """Plain text of a message content (string or list of typed segments)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            str(part.get("text", ""))
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        ]
        return "\n".join(t for t in texts if t)
    return str(content or "")


def _last_user_index(messages: list[dict[str, Any]]) -> int | None:
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].get("role") == "user":
            return index
    return None


def _image_urls(media: MediaBundle | None) -> list[str]:
    """Embeddable image URLs; private images that were never embedded are dropped."""
    if media is None:
        return []
    urls: list[str] = []
    for item in media.images:
        url = item.embeddable_url
        if url:
            urls.append(url)
        else:
            logger.debug(f"Dropping unembedded private image {item.name or item.url}")
    return urls


def _format_openai(
    model: str,
    messages: list[dict[str, Any]],
    system_prompt: str,
    media: MediaBundle | None,
) -> ProviderRequest:
    chat: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    chat.extend({"role": m["role"], "content": m["content"]} for m in messages)

    if media is not None and media.has_media:
        index = _last_user_index(chat)
        if index is not None:
            segments: list[dict[str, Any]] = [
                {"type": "text", "text": _text_of(chat[index]["content"])}
            ]
            for url in _image_urls(media):
                segments.append(
                    {"type": "image_url", "image_url": {"url": url, "detail": IMAGE_DETAIL}}
                )
            chat[index] = {"role": "user", "content": segments}

    return ProviderRequest(
        family=ProviderFamily.OPENAI,
        model=model,
        body={"model": model, "messages": chat},
    )


def _anthropic_image_block(item: MediaItem) -> dict[str, Any] | None:
    parsed = parse_data_uri(item.data_uri or "")
    if parsed is None:
        # URL-based image references are not accepted by this family.
        logger.debug(f"Omitting non-embedded image {item.url} for anthropic request")
        return None
    media_type, data = parsed
    return {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}}


def _format_anthropic(
    model: str,
    messages: list[dict[str, Any]],
    system_prompt: str,
    media: MediaBundle | None,
    max_tokens: int,
) -> ProviderRequest:
    chat: list[dict[str, Any]] = [
        {"role": "user", "content": m["content"]} for m in messages if m.get("role") == "user"
    ]

    if media is not None and media.has_media and chat:
        blocks: list[dict[str, Any]] = [{"type": "text", "text": _text_of(chat[-1]["content"])}]
        for item in media.images:
            block = _anthropic_image_block(item)
            if block:
                blocks.append(block)
        chat[-1] = {"role": "user", "content": blocks}

    return ProviderRequest(
        family=ProviderFamily.ANTHROPIC,
        model=model,
        body={
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": chat,
        },
        headers={"anthropic-version": ANTHROPIC_VERSION},
    )


def _gemini_media_part(item: MediaItem) -> dict[str, Any] | None:
    parsed = parse_data_uri(item.data_uri or "")
    if parsed is not None:
        mime_type, data = parsed
        return {"inline_data": {"mime_type": mime_type, "data": data}}
    if item.is_private:
        return None
    mime_type = item.mime_type or mimetypes.guess_type(item.url)[0] or "image/jpeg"
    return {"file_data": {"mime_type": mime_type, "file_uri": item.url}}


def _format_gemini(
    model: str,
    messages: list[dict[str, Any]],
    system_prompt: str,
    media: MediaBundle | None,
    max_tokens: int,
) -> ProviderRequest:
    index = _last_user_index(messages)
    latest = _text_of(messages[index]["content"]) if index is not None else ""

    parts: list[dict[str, Any]] = [{"text": system_prompt}, {"text": latest}]
    if media is not None and media.has_media:
        for item in media.images:
            part = _gemini_media_part(item)
            if part:
                parts.append(part)

    return ProviderRequest(
        family=ProviderFamily.GEMINI,
        model=model,
        body={
            "contents": [{"parts": parts}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        },
    )


def format_payload(
    family: ProviderFamily,
    messages: list[dict[str, Any]],
    system_prompt: str,
    media: MediaBundle | None = None,
    *,
    model: str,
    max_tokens: int = 1024,
) -> ProviderRequest:
    """
    Build the request body for one provider family.

    Args:
        family: Target wire shape.
        messages: Provider-agnostic chronological {role, content} list.
        system_prompt: Fully assembled system prompt.
        media: Resolved media for the latest user message.
        model: Model identifier to target.
        max_tokens: Output token cap for families that require one.

    Returns:
        A fresh ProviderRequest; the input list is never mutated.
    """
    if family is ProviderFamily.ANTHROPIC:
        return _format_anthropic(model, messages, system_prompt, media, max_tokens)
    if family is ProviderFamily.GEMINI:
        return _format_gemini(model, messages, system_prompt, media, max_tokens)
    return _format_openai(model, messages, system_prompt, media)
