"""Media detection and private attachment retrieval."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import httpx
from loguru import logger

from relay_agent.utils.helpers import first_success, truncate

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".webm", ".m4v")
IMAGE_HOSTS = ("imgur.com", "giphy.com", "tenor.com")
VIDEO_HOSTS = ("youtube.com", "youtu.be", "vimeo.com", "loom.com")
PRIVATE_URL_KEYS = ("url_private_download", "url_private")

# Slack wraps links as <https://...|label>; stop at the markup delimiters.
URL_PATTERN = re.compile(r"https?://[^\s<>|\"']+", re.IGNORECASE)


@dataclass
class MediaItem:
    """One attachment or in-text media link."""

    url: str
    name: str | None = None
    mime_type: str | None = None
    title: str | None = None
    auth_token: str | None = None
    source: str = "attachment"  # attachment | text_link
    data_uri: str | None = None
    candidates: list[str] = field(default_factory=list)
    private_urls: list[str] = field(default_factory=list)  # Only these receive the bearer token

    @property
    def is_private(self) -> bool:
        """Private platform resources need authenticated retrieval."""
        return bool(self.auth_token)

    @property
    def embeddable_url(self) -> str | None:
        """URL safe to hand to a third party, or None if not yet embedded."""
        if self.data_uri:
            return self.data_uri
        if self.is_private:
            return None
        return self.url or None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "name": self.name,
            "mimeType": self.mime_type,
            "title": self.title,
            "source": self.source,
            "embedded": bool(self.data_uri),
        }


@dataclass
class MediaBundle:
    """Classified media found in one inbound message."""

    images: list[MediaItem] = field(default_factory=list)
    videos: list[MediaItem] = field(default_factory=list)
    files: list[MediaItem] = field(default_factory=list)

    @property
    def has_media(self) -> bool:
        return bool(self.images or self.videos or self.files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasMedia": self.has_media,
            "images": [item.to_dict() for item in self.images],
            "videos": [item.to_dict() for item in self.videos],
            "files": [item.to_dict() for item in self.files],
        }


def parse_data_uri(uri: str) -> tuple[str, str] | None:
    """Split a base64 data URI into (mime_type, payload)."""
    match = re.match(r"^data:([^;,]+);base64,(.*)$", uri or "", re.DOTALL)
    if not match:
        return None
    return match.group(1), match.group(2)


def _attachment_mime(attachment: dict[str, Any]) -> str:
    for key in ("mimetype", "mime_type", "mimeType", "content_type", "contentType"):
        value = attachment.get(key)
        if value:
            return str(value).strip().lower()
    return ""


def _candidate_urls(
    attachment: dict[str, Any],
    keys: tuple[str, ...] = (*PRIVATE_URL_KEYS, "url"),
) -> list[str]:
    """Download-specific URL first, then the generic private URL, then any plain URL."""
    urls: list[str] = []
    for key in keys:
        value = str(attachment.get(key) or "").strip()
        if value and value not in urls:
            urls.append(value)
    return urls


def _classify_link(url: str) -> str | None:
    parsed = urlsplit(url)
    path = parsed.path.lower()
    host = (parsed.hostname or "").lower()
    if path.endswith(IMAGE_EXTENSIONS):
        return "image"
    if path.endswith(VIDEO_EXTENSIONS):
        return "video"
    if any(host == h or host.endswith("." + h) for h in IMAGE_HOSTS):
        return "image"
    if any(host == h or host.endswith("." + h) for h in VIDEO_HOSTS):
        return "video"
    return None


class MediaResolver:
    """
    Detects visual media in a message and fetches private attachment bytes.

    Attachments are classified by declared content type. Images behind
    authenticated platform URLs are downloaded and embedded as data URIs;
    everything else is recorded as-is. Per-item failures never abort the scan.
    """

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        max_bytes: int = 20 * 1024 * 1024,
        default_token: str | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_bytes = max_bytes
        self.default_token = default_token or None

    async def resolve(
        self,
        message: str,
        attachments: list[dict[str, Any]] | None = None,
        auth_token: str | None = None,
    ) -> MediaBundle:
        """
        Build the MediaBundle for one message.

        Args:
            message: Free-text message body.
            attachments: Platform file metadata objects.
            auth_token: Bearer token for private platform URLs.

        Returns:
            Bundle with resolved images, videos, and files.
        """
        bundle = MediaBundle()
        token = auth_token or self.default_token

        for attachment in attachments or []:
            if not isinstance(attachment, dict):
                continue
            try:
                await self._add_attachment(bundle, attachment, token)
            except Exception as e:
                logger.warning(f"Skipping attachment {attachment.get('name') or '?'}: {e}")

        for item in self.scan_text_links(message):
            kind = _classify_link(item.url)
            if kind == "image":
                bundle.images.append(item)
            elif kind == "video":
                bundle.videos.append(item)

        if bundle.has_media:
            logger.info(
                f"Media detected: {len(bundle.images)} image(s), "
                f"{len(bundle.videos)} video(s), {len(bundle.files)} file(s)"
            )
        return bundle

    def scan_text_links(self, text: str) -> list[MediaItem]:
        """Find image/video links in free text; these are passed through, not downloaded."""
        items: list[MediaItem] = []
        seen: set[str] = set()
        for match in URL_PATTERN.finditer(text or ""):
            url = match.group(0).rstrip(".,;:!?)")
            if url in seen or _classify_link(url) is None:
                continue
            seen.add(url)
            items.append(MediaItem(url=url, source="text_link"))
        return items

    async def _add_attachment(
        self,
        bundle: MediaBundle,
        attachment: dict[str, Any],
        token: str | None,
    ) -> None:
        mime = _attachment_mime(attachment)
        candidates = _candidate_urls(attachment)
        if not candidates:
            logger.debug(f"Attachment without URL ignored: {attachment.get('name')}")
            return

        item = MediaItem(
            url=candidates[0],
            name=attachment.get("name"),
            mime_type=mime or None,
            title=attachment.get("title"),
            auth_token=token,
            candidates=candidates,
            private_urls=_candidate_urls(attachment, PRIVATE_URL_KEYS),
        )

        if mime.startswith("image/"):
            if await self.embed_image(item):
                bundle.images.append(item)
            else:
                logger.warning(f"Image {item.name or item.url} could not be retrieved; dropped")
        elif mime.startswith("video/"):
            bundle.videos.append(item)
        else:
            bundle.files.append(item)

    async def embed_image(self, item: MediaItem) -> bool:
        """Download an image through its candidate chain and store it as a data URI."""
        if item.data_uri:
            return True

        auth_headers = {}
        if item.auth_token:
            auth_headers["Authorization"] = f"Bearer {item.auth_token}"

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, follow_redirects=True
        ) as client:

            async def _fetch(url: str) -> httpx.Response:
                headers = auth_headers if url in item.private_urls else {}
                response = await client.get(url, headers=headers)
                response.raise_for_status()
                return response

            winner = await first_success(
                item.candidates or [item.url],
                _fetch,
                accept=self._is_image_response,
            )

        if winner is None:
            return False

        url, response = winner
        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        encoded = base64.b64encode(response.content).decode()
        item.url = url
        item.mime_type = content_type
        item.data_uri = f"data:{content_type};base64,{encoded}"
        logger.debug(f"Embedded image from {truncate(url, 120)} ({len(response.content)} bytes)")
        return True

    def _is_image_response(self, response: httpx.Response) -> bool:
        content_type = response.headers.get("content-type", "").lower()
        if not content_type.startswith("image/"):
            # Private URLs without a valid token usually come back as an HTML login page.
            logger.debug(f"Rejected {response.url}: content-type {content_type or 'missing'}")
            return False
        return len(response.content) <= self.max_bytes
