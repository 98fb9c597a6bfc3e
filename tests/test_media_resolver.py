import asyncio
import base64

import httpx

from relay_agent.media.resolver import MediaBundle, MediaItem, MediaResolver, parse_data_uri
from relay_agent.utils.helpers import first_success

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def _private_image(**extra) -> dict:
    attachment = {
        "name": "screenshot.png",
        "mimetype": "image/png",
        "url_private_download": "https://files.slack.test/download/screenshot.png",
        "url_private": "https://files.slack.test/private/screenshot.png",
    }
    attachment.update(extra)
    return attachment


def test_private_image_falls_back_to_second_candidate(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        if "/download/" in request.url.path:
            return httpx.Response(200, text="<html>login</html>", headers={"content-type": "text/html"})
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

    mock = mock_http(handler)
    resolver = MediaResolver()
    bundle = asyncio.run(resolver.resolve("look at this", [_private_image()], auth_token="xoxb-1"))

    assert bundle.has_media is True
    assert len(bundle.images) == 1
    image = bundle.images[0]
    assert image.url == "https://files.slack.test/private/screenshot.png"
    assert image.mime_type == "image/png"
    assert image.data_uri == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    assert mock.urls() == [
        "https://files.slack.test/download/screenshot.png",
        "https://files.slack.test/private/screenshot.png",
    ]
    assert all(r.headers["authorization"] == "Bearer xoxb-1" for r in mock.requests)


def test_image_dropped_when_every_candidate_fails(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        if "/download/" in request.url.path:
            raise httpx.ConnectError("unreachable", request=request)
        return httpx.Response(403, text="forbidden")

    mock_http(handler)
    bundle = asyncio.run(MediaResolver().resolve("", [_private_image()], auth_token="xoxb-1"))

    assert bundle.images == []
    assert bundle.has_media is False


def test_oversized_image_is_rejected(mock_http):
    mock_http(
        lambda request: httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
    )
    resolver = MediaResolver(max_bytes=4)
    bundle = asyncio.run(resolver.resolve("", [_private_image()], auth_token="xoxb-1"))

    assert bundle.images == []


def test_default_token_used_when_request_has_none(mock_http):
    mock = mock_http(
        lambda request: httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
    )
    resolver = MediaResolver(default_token="xoxb-default")
    asyncio.run(resolver.resolve("", [_private_image()]))

    assert mock.requests[0].headers["authorization"] == "Bearer xoxb-default"


def test_videos_and_files_are_classified_without_download(mock_http):
    mock = mock_http(lambda request: httpx.Response(500))
    attachments = [
        {"name": "demo.mp4", "mimetype": "video/mp4", "url_private": "https://files.slack.test/demo.mp4"},
        {"name": "notes.pdf", "mimetype": "application/pdf", "url_private": "https://files.slack.test/notes.pdf"},
        {"name": "orphan.png", "mimetype": "image/png"},
    ]
    bundle = asyncio.run(MediaResolver().resolve("", attachments, auth_token="xoxb-1"))

    assert [v.name for v in bundle.videos] == ["demo.mp4"]
    assert [f.name for f in bundle.files] == ["notes.pdf"]
    assert bundle.images == []
    assert bundle.has_media is True
    assert mock.requests == []


def test_text_links_are_passed_through():
    message = (
        "see <https://i.imgur.com/abc.png|pic> and https://www.youtube.com/watch?v=xyz, "
        "plus https://example.com/page and https://cdn.test/photo.JPG."
    )
    bundle = asyncio.run(MediaResolver().resolve(message))

    assert [i.url for i in bundle.images] == ["https://i.imgur.com/abc.png", "https://cdn.test/photo.JPG"]
    assert [v.url for v in bundle.videos] == ["https://www.youtube.com/watch?v=xyz"]
    assert all(i.source == "text_link" for i in bundle.images)
    assert all(i.embeddable_url == i.url for i in bundle.images)


def test_plain_message_has_no_media():
    bundle = asyncio.run(MediaResolver().resolve("hello there https://example.com"))

    assert bundle.has_media is False
    assert bundle.to_dict() == {"hasMedia": False, "images": [], "videos": [], "files": []}


def test_private_item_is_not_embeddable_until_downloaded():
    item = MediaItem(url="https://files.slack.test/x.png", auth_token="xoxb-1")
    assert item.embeddable_url is None

    item.data_uri = "data:image/png;base64,AAAA"
    assert item.embeddable_url == "data:image/png;base64,AAAA"
    assert MediaBundle(images=[item]).to_dict()["images"][0]["embedded"] is True


def test_parse_data_uri():
    assert parse_data_uri("data:image/jpeg;base64,QUJD") == ("image/jpeg", "QUJD")
    assert parse_data_uri("https://example.com/x.png") is None


def test_first_success_returns_first_accepted_candidate():
    seen: list[int] = []

    async def attempt(value: int) -> int:
        seen.append(value)
        if value == 1:
            raise RuntimeError("nope")
        return value * 10

    result = asyncio.run(first_success([1, 2, 3, 4], attempt, accept=lambda r: r >= 30))

    assert result == (3, 30)
    assert seen == [1, 2, 3]
    assert asyncio.run(first_success([], attempt)) is None


def test_token_is_only_sent_to_private_platform_urls(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "files.slack.test":
            return httpx.Response(404, text="gone")
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

    mock = mock_http(handler)
    attachment = _private_image(url="https://cdn.elsewhere.test/screenshot.png")

    bundle = asyncio.run(MediaResolver().resolve("", [attachment], auth_token="xoxb-1"))

    assert [i.url for i in bundle.images] == ["https://cdn.elsewhere.test/screenshot.png"]
    sent = {str(r.url): r.headers.get("authorization") for r in mock.requests}
    assert sent == {
        "https://files.slack.test/download/screenshot.png": "Bearer xoxb-1",
        "https://files.slack.test/private/screenshot.png": "Bearer xoxb-1",
        "https://cdn.elsewhere.test/screenshot.png": None,
    }
