import asyncio
import json

import httpx

from relay_agent.agent.long_term import LongTermMemory


def _memory(**overrides) -> LongTermMemory:
    options = {"base_url": "http://letta.test/", "agent_id": "agent-1", "api_key": "letta-key", "top_k": 3}
    options.update(overrides)
    return LongTermMemory(**options)


def test_disabled_memory_never_touches_the_network(mock_http):
    mock = mock_http(lambda request: httpx.Response(500))
    memory = LongTermMemory()

    assert memory.enabled is False
    assert asyncio.run(memory.query("anything")) == []
    assert asyncio.run(memory.store("c1", "u1", "hello", "t1")) is None
    assert mock.requests == []


def test_store_posts_archival_passage(mock_http):
    mock = mock_http(lambda request: httpx.Response(200, json=[{"id": "passage-1"}]))

    asyncio.run(_memory().store("C1_171", "U42", "we ship on friday", "2026-01-01T00:00:00Z", "a chart"))

    sent = mock.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "http://letta.test/v1/agents/agent-1/archival-memory"
    assert sent.headers["authorization"] == "Bearer letta-key"
    body = json.loads(sent.content)
    assert body["tags"] == ["conversation:C1_171", "user:U42"]
    assert "we ship on friday" in body["text"]
    assert "Visual context: a chart" in body["text"]


def test_store_swallows_errors(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    mock_http(handler)
    assert asyncio.run(_memory().store("c1", "u1", "hello", "t1")) is None

    mock_http(lambda request: httpx.Response(503, text="down"))
    assert asyncio.run(_memory().store("c1", "u1", "hello", "t1")) is None


def test_query_preserves_store_order(mock_http):
    payload = {
        "results": [
            {"content": "most relevant", "score": 0.9},
            {"text": "second"},
            {"content": "   "},
            "third",
        ]
    }
    mock = mock_http(lambda request: httpx.Response(200, json=payload))

    assert asyncio.run(_memory().query("friday release")) == ["most relevant", "second", "third"]

    sent = mock.requests[0]
    assert sent.url.path == "/v1/agents/agent-1/archival-memory/search"
    assert sent.url.params["query"] == "friday release"
    assert sent.url.params["top_k"] == "3"


def test_query_network_error_returns_empty(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    mock_http(handler)
    assert asyncio.run(_memory().query("hello")) == []


def test_query_bad_status_or_body_returns_empty(mock_http):
    mock_http(lambda request: httpx.Response(500, text="boom"))
    assert asyncio.run(_memory().query("hello")) == []

    mock_http(lambda request: httpx.Response(200, text="not json"))
    assert asyncio.run(_memory().query("hello")) == []

    mock_http(lambda request: httpx.Response(200, json={"results": "weird"}))
    assert asyncio.run(_memory().query("hello")) == []
