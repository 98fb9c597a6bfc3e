from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from relay_agent import __version__
from relay_agent.agent.memory import ConversationTurn
from relay_agent.agent.orchestrator import ProcessingError, RequestOrchestrator
from relay_agent.agent.requests import ProcessResult
from relay_agent.cli.commands import app

runner = CliRunner()


def test_top_level_without_args_shows_help():
    result = runner.invoke(app, [])
    assert result.exit_code in {0, 2}
    assert "Usage: relay-agent" in result.stdout


def test_version_alias_matches_global_flag_output():
    from_command = runner.invoke(app, ["version"])
    from_flag = runner.invoke(app, ["--version"])

    assert from_command.exit_code == 0
    assert from_flag.exit_code == 0
    assert f"v{__version__}" in from_command.stdout
    assert f"v{__version__}" in from_flag.stdout


def test_status_reports_routes(tmp_path: Path):
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"llm": {"visionModel": "claude-3-5-sonnet-latest"}}), encoding="utf-8"
    )

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "Model routes" in result.stdout
    assert "gpt-4o-mini" in result.stdout
    assert "anthropic" in result.stdout


def test_ask_requires_gateway_token():
    result = runner.invoke(app, ["ask", "-m", "hello"])

    assert result.exit_code == 1
    assert "No LLM gateway token configured." in result.stdout


def test_ask_prints_response(monkeypatch):
    monkeypatch.setenv("RELAY_AGENT_GATEWAY__TOKEN", "lava_test")
    calls: list[tuple[str, dict]] = []

    async def fake_process(self, message, context=None, timestamp=None):
        calls.append((message, context))
        return ProcessResult(
            response="pong",
            memory=[ConversationTurn("user", message, "t1"), ConversationTurn("assistant", "pong", "t2")],
            conversation_id=context["conversationId"],
        )

    monkeypatch.setattr(RequestOrchestrator, "process", fake_process)

    result = runner.invoke(app, ["ask", "-m", "ping", "-c", "cli:test"])

    assert result.exit_code == 0
    assert "pong" in result.stdout
    assert calls == [("ping", {"conversationId": "cli:test", "userId": "cli"})]


def test_ask_reports_processing_error(monkeypatch):
    monkeypatch.setenv("RELAY_AGENT_GATEWAY__TOKEN", "lava_test")

    async def failing_process(self, message, context=None, timestamp=None):
        raise ProcessingError("status=401 body=invalid token")

    monkeypatch.setattr(RequestOrchestrator, "process", failing_process)

    result = runner.invoke(app, ["ask", "-m", "ping"])

    assert result.exit_code == 1
    assert "Failed to process message" in result.stdout
