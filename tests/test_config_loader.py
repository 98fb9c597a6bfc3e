import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from relay_agent.config.loader import convert_keys, get_config_path, load_config
from relay_agent.config.schema import Config


def test_defaults_without_config_file(tmp_path: Path):
    config = load_config(tmp_path / "missing.json")

    assert config.gateway.base_url == "https://api.lavapayments.com/v1"
    assert config.llm.default_model == "gpt-4o-mini"
    assert config.orchestrator.window_size == 10
    assert config.memory.enabled is False
    assert config.server.port == 8000


def test_camel_case_file_is_loaded(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "gateway": {"token": "lava_sk", "timeoutSeconds": 30},
                "llm": {
                    "visionModel": "claude-3-5-sonnet-latest",
                    "registry": {"myOrgModel": "gemini"},
                },
                "memory": {"baseUrl": "http://letta:8283", "agentId": "agent-9"},
                "orchestrator": {"requestTimeoutSeconds": 45},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.gateway.token == "lava_sk"
    assert config.gateway.timeout_seconds == 30
    assert config.llm.vision_model == "claude-3-5-sonnet-latest"
    assert config.llm.registry == {"myOrgModel": "gemini"}
    assert config.memory.enabled is True
    assert config.orchestrator.request_timeout_seconds == 45


def test_broken_file_falls_back_to_defaults(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{ nope", encoding="utf-8")
    assert load_config(path).llm.default_model == "gpt-4o-mini"

    path.write_text("[1, 2]", encoding="utf-8")
    assert load_config(path).llm.default_model == "gpt-4o-mini"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RELAY_AGENT_GATEWAY__TOKEN", "from-env")
    monkeypatch.setenv("RELAY_AGENT_LLM__DEFAULT_MODEL", "gemini-2.0-flash")

    config = Config()

    assert config.gateway.token == "from-env"
    assert config.llm.default_model == "gemini-2.0-flash"


def test_config_path_override(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("RELAY_AGENT_CONFIG", str(tmp_path / "custom.json"))
    assert get_config_path() == tmp_path / "custom.json"

    monkeypatch.delenv("RELAY_AGENT_CONFIG")
    assert get_config_path().name == "config.json"
    assert get_config_path().parent.name == ".relay-agent"


def test_convert_keys_keeps_user_mapping_keys():
    assert convert_keys({"llm": {"maxTokens": 5, "registry": {"gptX": "openai"}}}) == {
        "llm": {"max_tokens": 5, "registry": {"gptX": "openai"}}
    }


def test_window_size_is_bounded(tmp_path: Path):
    with pytest.raises(ValidationError):
        Config(orchestrator={"window_size": 50})
    with pytest.raises(ValidationError):
        Config(orchestrator={"window_size": 0})
    assert Config(orchestrator={"window_size": 4}).orchestrator.window_size == 4

    path = tmp_path / "config.json"
    path.write_text(json.dumps({"orchestrator": {"windowSize": 25}}), encoding="utf-8")
    assert load_config(path).orchestrator.window_size == 10
