"""Configuration loading utilities."""

import json
import os
import re
from pathlib import Path
from typing import Any

from loguru import logger

from relay_agent.config.schema import Config
from relay_agent.utils.helpers import get_data_path

# Keys under these sections are user data (model ids, family names), not field names.
_VERBATIM_SECTIONS = {"registry", "endpoints"}


def get_config_path() -> Path:
    """Get the config file path (RELAY_AGENT_CONFIG overrides the default)."""
    override = os.environ.get("RELAY_AGENT_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return get_data_path() / "config.json"


def camel_to_snake(name: str) -> str:
    """Convert camelCase keys (apiKey) to snake_case (api_key)."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def convert_keys(data: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        converted: dict[str, Any] = {}
        for key, value in data.items():
            snake = camel_to_snake(str(key))
            if snake in _VERBATIM_SECTIONS and isinstance(value, dict):
                converted[snake] = dict(value)
            else:
                converted[snake] = convert_keys(value)
        return converted
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, layered over environment variables.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            return Config(**convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")

    return Config()
