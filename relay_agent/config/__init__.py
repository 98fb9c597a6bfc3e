"""Configuration module for relay-agent."""

from relay_agent.config.loader import get_config_path, load_config
from relay_agent.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
