"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant integrated with Slack.\n"
    "You have access to conversation history and can help users with questions and tasks.\n"
    "Be friendly, helpful, and concise in your responses."
)


class GatewayConfig(BaseModel):
    """LLM gateway (forward proxy) configuration."""
    base_url: str = "https://api.lavapayments.com/v1"  # Empty string calls upstream APIs directly
    token: str = ""  # Bearer token sent on every provider call
    timeout_seconds: float = 60.0
    endpoints: dict[str, str] = Field(default_factory=dict)  # family -> upstream URL override


class LLMConfig(BaseModel):
    """Model selection configuration."""
    default_model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o"
    max_tokens: int = 1024
    registry: dict[str, str] = Field(default_factory=dict)  # model -> openai|anthropic|gemini


class MemoryServiceConfig(BaseModel):
    """External long-term memory service (Letta archival memory)."""
    base_url: str = ""
    api_key: str = ""
    agent_id: str = ""  # Single agent identity all memories are scoped to
    top_k: int = 5
    timeout_seconds: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.base_url.strip() and self.agent_id.strip())


class MediaConfig(BaseModel):
    """Attachment retrieval and visual analysis."""
    timeout_seconds: float = 10.0
    max_bytes: int = 20 * 1024 * 1024
    describe_images: bool = False  # Extra vision call that summarizes images for long-term memory


class SlackConfig(BaseModel):
    """Chat platform credentials used for private file downloads."""
    bot_token: str = ""


class OrchestratorConfig(BaseModel):
    """Request pipeline settings."""
    window_size: int = Field(default=10, ge=1, le=10)  # Never more than 10 turns
    request_timeout_seconds: float = 120.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000


class Config(BaseSettings):
    """Root configuration for relay-agent."""
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    memory: MemoryServiceConfig = Field(default_factory=MemoryServiceConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = SettingsConfigDict(
        env_prefix="RELAY_AGENT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )
