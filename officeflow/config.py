"""Configuration management using pydantic-settings."""

from typing import Any, Dict, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")

    # Capability Gateway Configuration
    capability_backend: str = Field(default="keyword", description="Capability gateway (keyword/openai)")
    llm_api_key: Optional[str] = Field(default=None, description="Model provider API key")
    llm_api_base: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL")
    llm_model: str = Field(default="gpt-4o-mini", description="Model name")
    llm_timeout: float = Field(default=30.0, description="Model request timeout in seconds")

    # Notification Configuration
    telegram_bot_token: Optional[str] = Field(default=None, description="Telegram bot token")
    telegram_api_base: str = Field(default="https://api.telegram.org", description="Telegram Bot API base URL")
    review_base_url: str = Field(default="http://localhost:3001/review", description="Artifact review link prefix")

    # Orchestration Configuration
    settlement_min_seconds: float = Field(default=5.0, ge=0, description="Minimum simulated work duration")
    settlement_max_seconds: float = Field(default=15.0, ge=0, description="Maximum simulated work duration")
    assignment_wait_seconds: float = Field(default=30.0, ge=0, description="Bounded wait for a busy worker")
    event_history_size: int = Field(default=200, ge=0, description="Observer events kept in memory")
    event_queue_size: int = Field(default=256, ge=1, description="Events buffered per observer before it is dropped")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[str] = Field(default="./logs/app.log", description="Log file path")

    @model_validator(mode="after")
    def validate_settlement_window(self):
        """Settlement window must be ordered."""
        if self.settlement_min_seconds > self.settlement_max_seconds:
            raise ValueError(
                f"settlement_min_seconds ({self.settlement_min_seconds}) must not exceed "
                f"settlement_max_seconds ({self.settlement_max_seconds})"
            )
        return self

    def get_capability_config(self) -> Dict[str, Any]:
        """Get constructor kwargs for the selected capability gateway."""
        backend = self.capability_backend.lower()
        if backend == "keyword":
            return {}
        elif backend == "openai":
            config = {
                "api_base": self.llm_api_base,
                "model": self.llm_model,
                "timeout": self.llm_timeout,
            }
            # Only add api_key if it's not None
            if self.llm_api_key:
                config["api_key"] = self.llm_api_key
            return config
        else:
            raise ValueError(f"Unknown capability backend: {self.capability_backend}")


# Global settings instance
settings = Settings()
