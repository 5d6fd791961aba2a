"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Redis configuration
    redis_url: str = "redis://redis:6379/0"
    redis_ttl_seconds: int = 3600  # Sliding expiry for conversations and pointers
    redis_connect_max_attempts: int = 3
    redis_socket_timeout: float = 5

    # Key namespaces
    conversation_key_prefix: str = "cursor"
    agent_conversation_key_prefix: str = "agent"

    # Persist review-agent turns in conversation history
    debug: bool = False

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
