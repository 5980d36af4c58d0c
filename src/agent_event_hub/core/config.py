"""
Configuration settings for the Agent Event Hub.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Event hub configuration loaded from environment variables.

    Every field can be overridden with an ``EVENT_HUB_`` prefixed variable,
    e.g. ``EVENT_HUB_QUEUE_MAX_SIZE=500``.
    """
    model_config = SettingsConfigDict(
        env_prefix="EVENT_HUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    service_name: str = "agent-event-hub"
    service_port: int = 8084
    debug: bool = False
    cors_origins: List[str] = ["*"]

    # Bounded storage
    queue_max_size: int = 1000
    history_max_size: int = 100

    # Janitor
    cleanup_interval_seconds: float = 300.0  # 5 minutes
    default_ttl_ms: int = 24 * 60 * 60 * 1000  # 24 hours
    subscription_retention_ms: int = 24 * 60 * 60 * 1000

    # Webhook delivery
    webhook_max_retries: int = 3
    webhook_backoff_ms: int = 1000
    webhook_timeout_seconds: float = 10.0

    # Live stream settings
    stream_heartbeat_interval: int = 15  # seconds
    stream_max_queue_size: int = 1000

    # Reject subscriptions to event types outside AgentEventType
    strict_event_types: bool = False


# Global settings instance
settings = Settings()
