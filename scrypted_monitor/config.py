"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Dict, List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Logging
    log_level: str = "INFO"

    # Task configuration store (empty URL keeps the store in memory)
    redis_url: str = "redis://localhost:6379/0"
    config_store_key: str = "scrypted_monitor:config"

    # Reconciler
    reconcile_interval_seconds: float = 15.0
    timezone: str = "UTC"

    # Host bridge (device/plugin registry, diagnostics, restarts)
    host_bridge_url: str = "http://localhost:10080/monitor"
    host_bridge_token: str = ""
    host_bridge_timeout: int = 30

    # Home Assistant
    home_assistant_url: str = "http://homeassistant.local:8123"
    home_assistant_token: str = ""
    home_assistant_timeout: int = 10

    # npm registry
    npm_registry_url: str = "https://registry.npmjs.org"
    package_cache_ttl_seconds: int = 60  # Per-package response cache

    # Notifications
    notifier_urls: Dict[str, str] = {}  # Target name -> webhook URL
    default_notifier: str = ""
    notification_timeout: int = 10

    # Package name of this plugin inside Scrypted
    self_package_name: str = "@apocaliss92/scrypted-monitor"

    @property
    def self_package_names(self) -> List[str]:
        """Packages whose restart would take this process down with them."""
        return [self.self_package_name, "@scrypted/core"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
