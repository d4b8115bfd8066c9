"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    environment: str = "development"

    # Redis (response cache + pre-provisioned OAuth token)
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None

    # Shopify Admin API
    shopify_shop_domain: Optional[str] = None  # e.g. my-store.myshopify.com
    shopify_api_version: str = "2025-01"
    shopify_access_token: Optional[str] = None  # Falls back to the "oauth" key in Redis
    shopify_timeout_seconds: float = 30.0

    # Response cache
    cache_ttl_seconds: int = 600  # 10 minutes

    # Meilisearch
    meili_endpoint: Optional[str] = None
    meili_api_key: Optional[str] = None
    meili_timeout_seconds: float = 30.0

    # Product sync
    sync_page_size: int = 50
    scheduler_timezone: str = "UTC"

    # OpenRouter (OpenAI-compatible API)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_timeout_seconds: float = 120.0

    # Chat assistant
    chat_model: str = "openrouter/optimus-alpha"
    chat_reasoning_effort: str = "high"
    chat_store_name: str = "our yarn shop"
    chat_primary_language: str = "Swedish"
    chat_context_limit: int = 200
    chat_retry_attempts: int = 3
    chat_retry_initial_delay: float = 0.5  # Seconds, doubled on each retry

    # Sentry Error Tracking
    sentry_dsn: Optional[str] = None
    sentry_environment: Optional[str] = None  # Defaults to environment setting

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
