"""Configuration and environment settings for the document import service."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the document import service."""

    gemini_api_key: str = ""
    groq_api_key: str = ""
    default_model: str = "gemini-3.0-flash"
    groq_temperature: float = 0.1
    groq_max_completion_tokens: int = 8192

    database_url: str = "sqlite:///jobs.db"

    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket: str = "financial-uploads"
    signed_url_ttl_seconds: int = 3600

    pages_per_chunk: int = 15
    large_file_bytes: int = 2 * 1024 * 1024
    category_limit: int = 100
    supplier_category_id: int = 69
    fallback_category_id: int = 52

    retry_max_attempts: int = 5
    retry_base_delay: float = 2.0
    worker_pool_size: int = 6

    log_level: str = "INFO"

    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
