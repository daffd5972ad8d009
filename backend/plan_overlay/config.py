"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    google_maps_api_key: str = ""
    maricopa_assessor_token: str = ""
    planoverlay_env: str = "development"
    planoverlay_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Model routing
    model_cheap: str = "claude-haiku-4-5-20251001"
    model_mid: str = "claude-sonnet-4-5-20250929"
    model_frontier: str = "claude-sonnet-4-5-20250929"

    # Outbound calls
    http_timeout_seconds: float = 20.0
    collaborator_timeout_seconds: float = 120.0
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
