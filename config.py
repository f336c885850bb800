"""Central config loaded from environment variables (prefix MEDASSIST_)."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MEDASSIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Simulated analysis latency
    analysis_delay_seconds: float = 3.0

    # API server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # UI -> API
    backend_url: str = "http://localhost:8000"
    request_timeout: float = 30.0


settings = Settings()

BACKEND_URL = settings.backend_url
REQUEST_TIMEOUT = settings.request_timeout
