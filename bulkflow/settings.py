from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportMode(str, Enum):
    MEMORY = "memory"
    HTTP = "http"


class Settings(BaseSettings):
    app_name: str = Field("Bulkflow Orders", alias="APP_NAME")
    transport_mode: TransportMode = Field(TransportMode.MEMORY, alias="TRANSPORT_MODE")
    backend_base_url: str = Field("http://localhost:8000", alias="BACKEND_BASE_URL")
    backend_timeout_seconds: float = Field(30.0, alias="BACKEND_TIMEOUT_SECONDS")
    backend_api_token: Optional[str] = Field(None, alias="BACKEND_API_TOKEN")
    default_currency: str = Field("INR", alias="DEFAULT_CURRENCY", min_length=3, max_length=3)
    seed_path: Optional[str] = Field(None, alias="SEED_PATH")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_allow_origins: str = Field("*", alias="CORS_ALLOW_ORIGINS")
    request_id_header: str = Field("X-Request-Id", alias="REQUEST_ID_HEADER")
    otel_enabled: bool = Field(False, alias="OTEL_ENABLED")
    otel_service_name: str = Field("bulkflow", alias="OTEL_SERVICE_NAME")
    otel_exporter_otlp_endpoint: Optional[str] = Field(None, alias="OTEL_EXPORTER_OTLP_ENDPOINT")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


def resolve_env_file() -> Optional[Path]:
    explicit = os.getenv("BULKFLOW_ENV_FILE")
    if explicit:
        return Path(explicit)
    default = Path.cwd() / "config" / "api.env"
    if default.exists():
        return default
    return None


def load_settings() -> Settings:
    env_file = resolve_env_file()
    if env_file:
        return Settings(_env_file=str(env_file))
    return Settings()
