"""Application configuration using pydantic-settings."""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOCAL_BACKEND_DEFAULT = "http://localhost:3000"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Sentinel Console"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Revenue-management REST backend (configs, PMS sync, portfolio metrics)
    backend_api_url: str = _LOCAL_BACKEND_DEFAULT
    backend_api_timeout_seconds: float = 30.0

    # Rule template defaults, overridable per deployment
    default_guardrail_max: str = "400"
    default_rate_freeze_period: str = "2"
    default_monthly_min_rate: str = "100"
    default_aggression: str = "medium"
    default_floor_rate: str = "90"
    default_floor_days: str = "7"
    default_floor_dow: list[str] = ["sun", "mon"]
    default_differential_percent: str = "15"

    # Risk quadrant thresholds
    occupancy_threshold: float = 60.0
    pressure_threshold: float = 115.0

    # Frontend
    frontend_url: str = "http://localhost:5173"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    @model_validator(mode="after")
    def _ensure_frontend_in_cors(self) -> "Settings":
        """Ensure the configured frontend_url is always in cors_origins."""
        if self.frontend_url and self.frontend_url not in self.cors_origins:
            self.cors_origins.append(self.frontend_url)
        return self

    @model_validator(mode="after")
    def _validate_backend_url(self) -> "Settings":
        """Reject the localhost backend in production."""
        if self.environment == "production" and self.backend_api_url == _LOCAL_BACKEND_DEFAULT:
            raise ValueError(
                "BACKEND_API_URL must point at the revenue-management backend in production."
            )
        return self

    @property
    def normalized_backend_url(self) -> str:
        """Backend base URL without a trailing slash."""
        return self.backend_api_url.rstrip("/")


settings = Settings()
