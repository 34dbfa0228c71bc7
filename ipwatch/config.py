from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from IPWATCH_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="IPWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # HTTP status surface
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # Upstream services
    lookup_url: str = Field(default="https://ipinfo.io/json", description="External address lookup endpoint")
    map_url: str = Field(default="https://staticmap.thisipcan.cyou/", description="Static map image endpoint")
    flag_url_template: str = Field(
        default="https://flagicons.lipis.dev/flags/4x3/{country_code}.svg",
        description="Flag image endpoint, {country_code} is substituted in lower case",
    )
    request_timeout_seconds: float = 10.0

    # Scheduling, be friendly to the lookup service
    refresh_interval_seconds: float = 60.0
    network_debounce_seconds: float = 4.0

    # Where downloaded map and flag images are written
    asset_dir: Path = Path("assets")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator("refresh_interval_seconds", "network_debounce_seconds", "request_timeout_seconds")
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("intervals and timeouts must be positive")
        return value


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
