from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# logrus-style level names accepted in LOG_LEVEL
_LEVEL_ALIASES = {
    "trace": "DEBUG",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
    "critical": "CRITICAL",
}


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Logging
    log_level: str = "WARN"

    # Scheduler
    poll_interval: int = Field(default=10, gt=0)  # seconds between evaluation passes

    # Storage check (Docker devicemapper pools)
    enable_storage_check: bool = False
    data_space_threshold: int = Field(default=1000, ge=0)  # bytes
    metadata_space_threshold: int = Field(default=1000, ge=0)  # bytes
    storage_timeout: float = Field(default=10.0, gt=0)  # Docker API call, seconds

    # DNS check
    dns_query_name: str = "rancher-metadata.rancher.internal."
    resolv_conf: str = "/etc/resolv.conf"
    dns_timeout: float = Field(default=5.0, gt=0)

    # Metadata check
    metadata_url: str = "http://169.254.169.250"
    metadata_timeout: float = Field(default=15.0, gt=0)

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 5050

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        level = _LEVEL_ALIASES.get(value.strip().lower())
        if level is None:
            raise ValueError(f"Unknown log level: {value!r}")
        return level


settings = Settings()
