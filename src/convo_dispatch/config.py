"""Configuration management for the daily dispatch job."""

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseSettings):
    """Job settings, loaded from env vars and optionally overridden by a YAML config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Analysis endpoint
    analysis_endpoint: str = ""
    analysis_api_key: str = ""
    http_timeout_seconds: float = 30.0
    client_max_retries: int = Field(default=1, ge=1)
    client_backoff_seconds: float = 1.0
    dispatch_max_concurrency: int = Field(default=1, ge=1)

    # Source data
    db_path: Path = Field(default=Path("data.db"))
    timezone: str = "Asia/Jerusalem"
    include_sender: bool = False
    normalize_conv_ids: bool = True

    # Selection
    min_candidates: int = Field(default=3, ge=0)
    priority_conv_ids: list[str] = Field(default_factory=list)

    # Output
    output_dir: Path = Field(default=Path("runs"))
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the timezone names a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    @classmethod
    def from_yaml(cls, config_path: str | Path, **overrides) -> "Settings":
        """Load settings from a YAML config file, with env vars and overrides applied on top."""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_config = yaml.safe_load(f) or {}
        else:
            yaml_config = {}
        merged = {**yaml_config, **overrides}
        try:
            return cls(**merged)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc

    def require_endpoint(self) -> str:
        """Return the analysis endpoint, raising when it is not configured."""

        endpoint = self.analysis_endpoint.strip()
        if not endpoint:
            raise ConfigurationError("Missing ANALYSIS_ENDPOINT env var")
        return endpoint

    def auth_headers(self) -> dict[str, str]:
        """Build outbound request headers for the analysis endpoint."""

        headers = {"content-type": "application/json"}
        api_key = self.analysis_api_key.strip()
        if api_key:
            headers["authorization"] = f"Bearer {api_key}"
        return headers

    def resolved_priority_conv_ids(self) -> set[str]:
        """Return statically configured priority conversation ids."""

        return {item.strip() for item in self.priority_conv_ids if item and item.strip()}
