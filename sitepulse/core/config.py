"""Configuration management for SitePulse."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from sitepulse.core.exceptions import ConfigurationError

DEFAULT_CONTENT_PREFIXES = ["/blog/", "/apps/", "/about", "/tags"]


class SitePulseConfig(BaseSettings):
    """
    Configuration for SitePulse.

    Can be loaded from:
    - Environment variables (prefix: SITEPULSE_)
    - YAML file
    - Direct initialization

    Example:
        >>> config = SitePulseConfig(api_token="...", zone_id="abc123")
        >>> config = SitePulseConfig.from_yaml("sitepulse.yaml")
        >>> config = SitePulseConfig()
    """

    model_config = SettingsConfigDict(
        env_prefix="SITEPULSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )

    api_token: str | None = Field(
        default=None,
        description="Cloudflare API token with Analytics:Read and Zone:Read",
    )
    zone_id: str | None = Field(
        default=None,
        description="Cloudflare zone tag (resolved from domain when missing)",
    )
    domain: str | None = Field(
        default=None,
        description="Site domain, used to look up the zone",
    )
    account_id: str | None = Field(
        default=None,
        description="Cloudflare account ID (Pages deployments)",
    )
    project_name: str | None = Field(
        default=None,
        description="Cloudflare Pages project name",
    )

    api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare API base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum retries for REST lookups (GraphQL is never retried)",
    )

    breakdown_chunk_days: int = Field(
        default=5,
        ge=1,
        description="Number of one-day sub-windows per breakdown query",
    )
    max_query_fields: int = Field(
        default=12,
        ge=2,
        description="Maximum named fields allowed in one GraphQL query",
    )
    breakdown_max_window_seconds: int = Field(
        default=86400,
        ge=3600,
        description="Widest time window accepted by httpRequestsAdaptiveGroups",
    )

    path_limit: int = Field(default=10, ge=1, description="Paths fetched per sub-window")
    engagement_path_limit: int = Field(
        default=50,
        ge=1,
        description="Paths fetched per sub-window in engagement mode (filtered afterwards)",
    )
    country_limit: int = Field(default=10, ge=1, description="Countries fetched per sub-window")
    top_n: int = Field(default=10, ge=1, description="Entries kept per breakdown list")

    content_prefixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTENT_PREFIXES),
        description="Path prefixes counted as content in engagement mode",
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so endpoint paths can be appended."""
        return v.rstrip("/")

    @field_validator("content_prefixes")
    @classmethod
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        """Every prefix must be an absolute path."""
        for prefix in v:
            if not prefix.startswith("/"):
                raise ValueError(f"content prefix must start with '/': {prefix!r}")
        return v

    def validate_breakdown_budget(self) -> None:
        """
        Check that one breakdown query fits under the field cap.

        Each sub-window contributes a paths alias and a countries alias.

        Raises:
            ConfigurationError: If 2 * breakdown_chunk_days exceeds max_query_fields
        """
        fields_needed = 2 * self.breakdown_chunk_days
        if fields_needed > self.max_query_fields:
            raise ConfigurationError(
                f"breakdown_chunk_days={self.breakdown_chunk_days} needs {fields_needed} "
                f"fields per query, above max_query_fields={self.max_query_fields}"
            )

    def require_token(self) -> str:
        """Return the API token or raise if it is not configured."""
        if not self.api_token:
            raise ConfigurationError(
                "Cloudflare API token is not configured (set SITEPULSE_API_TOKEN)"
            )
        return self.api_token

    @classmethod
    def find_config_yaml(cls) -> Path | None:
        """
        Search for a config file in standard locations.

        Search order:
        1. Current working directory
        2. Project root (parent of sitepulse package)
        3. User home directory

        Returns:
            Path to the config file if found, None otherwise
        """
        search_paths = [
            Path.cwd() / "sitepulse.yaml",
            Path(__file__).parent.parent.parent / "sitepulse.yaml",
            Path.home() / ".sitepulse" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> SitePulseConfig:
        """
        Load configuration from YAML file.

        Environment variables take priority over values in the file.

        Args:
            path: Path to YAML configuration file. If None, searches standard locations.

        Returns:
            SitePulseConfig instance

        Raises:
            FileNotFoundError: If no file is found
        """
        if path is None:
            path = cls.find_config_yaml()
            if path is None:
                raise FileNotFoundError(
                    "Config file not found. Searched:\n"
                    "  1. ./sitepulse.yaml\n"
                    "  2. <project_root>/sitepulse.yaml\n"
                    "  3. ~/.sitepulse/config.yaml"
                )
        else:
            path = Path(path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        result_data = {}

        for key, value in yaml_data.items():
            env_key = f"SITEPULSE_{key.upper()}"
            if env_key in os.environ:
                continue
            result_data[key] = value

        return cls(**result_data)

    def to_yaml(self, path: Path | str) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to save YAML configuration
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def __repr__(self) -> str:
        """String representation of config (token redacted)."""
        token = "set" if self.api_token else "unset"
        return (
            f"SitePulseConfig(zone_id={self.zone_id!r}, domain={self.domain!r}, token={token})"
        )
