"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. YAML config file (if specified)
  2. Environment variables (EDS_ prefix)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class AccountSettings(BaseModel):
    """EDS account identity.

    Either ``username`` + ``password`` (UID authentication) or ``ip_auth``
    must be configured. With IP authentication the API never asks for an
    authentication token.
    """

    model_config = ConfigDict(frozen=True)

    username: str | None = Field(default=None, description="EDS API user id (UID authentication)")
    password: str | None = Field(default=None, description="EDS API password (UID authentication)")
    ip_auth: bool = Field(default=False, description="Use IP-based authentication instead of UID")
    profile: str | None = Field(default=None, description="Default EDS profile for new sessions")
    org_id: str | None = Field(default=None, description="Organization the requests are made for")
    guest: str = Field(default="y", description="Guest flag sent on session creation ('y' or 'n')")

    @field_validator("guest", mode="before")
    @classmethod
    def _normalize_guest(cls, v: object) -> str:
        """Accept booleans from YAML/env as well as 'y'/'n'."""
        if isinstance(v, bool):
            return "y" if v else "n"
        return str(v).strip().lower()[:1] or "y"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)


class ApiSettings(BaseModel):
    """Remote API endpoints and transport options."""

    base_url: str = Field(default="https://eds-api.ebscohost.com", description="EDS REST API base URL")
    auth_url: str = Field(
        default="https://eds-api.ebscohost.com/authservice/rest/UIDAuth",
        description="UID authentication endpoint",
    )
    interface_id: str = Field(default="edsbackend", description="InterfaceId reported on authentication")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    token_safety_margin: int = Field(
        default=300,
        ge=0,
        description="Seconds before expiry at which a cached authentication token is treated as expired",
    )


class CacheSettings(BaseModel):
    """Credential cache configuration."""

    backend: str = Field(default="memory", description="Cache backend: memory, redis")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    key_prefix: str = Field(default="", description="Prefix applied to every cache key")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")
    debug_tracing: bool = Field(
        default=False,
        description="Trace token values and request parameters through the backend debug logger",
    )


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the EDS_ prefix.
    Nested settings use double underscores: EDS_ACCOUNT__PROFILE=edsapi

    Example:
        EDS_ACCOUNT__USERNAME=apiuser
        EDS_ACCOUNT__PASSWORD=secret
        EDS_API__TIMEOUT=10
    """

    model_config = {
        "env_prefix": "EDS_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    account: AccountSettings = Field(default_factory=AccountSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Sections present in the YAML file are passed as init arguments, so they
        win over environment variables for the same section.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
