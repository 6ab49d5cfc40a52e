"""Pydantic configuration models for wirecall."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from platform import release, system
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

LIBRARY_NAME = "wirecall"


def _library_version() -> str:
    from .. import __version__

    return __version__


def _default_app_name() -> str:
    script = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
    return script or "python"


def _expand_env_var(value: Optional[str]) -> Optional[str]:
    """Expand environment variable references in a string.

    Supports $VAR and ${VAR} syntax. Returns original value if
    the env var is not set.
    """
    if value is None:
        return None

    pattern = r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)"

    def replace(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replace, value)


class UserAgentConfig(BaseModel):
    """
    Inputs for the generated User-Agent header.

    Produces strings of the form::

        AppName/AppVersion (BundleId; build:Build; Platform OSVersion) wirecall/1.0.0

    Unset fields fall back to values derived from the running process.
    """

    app_name: str = Field(default_factory=_default_app_name, description="Application name")
    app_version: str = Field("0.0.0", description="Application version")
    bundle_identifier: str = Field("unknown", description="Reverse-DNS application identifier")
    build_number: str = Field("0", description="Application build number")
    platform: str = Field(default_factory=system, description="Operating system name")
    os_version: Optional[str] = Field(
        default_factory=release,
        description="Operating system version (omitted when None)",
    )
    library_version: str = Field(default_factory=_library_version, description="wirecall version")

    model_config = {"extra": "forbid"}

    def user_agent_string(self) -> str:
        """Render the User-Agent header value."""
        os_label = self.platform if not self.os_version else f"{self.platform} {self.os_version}"
        return (
            f"{self.app_name}/{self.app_version} "
            f"({self.bundle_identifier}; build:{self.build_number}; {os_label}) "
            f"{LIBRARY_NAME}/{self.library_version}"
        )


class AuthConfig(BaseModel):
    """Static bearer token used when ``send`` receives no token supplier.

    Supports environment variable expansion using $VAR or ${VAR} syntax,
    e.g. ``token: '$API_TOKEN'``.
    """

    token: Optional[str] = Field(None, description="Bearer token")

    model_config = {"extra": "forbid"}

    def model_post_init(self, __context: object) -> None:
        """Expand environment variables in the token after init."""
        if self.token:
            object.__setattr__(self, "token", _expand_env_var(self.token))


class TransportConfig(BaseModel):
    """Configuration for the aiohttp transport."""

    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    connect_timeout: float = Field(10.0, gt=0, description="Connection timeout in seconds")
    read_timeout: float = Field(30.0, gt=0, description="Socket read timeout in seconds")
    connection_limit: int = Field(100, ge=1, description="Total connection pool size")
    limit_per_host: int = Field(10, ge=1, description="Connections per host")

    model_config = {"extra": "forbid"}


class RetryConfig(BaseModel):
    """Default retry behavior for requests that do not declare a policy."""

    max_retry_count: int = Field(1, ge=0, description="Retries after the first attempt")
    delay: float = Field(1.0, ge=0, description="Seconds between attempts")

    model_config = {"extra": "forbid"}


class NetworkManagerConfig(BaseModel):
    """
    Root configuration model for a NetworkManager.

    Example:
        config = NetworkManagerConfig(
            base_url="https://api.example.com",
            retry=RetryConfig(max_retry_count=3, delay=0.5),
        )

    YAML format:
        base_url: https://api.example.com
        auth:
          token: $API_TOKEN
        transport:
          read_timeout: 60
        retry:
          max_retry_count: 3
    """

    base_url: str = Field(..., description="Base URL all request paths are appended to")
    user_agent: Optional[UserAgentConfig] = Field(None, description="Generated User-Agent settings")
    auth: AuthConfig = Field(default_factory=AuthConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {value}")
        return value.rstrip("/")

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> NetworkManagerConfig:
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> NetworkManagerConfig:
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
