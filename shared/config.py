"""
Shared configuration management for the YApi MCP Access Layer.

Settings are read from ``YAPI_*`` environment variables (and an optional
``.env`` file). Keyword overrides, e.g. from command-line flags, take
precedence over the environment.
"""

from typing import Any, Optional

from pydantic import Field, ValidationError as PydanticValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError

VALID_LOG_LEVELS = ("debug", "info", "warn", "error")


class YApiSettings(BaseSettings):
    """Resolved settings for reaching a YApi instance."""

    model_config = SettingsConfigDict(
        env_prefix="YAPI_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str
    token: Optional[str] = None
    # Legacy name for the project token, folded into ``token``
    project_token: Optional[str] = Field(default=None, exclude=True)
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)

    log_level: str = "info"
    cache_ttl: int = Field(default=300, ge=0, le=3600)
    request_timeout: float = Field(default=30.0, gt=0)
    metrics_port: Optional[int] = None

    @field_validator("token", "project_token", "username", "password", mode="before")
    @classmethod
    def _blank_as_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(VALID_LOG_LEVELS)}")
        return value

    @model_validator(mode="after")
    def _check_credentials(self) -> "YApiSettings":
        if self.token is None and self.project_token is not None:
            self.token = self.project_token
        if bool(self.username) != bool(self.password):
            raise ValueError("Username and password must be provided together")
        if not self.token and not self.has_credentials:
            raise ValueError("Either a project token or username and password are required")
        return self

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def auth_mode(self) -> str:
        """``token`` whenever a token is configured, otherwise ``credentials``."""
        return "token" if self.token else "credentials"


def load_settings(**overrides: Any) -> YApiSettings:
    """Build settings from the environment, applying non-empty overrides."""
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return YApiSettings(**values)
    except PydanticValidationError as exc:
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            problems.append(f"{location}: {message}" if location else message)
        raise ConfigurationError(
            "; ".join(problems),
            details={"errors": problems}
        ) from exc
