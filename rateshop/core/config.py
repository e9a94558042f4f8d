"""
Application configuration

Settings are read once at startup from the environment (or a .env file)
and handed to carrier constructors as explicit credential structs.
Credentials have no defaults: a missing UPS_CLIENT_ID fails fast with a
ConfigurationError instead of surfacing later as an auth failure.
"""
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rateshop.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# UPS API URLs
UPS_PRODUCTION_URL = "https://onlinetools.ups.com"
UPS_SANDBOX_URL = "https://wwwcie.ups.com"

DEFAULT_RATING_API_VERSION = "v2409"
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_TRANSACTION_SOURCE = "rateshop"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # UPS credentials - NO DEFAULTS (will fail if not set)
    UPS_CLIENT_ID: str
    UPS_CLIENT_SECRET: str
    UPS_ACCOUNT_NUMBER: str

    # UPS endpoints
    UPS_BASE_URL: str = ""  # Leave empty to pick production/sandbox from UPS_USE_SANDBOX
    UPS_USE_SANDBOX: bool = False
    UPS_RATING_API_VERSION: str = DEFAULT_RATING_API_VERSION

    # HTTP
    HTTP_TIMEOUT: float = DEFAULT_HTTP_TIMEOUT  # seconds
    TRANSACTION_SOURCE: str = DEFAULT_TRANSACTION_SOURCE

    LOG_LEVEL: str = "INFO"

    @field_validator("UPS_CLIENT_ID", "UPS_CLIENT_SECRET", "UPS_ACCOUNT_NUMBER")
    @classmethod
    def require_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("UPS_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("HTTP_TIMEOUT")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def ups_base_url(self) -> str:
        if self.UPS_BASE_URL:
            return self.UPS_BASE_URL
        return UPS_SANDBOX_URL if self.UPS_USE_SANDBOX else UPS_PRODUCTION_URL


def load_settings(**overrides: Any) -> Settings:
    """
    Build Settings from the environment, with optional keyword overrides.

    Raises:
        ConfigurationError: naming every missing or malformed variable
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        logger.error(f"Settings validation failed: {'; '.join(problems)}")
        raise ConfigurationError("; ".join(problems)) from e


@dataclass(frozen=True)
class UPSCredentials:
    """UPS API credentials and connection settings."""
    client_id: str
    client_secret: str
    account_number: str
    base_url: str = UPS_PRODUCTION_URL
    rating_api_version: str = DEFAULT_RATING_API_VERSION
    timeout: float = DEFAULT_HTTP_TIMEOUT
    transaction_source: str = DEFAULT_TRANSACTION_SOURCE

    @classmethod
    def from_settings(cls, settings: Settings) -> "UPSCredentials":
        return cls(
            client_id=settings.UPS_CLIENT_ID,
            client_secret=settings.UPS_CLIENT_SECRET,
            account_number=settings.UPS_ACCOUNT_NUMBER,
            base_url=settings.ups_base_url,
            rating_api_version=settings.UPS_RATING_API_VERSION,
            timeout=settings.HTTP_TIMEOUT,
            transaction_source=settings.TRANSACTION_SOURCE,
        )

    def __repr__(self) -> str:
        # Never leak the secret into logs or tracebacks
        return (
            f"UPSCredentials(client_id={self.client_id!r}, client_secret='***', "
            f"account_number={self.account_number!r}, base_url={self.base_url!r})"
        )
