"""
Application configuration with environment-specific secrets management.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Secrets and endpoints:
- CRON_SECRET: shared secret expected as "Bearer <secret>" on cron calls
- BASE_URL / NEXT_PUBLIC_BASE_URL: origin of the football sync API
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Literal
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings
from pydantic import AliasChoices, ConfigDict, Field

from predictions_cron.core.exceptions import ConfigurationError

# Get the project root directory (3 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Allow extra fields from .env
    )

    # Application
    APP_NAME: str = "Predictions Cron API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    # Cron endpoint
    CRON_SECRET: str = ""
    BASE_URL: str = Field(
        default="",
        validation_alias=AliasChoices("BASE_URL", "NEXT_PUBLIC_BASE_URL"),
    )
    FOOTBALL_API_PATH: str = "/api/football"
    COLLABORATOR_TIMEOUT: Optional[float] = None  # None = no client-side timeout
    CRON_REJECT_UNKNOWN_ACTIONS: bool = True

    # In-process scheduler (alternative to an external cron service)
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_TIMEZONE: str = "UTC"
    SCHEDULER_FIXTURES_HOUR: int = 6
    SCHEDULER_LIVE_INTERVAL_MINUTES: int = 5
    SCHEDULER_SETTLE_INTERVAL_MINUTES: int = 10

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE: str = "memory"  # "memory" or "redis"
    REDIS_URL: Optional[str] = None  # Required if using Redis storage

    # CORS - comma-separated string for env var parsing
    CORS_ORIGINS_STR: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Tracing
    TRACING_ENABLED: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_SAMPLING_RATIO: float = 0.1

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get CORS origins with environment-aware defaults."""
        if self.CORS_ORIGINS_STR:
            origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
            if origins:
                if self.is_production() and "*" in origins:
                    logger.warning(
                        "Wildcard CORS origins (*) are not allowed in production. "
                        "Please set explicit origins in CORS_ORIGINS_STR environment variable."
                    )
                    return []
                return origins

        if self.is_production():
            return []

        # Next.js dev server and this API
        return [
            "http://localhost:3000",
            "http://localhost:8001",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8001",
        ]

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    def validate_required_settings(self) -> list[str]:
        """
        Validate settings for the current environment.

        Returns:
            List of problems found (empty if all good)
        """
        problems = []

        if self.BASE_URL and not _is_http_url(self.BASE_URL):
            problems.append("BASE_URL must be an absolute http(s) URL")

        if not self.FOOTBALL_API_PATH.startswith("/"):
            problems.append("FOOTBALL_API_PATH must start with '/'")

        if self.COLLABORATOR_TIMEOUT is not None and self.COLLABORATOR_TIMEOUT <= 0:
            problems.append("COLLABORATOR_TIMEOUT must be positive")

        # The scheduler has no request origin to fall back on
        if self.SCHEDULER_ENABLED and not self.BASE_URL:
            problems.append("BASE_URL is required when SCHEDULER_ENABLED is set")

        if self.RATE_LIMIT_ENABLED and self.RATE_LIMIT_STORAGE == "redis" and not self.REDIS_URL:
            problems.append("REDIS_URL is required for redis rate limit storage")

        return problems


def _is_http_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


@dataclass(frozen=True)
class CronConfig:
    """
    Explicit configuration for the cron orchestrator.

    Built once at startup (usually via ``from_settings``) and handed to
    ``CronOrchestrator`` so that nothing in the request path reads the
    process environment.

    Attributes:
        cron_secret: Shared secret; ``None`` disables the authorization check
        base_url: Origin of the football sync API; ``None`` falls back to
            the origin of the incoming request
        football_api_path: Path of the football sync endpoint
        request_timeout: Client-side timeout in seconds, ``None`` for none
        reject_unknown_actions: Answer 400 for unrecognized selectors
    """

    cron_secret: Optional[str] = None
    base_url: Optional[str] = None
    football_api_path: str = "/api/football"
    request_timeout: Optional[float] = None
    reject_unknown_actions: bool = True

    def __post_init__(self):
        # Compared verbatim against "Bearer <secret>"; only blank means unset
        secret = self.cron_secret if (self.cron_secret or "").strip() else None
        object.__setattr__(self, "cron_secret", secret)

        base_url = (self.base_url or "").strip() or None
        if base_url is not None:
            if not _is_http_url(base_url):
                raise ConfigurationError(f"Invalid base URL: {base_url!r}")
            base_url = base_url.rstrip("/")
        object.__setattr__(self, "base_url", base_url)

        if not self.football_api_path.startswith("/"):
            raise ConfigurationError(
                f"Football API path must start with '/': {self.football_api_path!r}"
            )

        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigurationError("Request timeout must be positive")

    @property
    def auth_enabled(self) -> bool:
        return self.cron_secret is not None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CronConfig":
        """Build a validated orchestrator config from application settings."""
        return cls(
            cron_secret=settings.CRON_SECRET,
            base_url=settings.BASE_URL,
            football_api_path=settings.FOOTBALL_API_PATH,
            request_timeout=settings.COLLABORATOR_TIMEOUT,
            reject_unknown_actions=settings.CRON_REJECT_UNKNOWN_ACTIONS,
        )


def _load_env_file() -> Path:
    """
    Pick the environment file based on the ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
    return default_env


_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = ConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()

# Validate settings on startup
config_problems = settings.validate_required_settings()
if config_problems:
    logger.warning(f"Configuration problems for {settings.ENVIRONMENT}: {'; '.join(config_problems)}")
    if settings.is_production():
        raise ConfigurationError(
            f"Cannot start in production with invalid configuration: {'; '.join(config_problems)}"
        )
