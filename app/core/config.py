"""
Centralized application configuration implementing the 12-Factor App methodology.
Environment variables are validated once at startup; invalid production
configuration aborts the process instead of starting in a degraded state.
"""
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.exceptions import ConfigurationError

DEFAULT_THROTTLE_TTL = 60_000
DEFAULT_THROTTLE_LIMIT = 100

VALIDATION_HEADER = "Environment validation failed:"


def _parse_int(value: Any) -> Optional[int]:
    """Strict integer parsing: rejects floats, blanks and non-numeric strings."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _validate_formats(config: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []

    jwt_secret = config.get("JWT_SECRET")
    if jwt_secret and isinstance(jwt_secret, str) and len(jwt_secret) < 32:
        errors.append("JWT_SECRET must be at least 32 characters")

    database_url = config.get("DATABASE_URL")
    if database_url and isinstance(database_url, str):
        if not database_url.startswith(("postgres://", "postgresql://")):
            errors.append("DATABASE_URL must start with postgres:// or postgresql://")

    if config.get("PORT") is not None:
        port = _parse_int(config["PORT"])
        if port is None or not 1 <= port <= 65535:
            errors.append("PORT must be a valid port number (1-65535)")

    for key in ("THROTTLE_TTL", "THROTTLE_LIMIT"):
        if config.get(key) is not None:
            number = _parse_int(config[key])
            if number is None or number < 1:
                errors.append(f"{key} must be a positive integer")

    return errors


def validate_environment(config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validates raw environment values and applies throttling defaults.
    Every rule is evaluated; all violations are reported together in one ConfigurationError.
    """
    errors: List[str] = []
    node_env = config.get("NODE_ENV")
    is_production = (node_env if isinstance(node_env, str) else "development") == "production"

    if is_production and not config.get("JWT_SECRET"):
        errors.append("JWT_SECRET is required in production")

    if is_production and not config.get("DATABASE_URL"):
        errors.append("DATABASE_URL is required in production")

    errors.extend(_validate_formats(config))

    if errors:
        raise ConfigurationError(VALIDATION_HEADER + "".join(f"\n  - {error}" for error in errors))

    validated = dict(config)
    for key, default in (("THROTTLE_TTL", DEFAULT_THROTTLE_TTL), ("THROTTLE_LIMIT", DEFAULT_THROTTLE_LIMIT)):
        value = config.get(key)
        validated[key] = default if value is None else _parse_int(value)
    return validated


class Settings(BaseSettings):
    """Immutable configuration schema backed by environment variables."""

    NODE_ENV: str = "development"
    APP_NAME: str = "hello-service"
    APP_VERSION: str = "1.0.0"
    PORT: int = 3001

    # PostgreSQL connection; absent means the service runs without a database
    DATABASE_URL: Optional[str] = None

    # HS256 signing secret for bearer tokens
    JWT_SECRET: Optional[str] = None

    # Rate limit window (milliseconds) and request budget per window
    THROTTLE_TTL: int = DEFAULT_THROTTLE_TTL
    THROTTLE_LIMIT: int = DEFAULT_THROTTLE_LIMIT

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None
    OTEL_SERVICE_NAME: Optional[str] = None
    SERVICE_NAMESPACE: str = "my-application-group"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def check_environment(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return validate_environment(data)
        return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Builds the process-wide settings once. Raises ConfigurationError on invalid input."""
    return Settings()
