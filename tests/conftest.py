from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings, get_settings
from app.core.database import DatabaseService
from app.main import create_app

JWT_SECRET = "x" * 32

ENV_KEYS = (
    "NODE_ENV",
    "APP_NAME",
    "APP_VERSION",
    "PORT",
    "DATABASE_URL",
    "JWT_SECRET",
    "THROTTLE_TTL",
    "THROTTLE_LIMIT",
    "LOG_LEVEL",
    "LOG_JSON",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_SERVICE_NAME",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolates tests from the developer's shell environment."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {"NODE_ENV": "test", "JWT_SECRET": JWT_SECRET, "LOG_JSON": False}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings, database=DatabaseService(None))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
