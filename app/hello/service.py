from datetime import datetime, timezone

from app.core.config import Settings
from app.core.database import DatabaseService
from app.hello.schemas import HelloResponse


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_hello(settings: Settings, db: DatabaseService) -> HelloResponse:
    return HelloResponse(
        message="Hello World!",
        env=settings.NODE_ENV,
        app=settings.APP_NAME,
        db=db.ping(),
        timestamp=utc_timestamp(),
    )
