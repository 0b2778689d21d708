"""
Database connection management and connectivity probing.
The service runs with or without a database: when DATABASE_URL is absent no
engine is created and every probe reports "not configured".
"""
import asyncio
import contextlib
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from app.core.exceptions import NotConfiguredError
from app.core.logger import get_logger

logger = get_logger("database")

STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"
STATUS_NOT_CONFIGURED = "not configured"

SHUTDOWN_TIMEOUT_SECONDS = 10.0


@dataclass
class QueryResult:
    rows: List[Mapping[str, Any]] = field(default_factory=list)
    rowcount: int = 0


POSTGRES_SCHEMES = ("postgres://", "postgresql://")
POSTGRES_DRIVER_SCHEME = "postgresql+psycopg2://"


def normalize_database_url(url: str) -> str:
    """Pins PostgreSQL URLs to the psycopg2 driver instead of whatever SQLAlchemy defaults to."""
    for scheme in POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return POSTGRES_DRIVER_SCHEME + url[len(scheme):]
    return url


def build_engine(url: str) -> Engine:
    """Creates a pooled engine. Connections are opened lazily on first checkout."""
    url = normalize_database_url(url)
    if url.startswith("postgresql"):
        return create_engine(
            url,
            pool_size=10,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=30,
            connect_args={
                "connect_timeout": 30,
                "options": "-c statement_timeout=30000",
            },
        )
    # SQLite specific: check_same_thread=False is required for FastAPI's threadpool
    connect_args: Dict[str, Any] = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


class DatabaseService:
    """Owns the connection pool (or its absence) for the lifetime of the application."""

    def __init__(self, database_url: Optional[str], shutdown_timeout: float = SHUTDOWN_TIMEOUT_SECONDS):
        self.engine: Optional[Engine] = build_engine(database_url) if database_url else None
        self.shutdown_timeout = shutdown_timeout

    @property
    def is_configured(self) -> bool:
        """Whether a DATABASE_URL was provided and a pool created."""
        return self.engine is not None

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Executes a statement in its own transaction. Raises NotConfiguredError without a database."""
        if self.engine is None:
            raise NotConfiguredError()
        with self.engine.begin() as connection:
            result = connection.execute(text(sql), dict(params or {}))
            rows = list(result.mappings().all()) if result.returns_rows else []
            return QueryResult(rows=rows, rowcount=result.rowcount)

    def ping(self) -> str:
        """Round-trips `SELECT 1`. Failures are logged and reported as "error", never raised."""
        if self.engine is None:
            return STATUS_NOT_CONFIGURED
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return STATUS_CONNECTED
        except Exception:
            logger.error("Database health check failed", exc_info=True)
            return STATUS_ERROR

    async def close(self) -> None:
        """
        Releases pooled connections, waiting at most `shutdown_timeout` seconds.
        Disposal runs on a daemon thread, so a hung pool can never hold up process exit.
        """
        if self.engine is None:
            return

        loop = asyncio.get_running_loop()
        disposed = asyncio.Event()
        engine = self.engine

        def dispose() -> None:
            try:
                engine.dispose()
            except Exception:
                logger.error("Failed to close database connections", exc_info=True)
            finally:
                # The loop is gone when close() already gave up and asyncio.run returned
                with contextlib.suppress(RuntimeError):
                    loop.call_soon_threadsafe(disposed.set)

        threading.Thread(target=dispose, name="db-pool-dispose", daemon=True).start()
        try:
            await asyncio.wait_for(disposed.wait(), timeout=self.shutdown_timeout)
            logger.info("Database connections closed")
        except asyncio.TimeoutError:
            logger.warning(
                "Pool shutdown timed out after %ss, forcing close", self.shutdown_timeout
            )


def get_database(request: Request) -> DatabaseService:
    """FastAPI dependency returning the application's DatabaseService."""
    return request.app.state.database
