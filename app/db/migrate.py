"""
Ordered SQL migrations, applied exactly once across concurrently starting instances.

All work happens in one transaction guarded by a transaction-scoped PostgreSQL
advisory lock (pg_advisory_xact_lock): the lock is released automatically on
COMMIT or ROLLBACK, so a crashed instance can never leak it. Instances that
lose the race block on the lock, then find nothing pending.
"""
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List

from sqlalchemy import insert, select, text
from sqlalchemy.engine import Connection, Engine

from app.core.config import get_settings
from app.core.database import build_engine
from app.core.exceptions import ConfigurationError, MigrationError
from app.core.logger import configure_logging, get_logger
from app.db.models import Base, MigrationRecord

logger = get_logger("migrations")

ADVISORY_LOCK_KEY = 7_777_777

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


@dataclass(frozen=True)
class MigrationFile:
    name: str
    path: Path

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def list_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> List[MigrationFile]:
    """Returns the *.sql files sorted by name, so numeric prefixes define the order."""
    return [
        MigrationFile(name=path.name, path=path)
        for path in sorted(Path(migrations_dir).glob("*.sql"), key=lambda p: p.name)
    ]


def _acquire_lock(connection: Connection) -> None:
    # SQLite (used in tests) has no advisory locks and serializes writers anyway
    if connection.dialect.name != "postgresql":
        logger.debug("Advisory lock skipped for dialect %s", connection.dialect.name)
        return
    connection.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": ADVISORY_LOCK_KEY})


def _is_applied(connection: Connection, name: str) -> bool:
    query = select(MigrationRecord.id).where(MigrationRecord.name == name)
    return connection.execute(query).first() is not None


def run_migrations(engine: Engine, migrations_dir: Path = MIGRATIONS_DIR) -> List[str]:
    """
    Applies pending migrations in order and returns the names applied by this call.
    Raises MigrationError after rolling back everything if any step fails.
    """
    applied: List[str] = []
    current = MigrationRecord.__tablename__

    try:
        with engine.begin() as connection:
            _acquire_lock(connection)
            Base.metadata.create_all(connection, tables=[MigrationRecord.__table__])

            for migration in list_migrations(migrations_dir):
                current = migration.name
                if _is_applied(connection, migration.name):
                    continue

                # no_parameters: pass the body verbatim so literal '%' is never treated as a placeholder
                connection.exec_driver_sql(migration.read_sql(), execution_options={"no_parameters": True})
                connection.execute(insert(MigrationRecord).values(name=migration.name))
                applied.append(migration.name)
                logger.info("Applied migration: %s", migration.name)
    except Exception as exc:
        logger.error("Migration failed, rolled back: %s", current, exc_info=True)
        raise MigrationError(current, exc) from exc

    if not applied:
        logger.info("No pending migrations")
    return applied


def main() -> int:
    """Stand-alone entry point: `python -m app.db.migrate`."""
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        configure_logging()
        logger.error(str(exc))
        return 1

    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    if not settings.DATABASE_URL:
        logger.error("DATABASE_URL is not set; nothing to migrate")
        return 1

    engine = build_engine(settings.DATABASE_URL)
    try:
        run_migrations(engine)
    except MigrationError:
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
