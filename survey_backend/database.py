"""Database connection and session management."""
import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from survey_backend.config import Settings, get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
is_sqlite = make_url(settings.database_url).drivername.startswith("sqlite")


def build_engine_options(config: Settings) -> dict[str, Any]:
    """Engine keyword arguments for the configured database.

    Hosted PostgreSQL gets TLS and a bounded pool; SQLite uses the driver's
    default pool and no connect arguments.
    """
    options: dict[str, Any] = {
        "echo": config.environment == "development",
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
    if make_url(config.database_url).drivername.startswith("sqlite"):
        return options

    needs_ssl = (
        "heroku" in config.database_url
        or "amazonaws" in config.database_url
        or config.environment == "production"
    )
    options["connect_args"] = {"ssl": "require"} if needs_ssl else {}
    options["pool_size"] = max(1, config.db_pool_size)
    options["max_overflow"] = max(0, config.db_max_overflow)
    logger.debug(f"PostgreSQL engine: ssl={needs_ssl} pool_size={options['pool_size']}")
    return options


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINTs nest inside the session transaction."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


try:
    engine = create_async_engine(settings.database_url, **build_engine_options(settings))
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

if is_sqlite:
    enable_sqlite_savepoints(engine)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """FastAPI dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
