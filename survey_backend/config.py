"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./survey.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    allowed_origins: str = ""  # Comma-separated CORS origins

    # Organizational survey scoring
    organizational_category_count: int = 8
    category_score_cap: float = 100.0

    # Growth survey scoring
    growth_pass_threshold: float = 0.85  # Average option score needed to award the question weight
    default_growth_weight: float = 1.0  # Weight used when a question has none configured

    # Store access
    store_timeout_seconds: float = 10.0
    store_retry_attempts: int = 3
    store_retry_base_delay_seconds: float = 0.2
    store_retry_max_delay_seconds: float = 2.0

    # Caching
    category_scores_cache_ttl_seconds: float = 120.0

    def get_allowed_origins(self) -> list[str]:
        """Parse comma-separated CORS origins, defaulting to the frontend URL."""
        origins = [item.strip() for item in self.allowed_origins.split(",") if item.strip()]
        return origins or [self.frontend_url]

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate scoring and store settings, then normalize the database URL."""
        if not 0 < self.growth_pass_threshold <= 1:
            raise ValueError("growth_pass_threshold must be within (0, 1]")

        if self.category_score_cap <= 0:
            raise ValueError("category_score_cap must be positive")

        if not 1 <= self.organizational_category_count <= 8:
            raise ValueError("organizational_category_count must be between 1 and 8 (summary table columns)")

        if self.store_retry_attempts < 0:
            raise ValueError("store_retry_attempts cannot be negative")

        if self.store_timeout_seconds <= 0:
            raise ValueError("store_timeout_seconds must be positive")

        self.database_url = normalize_database_url(self.database_url)
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def normalize_database_url(url: str) -> str:
    """Force async drivers: ``postgres://``/``postgresql://`` -> asyncpg, ``sqlite://`` -> aiosqlite."""
    logger = logging.getLogger(__name__)
    if not url:
        logger.warning("Empty DATABASE_URL, using SQLite fallback")
        return SQLITE_LOCAL_URL

    try:
        parsed: URL = make_url(url)
    except Exception as e:
        logger.error(f"Failed to parse DATABASE_URL ({e}); falling back to default sqlite database")
        return SQLITE_LOCAL_URL

    drivername = parsed.drivername
    if drivername.startswith("postgres") and "+asyncpg" not in drivername:
        parsed = parsed.set(drivername="postgresql+asyncpg")
        logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")
    elif drivername == "sqlite":
        parsed = parsed.set(drivername="sqlite+aiosqlite")
        logger.info("Driver normalized: sqlite -> sqlite+aiosqlite")

    # render_as_string re-encodes special characters in the password
    return parsed.render_as_string(hide_password=False)
