"""Logging setup: console plus rotating files for the app, SQL and API request logs."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
API_LOGGER_NAME = "survey.api"


class SQLTransactionFilter(logging.Filter):
    """Drop BEGIN/COMMIT/ROLLBACK chatter and fold multi-line statements onto one line."""

    NOISE = ("ROLLBACK", "BEGIN", "COMMIT", "generated in")
    STATEMENTS = ("SELECT", "DELETE", "INSERT", "UPDATE")

    def filter(self, record):
        if record.levelno != logging.INFO:
            return True

        message = record.getMessage()
        if any(keyword in message for keyword in self.NOISE):
            return False

        if any(keyword in message for keyword in self.STATEMENTS):
            record.msg = " ".join(message.split())
            record.args = ()
        return True


def _rotating_handler(path: Path, max_bytes: int, backups: int, fmt: str = DEFAULT_FORMAT) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _dedicated_logger(name: str, handler: logging.Handler) -> logging.Logger:
    """Logger writing only to ``handler``, detached from the root handlers."""
    dedicated = logging.getLogger(name)
    dedicated.handlers.clear()
    dedicated.addHandler(handler)
    dedicated.setLevel(logging.INFO)
    dedicated.propagate = False
    return dedicated


def configure_logging(logs_dir: Path = Path("logs")) -> None:
    """Install handlers for ``survey.log``, ``survey_sql.log`` and ``survey_api.log`` under ``logs_dir``."""
    logs_dir.mkdir(exist_ok=True)

    app_handler = _rotating_handler(logs_dir / "survey.log", 1024 * 1024, 5)
    sql_handler = _rotating_handler(logs_dir / "survey_sql.log", 1024 * 1024, 5)
    api_handler = _rotating_handler(
        logs_dir / "survey_api.log", 2 * 1024 * 1024, 10, "%(asctime)s - %(levelname)s - %(message)s"
    )

    # force=True replaces handlers uvicorn installed before import
    logging.basicConfig(level=logging.INFO, format=DEFAULT_FORMAT, handlers=[logging.StreamHandler(), app_handler], force=True)

    _dedicated_logger(API_LOGGER_NAME, api_handler)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.setLevel(logging.INFO)
    if app_handler not in access_logger.handlers:
        access_logger.addHandler(app_handler)

    sql_logger = _dedicated_logger("sqlalchemy.engine.Engine", sql_handler)
    sql_logger.addFilter(SQLTransactionFilter())

    logging.getLogger(__name__).info(f"Logging to {logs_dir.absolute()} (survey.log, survey_sql.log, survey_api.log)")
