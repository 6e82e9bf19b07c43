"""
Loguru setup for the API and the CLI.

Events are logged as snake_case names with context bound as extras:

    logger.bind(run_key=run_key, status=status).info("run_snapshot_saved")

The API logs one line per event with its extras; the CLI keeps stderr to
level and message so command output stays readable.
"""

import logging
import re
import sys
from typing import Any

from loguru import logger

from app.config import get_settings

API_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"
DEBUG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | {extra}"
)
CLI_FORMAT = "<level>{level: <8}</level> {message}"

# Libraries whose stdlib logging is routed through loguru
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine", "httpx")

# Emitted on every poll iteration / health check; shown only at DEBUG
_CHATTY_MESSAGES = ("/health", "HTTP Request: GET", "task_delay_predicted", "high_risk_task")

# Query-string secrets in upstream request lines and access logs
_SECRET_PARAMS = re.compile(r"(\b(?:token|api_key|access_token)=)[^&\s'\"]+", re.IGNORECASE)


def redact_secrets(message: str) -> str:
    return _SECRET_PARAMS.sub(r"\1***", message)


class InterceptHandler(logging.Handler):
    """Intercept stdlib logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        message = redact_secrets(record.getMessage())
        logger.opt(depth=depth, exception=record.exc_info).log(level, message)


def _chatty_log_filter(record: dict[str, Any]) -> bool:
    """Drop high-frequency messages unless the record is DEBUG."""
    message = record.get("message", "")
    if any(marker in message for marker in _CHATTY_MESSAGES):
        return bool(record["level"].no <= 10)
    return True


def setup_logging(cli: bool = False) -> None:
    """
    Configure loguru.

    Args:
        cli: Compact stderr output for command line use (no stdlib interception)
    """
    settings = get_settings()
    level = "DEBUG" if settings.debug else settings.log_level.upper()

    logger.remove()

    if cli:
        logger.add(sys.stderr, level=level, format=CLI_FORMAT, filter=_chatty_log_filter)
        return

    logger.add(
        sys.stderr,
        level=level,
        format=DEBUG_FORMAT if settings.debug else API_FORMAT,
        filter=None if settings.debug else _chatty_log_filter,
        backtrace=True,
        diagnose=settings.debug,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]


def get_logger(name: str) -> Any:
    """Get a logger bound to a name."""
    return logger.bind(name=name)
