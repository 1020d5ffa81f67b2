"""
Logging Configuration
Structured logging with loguru
Source: https://github.com/Delgan/loguru
Verified: 2025-11-14
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger

if TYPE_CHECKING:
    from src.core.config import ClaimsEngineSettings


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure engine logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_logs: Whether to output JSON format (useful for production)

    Evidence: Loguru provides structured logging with better DX than stdlib logging
    Source: https://loguru.readthedocs.io/en/stable/api/logger.html
    Verified: 2025-11-14
    """

    # Remove default logger
    logger.remove()

    if json_logs:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=level,
            colorize=True,
            filter=_default_name,
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}",
            level=level,
            serialize=json_logs,
            filter=_default_name,
        )

    logger.info(f"Logging configured: level={level}, json_logs={json_logs}")


def configure_from_settings(settings: Optional["ClaimsEngineSettings"] = None) -> None:
    """
    Configure logging from CLAIMS_LOG_* settings.

    Args:
        settings: Engine settings; the cached instance is used when omitted
    """
    if settings is None:
        from src.core.config import get_claims_engine_settings

        settings = get_claims_engine_settings()
    setup_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE, json_logs=settings.LOG_JSON)


def _default_name(record) -> bool:  # type: ignore[no-untyped-def]
    """Fill extra[name] for records logged without get_logger."""
    record["extra"].setdefault("name", record["name"])
    return True


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance

    Example:
        >>> from src.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Claims engine ready")
    """
    return logger.bind(name=name)
