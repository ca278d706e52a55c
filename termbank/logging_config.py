"""
Logging configuration for the termbank API server.

Logs to both console and rotating file in logs/ directory.
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access lines for /health probes"""

    def filter(self, record: logging.LogRecord) -> bool:
        return "/health" not in record.getMessage()


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Configure logging for the API server.

    Creates both console and file handlers. Every module logs through
    ``logging.getLogger(__name__)``, so configuring the ``termbank`` logger
    covers the whole package. Log files are stored in
    logs/termbank_YYYYMMDD.log.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    logger = logging.getLogger("termbank")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    # Console handler (less verbose)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    today = datetime.now().strftime("%Y%m%d")
    log_file = log_dir / f"termbank_{today}.log"

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)  # File gets everything
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    # uvicorn keeps its own handlers; only quiet the health probes
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())
    logging.getLogger("uvicorn.error").setLevel(logger.level)

    logger.info("=" * 80)
    logger.info("termbank API Server - Logging initialized")
    logger.info(f"Log file: {log_file}")
    logger.info(f"Log level: {log_level}")
    logger.info("=" * 80)

    return logger
