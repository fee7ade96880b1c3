"""
Logging configuration for the BIND control plane API
"""

import logging
import logging.handlers
import sys
from pathlib import Path

from .config import get_settings


def setup_logging():
    """Configure application logging"""

    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    # Create logs directory if it doesn't exist
    if settings.LOG_FILE:
        log_file_path = Path(settings.LOG_FILE)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(settings.LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (if specified)
    if settings.LOG_FILE:
        file_handler = logging.handlers.RotatingFileHandler(
            settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # FastAPI/Uvicorn loggers
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)

    # HTTP client loggers (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # Application-specific loggers
    logging.getLogger("bindadmin.services.bind_service").setLevel(logging.INFO)
    logging.getLogger("bindadmin.namedconf").setLevel(logging.INFO)

    # Security-related events should always be logged
    logging.getLogger("bindadmin.security").setLevel(logging.INFO)

    if settings.DEBUG:
        root_logger.setLevel(logging.DEBUG)
        logging.getLogger("bindadmin").setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name"""
    return logging.getLogger(name)


def get_security_logger() -> logging.Logger:
    """Get security events logger"""
    return logging.getLogger("bindadmin.security")


def get_bind_logger() -> logging.Logger:
    """Get BIND service logger"""
    return logging.getLogger("bindadmin.services.bind_service")


def get_namedconf_logger() -> logging.Logger:
    """Get named.conf lifecycle logger"""
    return logging.getLogger("bindadmin.namedconf")
