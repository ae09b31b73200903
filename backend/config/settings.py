"""
Configuration Management for the catalogue editor
Centralizes all environment-based configuration and settings
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid. Fatal at startup."""
    pass


class PollingRequestFilter(logging.Filter):
    """Filter out routine polling requests from the browser to reduce log noise"""
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()

        # For uvicorn access logs, the message format is:
        # 'IP:PORT - "METHOD /path HTTP/1.1" STATUS'
        if '200' in message and '"GET ' in message:
            # Sync badge polling
            if '/api/sync/status' in message:
                return False
            # Startup status polling
            if '/api/status HTTP' in message:
                return False
            if '/health' in message:
                return False
        return True


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None):
    """Configure application logging, with rotation when a log directory is given"""
    from .paths import DEFAULT_LOG_FILENAME

    level = getattr(logging, (log_level or AppConfig.LOG_LEVEL).upper(), logging.INFO)
    log_dir = log_dir if log_dir is not None else AppConfig.LOG_DIR

    root_logger = logging.getLogger()

    # Close and clear any existing handlers to ensure our logging configuration
    # is used and prevent file descriptor leaks
    for handler in root_logger.handlers[:]:  # Copy list to avoid modification during iteration
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    # Console handler for stdout
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, mode=0o700, exist_ok=True)

        # Max 10MB per file, keep 14 backups
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, DEFAULT_LOG_FILENAME),
            maxBytes=10*1024*1024,  # 10MB
            backupCount=14,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(console_formatter)
        root_logger.addHandler(file_handler)

    # Suppress noisy Uvicorn access logs for polling endpoints
    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.addFilter(PollingRequestFilter())


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ('0', 'false', 'no', 'off' are false)"""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off')


def get_site_repo_path(value: Optional[str] = None) -> str:
    """
    Resolve the site repository working directory.

    Args:
        value: Explicit path; falls back to the SITE_REPO_PATH environment variable

    Returns:
        Absolute path to an existing directory

    Raises:
        ConfigurationError: If the setting is missing, relative, or not a directory
    """
    path = value if value is not None else os.getenv('SITE_REPO_PATH')
    if not path or not path.strip():
        raise ConfigurationError("Missing env var: SITE_REPO_PATH")

    path = path.strip()
    if not os.path.isabs(path):
        raise ConfigurationError(f"SITE_REPO_PATH must be an absolute path: {path}")
    if not os.path.isdir(path):
        raise ConfigurationError(f"SITE_REPO_PATH is not a directory: {path}")
    return path


class AppConfig:
    """Main application configuration"""

    # Server settings
    HOST = os.getenv('CATALOGUE_HOST', '127.0.0.1')
    PORT = int(os.getenv('CATALOGUE_PORT', 3000))

    # Logging
    LOG_LEVEL = os.getenv('CATALOGUE_LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('CATALOGUE_LOG_DIR') or None

    # Git
    GIT_TIMEOUT = int(os.getenv('CATALOGUE_GIT_TIMEOUT', 300))
    STARTUP_PULL = _env_flag('CATALOGUE_STARTUP_PULL', True)

    # Browser assets
    STATIC_DIR = os.getenv('CATALOGUE_STATIC_DIR') or None

    @classmethod
    def validate(cls):
        """Validate configuration"""
        if cls.PORT < 1 or cls.PORT > 65535:
            raise ConfigurationError(f"Invalid port: {cls.PORT}")

        if cls.GIT_TIMEOUT < 1:
            raise ConfigurationError(f"Git timeout must be at least 1 second: {cls.GIT_TIMEOUT}")

        if cls.STATIC_DIR and not os.path.isdir(cls.STATIC_DIR):
            raise ConfigurationError(f"Static directory does not exist: {cls.STATIC_DIR}")

        return True
