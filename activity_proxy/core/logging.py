"""Logging configuration for the activity proxy."""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "activity_proxy"

STANDARD_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)

# Third-party loggers that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


def _generate_timestamped_filename(log_file: str) -> str:
    """Generate a timestamped log filename.

    Args:
        log_file: Original log file path

    Returns:
        Timestamped log file path with format: {name}_{YYYYMMDD_HHMMSS}.{ext}
    """
    log_path = Path(log_file)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix}")


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        # Structured output for containers and log shippers
        return logging.Formatter(JSON_FORMAT)
    return logging.Formatter(STANDARD_FORMAT)


def setup_logging(level: str = "INFO", format_type: str = "standard",
                  log_file: Optional[str] = None, max_file_size_mb: int = 100,
                  backup_count: int = 10) -> logging.Logger:
    """Set up logging for the proxy process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Format type ("standard" or "json")
        log_file: Optional path to log file. If provided, enables file logging with rotation
        max_file_size_mb: Maximum size of each log file in MB before rotation
        backup_count: Number of rotated log files to keep

    Returns:
        The application's root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = _build_formatter(format_type)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            timestamped_log_file = _generate_timestamped_filename(log_file)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=timestamped_log_file,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            logging.getLogger(f"{ROOT_LOGGER_NAME}.logging").info(
                f"File logging enabled: {timestamped_log_file} "
                f"(max: {max_file_size_mb}MB, backups: {backup_count})"
            )
        except OSError as e:
            # Console logging keeps working without the file handler
            logging.getLogger(f"{ROOT_LOGGER_NAME}.logging").warning(
                f"Failed to setup file logging to {log_file}: {e}"
            )

    # Keep library chatter out of DEBUG runs unless explicitly asked for
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return logging.getLogger(ROOT_LOGGER_NAME)


def setup_logging_from_config(config) -> logging.Logger:
    """Reconfigure logging from a loaded Config object."""
    return setup_logging(
        level=config.log_level,
        format_type=config.log_format,
        log_file=config.log_file,
        max_file_size_mb=config.log_max_file_size_mb,
        backup_count=config.log_backup_count
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance under the activity_proxy namespace
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
