# scheduler/utils/logging_config.py
"""
Simple logging configuration for the Appointment Scheduler.
Provides consistent logging across all modules with proper formatting.
"""

import logging
from datetime import datetime
from pathlib import Path

from scheduler.utils.config import LOG_LEVEL, LOG_TO_FILE

ROOT_LOGGER_NAME = "appointment_scheduler"


def setup_logging(
    log_level: str = LOG_LEVEL, log_to_file: bool = LOG_TO_FILE
) -> logging.Logger:
    """
    Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Whether to log to file in addition to console

    Returns:
        Configured logger instance
    """
    # Create logs directory if it doesn't exist
    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Streamlit re-executes the page script, so never stack handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s() - %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file:
        log_filename = (
            f"logs/{ROOT_LOGGER_NAME}_{datetime.now().strftime('%Y%m%d')}.log"
        )
        file_handler = logging.FileHandler(log_filename)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized - Level: {log_level}, File: {log_to_file}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_error_with_context(logger: logging.Logger, error: Exception, context: str = ""):
    """
    Log error with additional context.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Additional context about what was happening
    """
    error_msg = f"Error: {str(error)}"
    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg, exc_info=True)
