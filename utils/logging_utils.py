# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
import logging
import sys
import os
from typing import Optional
from datetime import datetime

import pytz

# Constants for logging
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEBUG_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s [%(filename)s:%(lineno)d]'
DEFAULT_TIMEZONE = 'Europe/Berlin'

# Global debug status (None = not yet read from the environment)
_debug_mode_enabled = None
_timezone_name = None


def _env_flag(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def is_debug_mode_enabled() -> bool:
    """
    Checks if debug mode is enabled.

    The value is read once from ``UMBRA_DEBUG_MODE`` and can be overridden at
    runtime with :func:`set_debug_mode`.

    Returns:
        bool: True if debug mode is enabled, otherwise False
    """
    global _debug_mode_enabled

    if _debug_mode_enabled is None:
        _debug_mode_enabled = _env_flag(os.environ.get('UMBRA_DEBUG_MODE', 'false'))
    return _debug_mode_enabled


def set_debug_mode(enabled: bool) -> None:
    """Override the debug flag (e.g. from the loaded configuration)."""
    global _debug_mode_enabled

    previous = _debug_mode_enabled
    _debug_mode_enabled = bool(enabled)
    if previous != _debug_mode_enabled:
        logger = logging.getLogger('umbra.config')
        if _debug_mode_enabled:
            logger.info("Debug mode has been ENABLED - DEBUG messages will be displayed")
        else:
            logger.info("Debug mode has been DISABLED - DEBUG messages will be suppressed")


def set_log_timezone(timezone_name: Optional[str]) -> None:
    """Set the timezone used by :class:`TimezoneFormatter` (None = environment/default)."""
    global _timezone_name
    _timezone_name = timezone_name


# A filter that only allows DEBUG logs when debug mode is enabled
class DebugModeFilter(logging.Filter):
    """
    Filter that only allows DEBUG messages when debug mode is enabled.
    INFO and higher levels are always allowed.
    """
    def filter(self, record):
        if record.levelno < logging.INFO:
            return is_debug_mode_enabled()
        return True


# A custom formatter class that uses the configured timezone
class TimezoneFormatter(logging.Formatter):
    """
    A custom formatter that uses the configured timezone for timestamps in logs.
    """
    def __init__(self, fmt=None, datefmt=None, tz=None):
        super().__init__(fmt, datefmt)
        self.tz = tz

    def formatTime(self, record, datefmt=None):
        """
        Overrides the formatTime method to use the configured timezone.
        """
        if datefmt is None:
            datefmt = self.datefmt or '%Y-%m-%d %H:%M:%S'

        try:
            tz = self.tz
            if tz is None:
                timezone_str = _timezone_name or os.environ.get('UMBRA_TIMEZONE', DEFAULT_TIMEZONE)
                tz = pytz.timezone(timezone_str)

            dt = datetime.fromtimestamp(record.created, tz)
            return dt.strftime(datefmt) + f" {dt.tzname()}"
        except pytz.exceptions.UnknownTimeZoneError:
            # Fall back to standard formatting on unknown zones
            return super().formatTime(record, datefmt)


def setup_logger(name: str, level=logging.INFO, log_to_console=True, custom_formatter=None) -> logging.Logger:
    """
    Creates a logger with the specified name and logging level.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_to_console: Whether to output logs to console
        custom_formatter: Optional custom formatter for the logs

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers in case of re-initialization
    if logger.handlers:
        return logger

    if custom_formatter is None:
        if level <= logging.DEBUG:
            formatter = TimezoneFormatter(DEBUG_LOG_FORMAT)
        else:
            formatter = TimezoneFormatter(DEFAULT_LOG_FORMAT)
    else:
        formatter = custom_formatter

    # Console handler (stdout)
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(DebugModeFilter())
        logger.addHandler(console_handler)

    return logger


def setup_all_loggers(level: int = logging.INFO) -> logging.Logger:
    """
    Configures the project root logger so every ``umbra.*`` logger inherits it.

    Args:
        level: Log level for the root project logger

    Returns:
        The configured ``umbra`` logger
    """
    root_logger = setup_logger('umbra', level)

    if is_debug_mode_enabled():
        root_logger.info("Debug mode is enabled - DEBUG messages will be displayed")
    else:
        root_logger.debug("Debug mode is disabled - DEBUG messages will be suppressed")

    return root_logger


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Central logger factory with consistent configuration.

    Args:
        name: Logger name (e.g. 'umbra.module_name')
        level: Optional log level override

    Returns:
        Configured logger
    """
    if level is None:
        level = logging.DEBUG if is_debug_mode_enabled() else logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger


def get_module_logger(module_name: str) -> logging.Logger:
    """Creates a logger for a module with the umbra. prefix."""
    return get_logger(f'umbra.{module_name}')
