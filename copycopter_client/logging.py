"""Logging infrastructure for the Copycopter client.

This module provides a centralized logging configuration and factory
for all client components. Nothing is configured on import; call
:func:`configure_logging` to attach a handler.

Example:
    >>> from copycopter_client.logging import configure_logging, get_logger
    >>> configure_logging(level=logging.DEBUG)
    >>> logger = get_logger("sync")
    >>> logger.info("Polling started")
"""

import logging
from typing import Optional


COPYCOPTER_ROOT_LOGGER = "copycopter"


class CopycopterLoggerFactory:
    """Factory for creating and managing Copycopter component loggers.

    Provides hierarchical loggers under the 'copycopter' namespace,
    allowing fine-grained control over logging levels per component.
    """

    _configured: bool = False
    _default_level: int = logging.INFO

    @classmethod
    def get_logger(cls, name: str = "") -> logging.Logger:
        """Get a logger for a Copycopter component.

        Args:
            name: Component name (e.g., 'sync', 'client').
                  If empty, returns the root copycopter logger.

        Returns:
            A logger instance for the specified component.
        """
        if name:
            logger_name = f"{COPYCOPTER_ROOT_LOGGER}.{name}"
        else:
            logger_name = COPYCOPTER_ROOT_LOGGER
        return logging.getLogger(logger_name)

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handler: Optional[logging.Handler] = None,
    ) -> logging.Logger:
        """Configure the Copycopter logging system.

        Args:
            level: Logging level (e.g., logging.DEBUG, logging.INFO).
            format_string: Format string for log messages.
            handler: Optional custom handler. If None, a StreamHandler is used.

        Returns:
            The configured root logger.
        """
        logger = logging.getLogger(COPYCOPTER_ROOT_LOGGER)
        logger.setLevel(level)
        cls._default_level = level

        if not logger.handlers:
            if handler is None:
                handler = logging.StreamHandler()
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(handler)

        cls._configured = True
        return logger

    @classmethod
    def set_level(cls, level: int, component: str = "") -> None:
        """Set logging level for a specific component or the root logger."""
        cls.get_logger(component).setLevel(level)

    @classmethod
    def disable(cls) -> None:
        """Silence all Copycopter logging."""
        logging.getLogger(COPYCOPTER_ROOT_LOGGER).disabled = True

    @classmethod
    def enable(cls) -> None:
        logging.getLogger(COPYCOPTER_ROOT_LOGGER).disabled = False

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured


def get_logger(name: str = "") -> logging.Logger:
    """Get a Copycopter logger for a component.

    Args:
        name: Component name (e.g., 'sync', 'backend').

    Returns:
        Logger instance for the component.
    """
    return CopycopterLoggerFactory.get_logger(name)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Configure the Copycopter logging system.

    This is the primary entry point for setting up logging.
    """
    return CopycopterLoggerFactory.configure(level, format_string, handler)


def set_level(level: int, component: str = "") -> None:
    """Set logging level for a component, or the root logger if empty."""
    CopycopterLoggerFactory.set_level(level, component)
