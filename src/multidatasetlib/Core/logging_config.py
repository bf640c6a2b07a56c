"""
Structured logging configuration.

Loggers emit JSON events with an ISO timestamp and the log
level. structlog is configured once, on the first get_logger call,
and the configured level is looked up when an event is emitted,
so importing the library never reads the environment.
"""

import logging

import structlog

from .config import get_config

_METHOD_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_configured = False


def _filter_by_level(logger, method_name: str, event_dict):
    """Drops events below the configured log level."""
    threshold = logging.getLevelName(get_config().log_level)
    if _METHOD_LEVELS.get(method_name, logging.INFO) < threshold:
        raise structlog.DropEvent
    return event_dict


def _configure():
    global _configured
    if _configured:
        return
    structlog.configure(
        processors=[
            _filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """
    Return a module logger instance.

    :param name: Logger name, usually __name__.
    :return: A structlog bound logger.
    """
    _configure()
    return structlog.get_logger(name)
