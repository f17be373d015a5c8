"""Centralized structlog configuration for the Polynance client and scripts."""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with the project-standard processor chain.

    Safe to call multiple times; only the first call takes effect.
    """
    global _configured
    if _configured:
        return
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
    _configured = True
