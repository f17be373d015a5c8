"""Utility modules for the Polynance client.

Sub-modules:
- logging: configure_logging() for structlog setup
- parsing: JSON/float/bool helpers for API payloads
- formatting: as_context() to flatten results into readable lines
"""

from .formatting import as_context
from .logging import configure_logging

__all__ = [
    "as_context",
    "configure_logging",
]
