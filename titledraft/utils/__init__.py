"""
Utilities package for titledraft.

Exports shared helpers for logging and scheduling. Keep this package
lightweight and free of domain-specific logic.
"""

from titledraft.utils.logging import configure_logging, get_logger
from titledraft.utils.scheduling import Debouncer, call_later

__all__ = [
    "configure_logging",
    "get_logger",
    "Debouncer",
    "call_later",
]
