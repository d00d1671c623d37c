"""
Exceptions for titledraft.

Store failures are wrapped in StoreError so callers never depend on the
backend driver's exception types.
"""

from __future__ import annotations

from typing import Optional


class DraftingError(Exception):
    """Base exception for all titledraft errors."""


class StoreError(DraftingError):
    """
    Raised when a record store operation fails.

    Carries the operation name ("query", "insert", ...) and the table it
    targeted so notifications and logs can say what went wrong.
    """

    def __init__(self, message: str, operation: Optional[str] = None, table: Optional[str] = None):
        self.operation = operation
        self.table = table
        super().__init__(message)


class ValidationError(DraftingError):
    """Raised when user input is rejected (missing survey number, bad column name...)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class CatalogError(DraftingError):
    """Raised when a template catalog document cannot be parsed."""


__all__ = ["DraftingError", "StoreError", "ValidationError", "CatalogError"]
