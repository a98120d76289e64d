"""
Custom Exceptions

This module defines the exceptions raised by the geo analytics package.

Taxonomy:
- GeoError: the geo database could not be loaded (fatal at construction)
- StoreError / BackendError: the counter store failed (open, bootstrap or
  statement execution)
"""

from typing import Optional


class GeoAnalyticsException(Exception):
    """Base exception for the geo analytics package."""
    pass


class GeoError(GeoAnalyticsException):
    """Raised when the geo database file is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str = "Could not load geo database"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class StoreError(GeoAnalyticsException):
    """Base exception for counter store failures."""
    pass


class BackendError(StoreError):
    """Raised when the persistent store fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Store backend error: {message}")
