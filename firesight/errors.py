"""
Exceptions raised when an external dependency of the engine is unavailable.
"""

from __future__ import annotations


class FiresightError(Exception):
    """Base class for Firesight errors."""


class DatasetUnavailableError(FiresightError, FileNotFoundError):
    """A historical perimeter or IAP dataset could not be read."""


class ElevationUnavailableError(FiresightError, RuntimeError):
    """The elevation provider could not produce a sample for a location."""
