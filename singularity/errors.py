# singularity/errors.py
"""
Exception types raised by the storage layer for programming or state errors.
Expected outcomes (rejected deposits, unaffordable upgrades) are reported
through result objects instead.
"""


class StorageError(Exception):
    """Base class for storage layer errors."""


class SessionError(StorageError):
    """Raised for invalid operations against a storage session."""


class PlacementError(StorageError):
    """Raised when a terminal cannot be placed or resolved."""
