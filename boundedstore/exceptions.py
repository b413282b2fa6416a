"""
Custom exceptions for boundedstore.
"""


class BoundedStoreError(Exception):
    """Base exception for all boundedstore errors."""


class InvalidValueError(BoundedStoreError):
    """Stored value cannot be decoded as an expiration wrapper."""


class ContractViolationError(BoundedStoreError):
    """Internal precondition broken; index and data are out of sync."""


class MechanismError(BoundedStoreError):
    """Underlying key/value mechanism failed to read or write."""


class ReservedKeyError(BoundedStoreError, ValueError):
    """Caller used the key reserved for the persisted index."""


class ConfigError(BoundedStoreError):
    """Configuration errors."""
