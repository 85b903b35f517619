"""
Exception types raised by the public analysis functions.

Each error also derives from the built-in exception a caller would catch for
the same problem, so ``except ValueError`` keeps working.
"""

from __future__ import annotations

__all__ = [
    'PomaError',
    'MissingArgumentError',
    'InvalidArgumentError',
    'GroupMismatchError',
    'FeatureNotFoundError',
]


class PomaError(Exception):
    """Base class for all pomakit errors."""
    pass


class MissingArgumentError(PomaError, ValueError):
    """Raised when a required input is missing."""
    pass


class InvalidArgumentError(PomaError, ValueError):
    """Raised when an option is outside its allowed set or range."""
    pass


class GroupMismatchError(PomaError, ValueError):
    """Raised when the group factor does not have the required number of levels."""
    pass


class FeatureNotFoundError(PomaError, KeyError):
    """Raised when one or more feature names are not found in the matrix."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message
        return str(self.args[0]) if self.args else ""
