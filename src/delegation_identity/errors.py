"""Exception hierarchy for delegation-identity.

All errors raised by this package derive from :class:`DelegationError` so
callers can catch the whole family in one place. Errors raised by an external
signer are never wrapped: they reach the caller unchanged.
"""
from __future__ import annotations


class DelegationError(Exception):
    """Base class for all delegation-related errors."""


class FormatError(DelegationError, ValueError):
    """Raised when a serialized chain or request has an invalid structure."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid format: {reason}")


class KeyFormatError(FormatError):
    """Raised when a hex-encoded key or signature field is unusable.

    Parameters
    ----------
    field:
        Name of the JSON field that failed validation.
    reason:
        Human-readable description of the problem.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"{field}: {reason}")


class SigningFailure(DelegationError):
    """Raised by a signer when it cannot produce a signature.

    The chain builder and :class:`DelegationIdentity` do not raise this
    themselves; they let whatever the signer raised propagate.
    """


__all__ = [
    "DelegationError",
    "FormatError",
    "KeyFormatError",
    "SigningFailure",
]
