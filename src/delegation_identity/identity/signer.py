"""Signer capability interfaces.

A signer is anything that can report a DER-encoded public key and sign
bytes asynchronously. The signature may be produced by an in-memory key, a
hardware token, or an interactive credential prompt, so :meth:`SignIdentity.sign`
is a coroutine and may fail with whatever the backing store raises.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class PublicKey(Protocol):
    """Anything that can render itself as a DER-encoded public key."""

    def to_der(self) -> bytes: ...


@dataclass(frozen=True)
class DerPublicKey:
    """A public key already held in DER form.

    Parameters
    ----------
    der:
        The DER-encoded SubjectPublicKeyInfo bytes.
    """

    der: bytes

    def to_der(self) -> bytes:
        return self.der

    def to_hex(self) -> str:
        return self.der.hex()


class SignIdentity(ABC):
    """Abstract signing capability.

    Subclasses provide :meth:`get_public_key` and :meth:`sign`. Nothing else
    in this package relies on how the key is stored.
    """

    @abstractmethod
    def get_public_key(self) -> PublicKey:
        """Return the public key that verifies this identity's signatures."""

    @abstractmethod
    async def sign(self, data: bytes) -> bytes:
        """Sign *data* and return the raw signature bytes."""


__all__ = ["DerPublicKey", "PublicKey", "SignIdentity"]
