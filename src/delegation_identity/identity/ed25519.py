"""Ed25519KeyIdentity — an in-memory Ed25519 signer.

A thin wrapper around the ``cryptography`` package's Ed25519 primitives that
implements :class:`~delegation_identity.identity.signer.SignIdentity`. Public
keys are exposed as DER-encoded SubjectPublicKeyInfo (44 bytes), which is the
form delegations carry.

Key file format
---------------
:meth:`Ed25519KeyIdentity.to_json` returns a two-element list::

    ["<public key DER hex>", "<32-byte raw private key hex>"]
"""
from __future__ import annotations

import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_der_public_key,
)

from delegation_identity.errors import FormatError, KeyFormatError
from delegation_identity.identity.signer import DerPublicKey, SignIdentity


class Ed25519KeyIdentity(SignIdentity):
    """Ed25519 signing identity backed by a private key held in memory.

    Example
    -------
    ::

        identity = Ed25519KeyIdentity.generate()
        signature = await identity.sign(b"hello world")
        assert identity.verify(signature, b"hello world")
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key = DerPublicKey(
            private_key.public_key().public_bytes(
                Encoding.DER, PublicFormat.SubjectPublicKeyInfo
            )
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls) -> "Ed25519KeyIdentity":
        """Create an identity with a fresh random keypair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> "Ed25519KeyIdentity":
        """Load an identity from its 32-byte raw private key.

        Raises
        ------
        KeyFormatError
            If *secret_key* is not exactly 32 bytes.
        """
        if len(secret_key) != 32:
            raise KeyFormatError(
                "secretKey", f"expected 32 bytes, got {len(secret_key)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(secret_key))

    @classmethod
    def from_json(cls, data: str | list[Any]) -> "Ed25519KeyIdentity":
        """Load an identity from the output of :meth:`to_json`.

        The stored public key must match the one derived from the private key.

        Raises
        ------
        FormatError
            If the key file structure is wrong or the keys disagree.
        """
        parsed = json.loads(data) if isinstance(data, str) else data
        if (
            not isinstance(parsed, list)
            or len(parsed) != 2
            or not all(isinstance(item, str) for item in parsed)
        ):
            raise FormatError("key file must be a list of two hex strings")
        public_hex, private_hex = parsed
        try:
            secret_key = bytes.fromhex(private_hex)
        except ValueError as exc:
            raise KeyFormatError("secretKey", "not valid hex") from exc
        identity = cls.from_secret_key(secret_key)
        if identity.get_public_key().to_hex() != public_hex.lower():
            raise FormatError("public key does not match the private key")
        return identity

    # ------------------------------------------------------------------
    # SignIdentity
    # ------------------------------------------------------------------

    def get_public_key(self) -> DerPublicKey:
        return self._public_key

    async def sign(self, data: bytes) -> bytes:
        """Return the 64-byte Ed25519 signature over *data*."""
        return self._private_key.sign(data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def verify(self, signature: bytes, data: bytes) -> bool:
        """Return True if *signature* over *data* was made by this key."""
        return verify_signature(self._public_key.to_der(), signature, data)

    def to_json(self) -> list[str]:
        """Serialize the keypair. The output contains the private key."""
        secret = self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return [self._public_key.to_hex(), secret.hex()]

    def __repr__(self) -> str:
        return f"Ed25519KeyIdentity(public_key={self._public_key.to_hex()[:16]}...)"


def verify_signature(public_key_der: bytes, signature: bytes, data: bytes) -> bool:
    """Verify an Ed25519 signature against a DER-encoded public key.

    Returns False for a bad signature and for a key that is not Ed25519.
    """
    try:
        public_key = load_der_public_key(public_key_der)
    except ValueError:
        return False
    if not isinstance(public_key, Ed25519PublicKey):
        return False
    try:
        public_key.verify(signature, data)
        return True
    except InvalidSignature:
        return False


__all__ = ["Ed25519KeyIdentity", "verify_signature"]
