"""Principal — recipient identifiers used to scope a delegation.

Textual encoding
----------------
1. Compute the CRC-32 of the raw principal bytes (4 bytes, big-endian).
2. Prepend the checksum to the raw bytes.
3. Encode with RFC 4648 base32, lowercase, without ``=`` padding.
4. Split into groups of five characters joined with ``-``.

For example, the empty principal (the management canister) is written
``aaaaa-aa``. Decoding re-encodes the result and rejects any text that does
not reproduce itself, which catches checksum and grouping mistakes.
"""
from __future__ import annotations

import base64
import binascii
import zlib
from dataclasses import dataclass

from delegation_identity.errors import FormatError

_MAX_PRINCIPAL_LENGTH: int = 29
_CHECKSUM_LENGTH: int = 4
_GROUP_SIZE: int = 5

_ANONYMOUS_SUFFIX: bytes = b"\x04"


@dataclass(frozen=True)
class Principal:
    """An opaque recipient identifier.

    Parameters
    ----------
    raw:
        The raw principal bytes (at most 29 bytes).
    """

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) > _MAX_PRINCIPAL_LENGTH:
            raise FormatError(
                f"principal is {len(self.raw)} bytes, the maximum is "
                f"{_MAX_PRINCIPAL_LENGTH}"
            )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        """Parse the dashed base32 text form of a principal.

        Raises
        ------
        FormatError
            If *text* is not a canonically encoded principal.
        """
        compact = text.replace("-", "").upper()
        padding = "=" * (-len(compact) % 8)
        try:
            decoded = base64.b32decode(compact + padding)
        except (binascii.Error, ValueError) as exc:
            raise FormatError(f"principal {text!r} is not valid base32") from exc

        if len(decoded) < _CHECKSUM_LENGTH:
            raise FormatError(f"principal {text!r} is too short")

        principal = cls(decoded[_CHECKSUM_LENGTH:])
        if principal.to_text() != text:
            raise FormatError(
                f"principal {text!r} does not match its canonical form "
                f"{principal.to_text()!r}"
            )
        return principal

    @classmethod
    def from_hex(cls, value: str) -> "Principal":
        """Build a principal from its raw bytes written as hex.

        Raises
        ------
        FormatError
            If *value* is not valid hex.
        """
        try:
            raw = bytes.fromhex(value)
        except ValueError as exc:
            raise FormatError(f"principal hex {value!r} is not valid hex") from exc
        return cls(raw)

    @classmethod
    def anonymous(cls) -> "Principal":
        """Return the anonymous principal."""
        return cls(_ANONYMOUS_SUFFIX)

    @classmethod
    def management_canister(cls) -> "Principal":
        """Return the empty principal, ``aaaaa-aa``."""
        return cls(b"")

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_text(self) -> str:
        """Return the dashed base32 text form."""
        checksum = (zlib.crc32(self.raw) & 0xFFFFFFFF).to_bytes(_CHECKSUM_LENGTH, "big")
        encoded = base64.b32encode(checksum + self.raw).decode("ascii").lower().rstrip("=")
        groups = [
            encoded[i : i + _GROUP_SIZE] for i in range(0, len(encoded), _GROUP_SIZE)
        ]
        return "-".join(groups)

    def to_hex(self) -> str:
        return self.raw.hex()

    def is_anonymous(self) -> bool:
        return self.raw == _ANONYMOUS_SUFFIX

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Principal({self.to_text()!r})"


__all__ = ["Principal"]
