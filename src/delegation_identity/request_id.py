"""Request-id digests — the object that actually gets signed.

Delegations and outgoing request bodies are never signed directly. A
deterministic digest of the structured record is computed first and the
signature covers ``domain separator + digest``. The digest function is a
pluggable dependency: every operation that hashes accepts a
:data:`RequestIdFunction`, and a relying party must use the same one.

:func:`request_id_of` is the default. It hashes a canonical JSON rendering of
the record with SHA-256:

- keys sorted, compact separators, UTF-8;
- ``bytes`` rendered as lowercase hex;
- :class:`~delegation_identity.principal.Principal` rendered as its text form;
- objects exposing ``to_record()`` are replaced by that record.
"""
from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any, Callable

from delegation_identity.principal import Principal

RequestIdFunction = Callable[[Mapping[str, Any]], bytes]


def request_id_of(record: Mapping[str, Any]) -> bytes:
    """Return the 32-byte SHA-256 digest of *record*'s canonical form.

    Raises
    ------
    TypeError
        If *record* contains a value with no canonical representation.
    """
    return hashlib.sha256(canonical_bytes(record)).digest()


def canonical_bytes(record: Mapping[str, Any]) -> bytes:
    """Produce the deterministic byte rendering hashed by :func:`request_id_of`."""
    return json.dumps(
        canonicalize(record), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def canonicalize(value: Any) -> Any:
    """Convert *value* to plain JSON types (bytes as hex, principals as text)."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, Principal):
        return value.to_text()
    if isinstance(value, Mapping):
        return {str(key): canonicalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    to_record = getattr(value, "to_record", None)
    if callable(to_record):
        return canonicalize(to_record())
    raise TypeError(f"Cannot compute a request id over {type(value).__name__!r}")


__all__ = ["RequestIdFunction", "canonical_bytes", "canonicalize", "request_id_of"]
