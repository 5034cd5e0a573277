"""Delegation chains and the delegation-aware signing identity.

A delegation lets one key (the *delegate*) act with the authority of another
(the *delegator*) until an expiration instant, optionally only towards a set
of target principals. Chaining delegations gives a custody trail from a root
key to the key currently doing the signing::

    root ──signs──▶ middle ──signs──▶ leaf

Signing procedure
-----------------
Delegations and request bodies are signed the same way:

1. compute the request id (a digest) of the structured record;
2. prefix it with a fixed domain separator;
3. sign the concatenation.

The separators bind a signature to its purpose so that a delegation
signature can never be replayed as a request signature or vice versa.

Quick start
-----------
::

    root = Ed25519KeyIdentity.generate()
    middle = Ed25519KeyIdentity.generate()
    leaf = Ed25519KeyIdentity.generate()

    chain = await DelegationChain.create(root, middle.get_public_key())
    chain = await DelegationChain.create(
        middle, leaf.get_public_key(), previous=chain
    )

    identity = DelegationIdentity.from_delegation(leaf, chain)
    signed = await identity.transform_request(request)
"""
from __future__ import annotations

import datetime
import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from delegation_identity.errors import FormatError, KeyFormatError
from delegation_identity.identity.signer import DerPublicKey, PublicKey, SignIdentity
from delegation_identity.models import (
    DelegationChainModel,
    DelegationModel,
    SignedDelegationModel,
)
from delegation_identity.principal import Principal
from delegation_identity.request_id import RequestIdFunction, request_id_of

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Domain separators
# ---------------------------------------------------------------------------

DELEGATION_DOMAIN_SEPARATOR: bytes = b"\x1aic-request-auth-delegation"
REQUEST_DOMAIN_SEPARATOR: bytes = b"\x0aic-request"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_EXPIRATION: datetime.timedelta = datetime.timedelta(minutes=15)

# Coarse sanity bound on hex-encoded keys and signatures read from JSON.
MIN_HEX_LENGTH: int = 64

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_NANOS_PER_MILLI: int = 1_000_000


# ---------------------------------------------------------------------------
# Delegation records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Delegation:
    """One authorization step.

    Parameters
    ----------
    pubkey:
        DER-encoded public key of the delegate.
    expiration:
        Expiry as nanoseconds since the Unix epoch. Stored as a Python
        ``int`` so far-future instants never overflow.
    targets:
        Principals the delegation is restricted to, or None when it is valid
        for any recipient.
    """

    pubkey: bytes
    expiration: int
    targets: tuple[Principal, ...] | None = None

    def to_record(self) -> dict[str, Any]:
        """Return the structured record whose request id gets signed."""
        record: dict[str, Any] = {
            "pubkey": self.pubkey,
            "expiration": self.expiration,
        }
        if self.targets is not None:
            record["targets"] = list(self.targets)
        return record

    @property
    def expires_at(self) -> datetime.datetime:
        """The expiration as an aware UTC datetime (microsecond precision).

        Raises
        ------
        OverflowError
            If the expiration lies beyond what :class:`datetime.datetime` holds.
        """
        return _EPOCH + datetime.timedelta(microseconds=self.expiration // 1000)


@dataclass(frozen=True)
class SignedDelegation:
    """A :class:`Delegation` plus the delegating key's signature over it."""

    delegation: Delegation
    signature: bytes

    def to_record(self) -> dict[str, Any]:
        return {"delegation": self.delegation.to_record(), "signature": self.signature}


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


async def sign_delegation(
    delegation: Delegation,
    identity: SignIdentity,
    request_id: RequestIdFunction = request_id_of,
) -> bytes:
    """Sign *delegation* with *identity*.

    The signature covers ``DELEGATION_DOMAIN_SEPARATOR + request_id(delegation)``.
    Any exception raised by the signer propagates unchanged.
    """
    message = DELEGATION_DOMAIN_SEPARATOR + request_id(delegation.to_record())
    return await identity.sign(message)


async def _create_single_delegation(
    from_identity: SignIdentity,
    to: PublicKey,
    expiration: datetime.datetime,
    targets: Sequence[Principal] | None,
    request_id: RequestIdFunction,
) -> SignedDelegation:
    delegation = Delegation(
        pubkey=to.to_der(),
        expiration=to_nanoseconds(expiration),
        targets=tuple(targets) if targets else None,
    )
    signature = await sign_delegation(delegation, from_identity, request_id)
    return SignedDelegation(delegation=delegation, signature=signature)


def to_nanoseconds(instant: datetime.datetime) -> int:
    """Convert *instant* to nanoseconds since the epoch, at millisecond precision.

    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=datetime.timezone.utc)
    millis = (instant - _EPOCH) // datetime.timedelta(milliseconds=1)
    return millis * _NANOS_PER_MILLI


# ---------------------------------------------------------------------------
# DelegationChain
# ---------------------------------------------------------------------------


class DelegationChain:
    """An immutable, JSON-serializable chain of signed delegations.

    ``delegations`` is in custody order: entry 0 was signed by the root key,
    and every later entry was signed by the key delegated to in the entry
    before it. ``public_key`` is the root's DER-encoded public key. The chain
    holds no private key material and is safe to persist or transmit.

    Build chains with :meth:`create` or :meth:`from_json`; the constructor is
    internal.
    """

    __slots__ = ("_delegations", "_public_key")

    def __init__(self, delegations: Sequence[SignedDelegation], public_key: bytes) -> None:
        self._delegations: tuple[SignedDelegation, ...] = tuple(delegations)
        self._public_key: bytes = bytes(public_key)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        from_identity: SignIdentity,
        to: PublicKey,
        expiration: datetime.datetime | None = None,
        *,
        previous: DelegationChain | None = None,
        targets: Sequence[Principal] | None = None,
        request_id: RequestIdFunction = request_id_of,
    ) -> "DelegationChain":
        """Delegate from *from_identity* to *to*, optionally extending *previous*.

        To build a chain deeper than one hop, call this once per hop, passing
        the chain returned by the previous call as *previous* and signing with
        the key that chain delegated to.

        Parameters
        ----------
        from_identity:
            The delegating signer.
        to:
            Public key of the delegate.
        expiration:
            When the new delegation expires. Defaults to 15 minutes from now.
        previous:
            Chain to extend. Its entries and root public key are kept as is.
        targets:
            Principals to restrict the new delegation to.
        request_id:
            Digest function applied to the delegation before signing.

        Returns
        -------
        DelegationChain
            A new chain; *previous* is left untouched.
        """
        if expiration is None:
            expiration = datetime.datetime.now(datetime.timezone.utc) + DEFAULT_EXPIRATION

        signed = await _create_single_delegation(
            from_identity, to, expiration, targets, request_id
        )

        if previous is not None:
            delegations = previous.delegations + (signed,)
            public_key = previous.public_key
        else:
            delegations = (signed,)
            public_key = from_identity.get_public_key().to_der()

        logger.debug(
            "Delegation added at depth %d to key %s... (root %s...)",
            len(delegations),
            signed.delegation.pubkey.hex()[:16],
            public_key.hex()[:16],
        )
        return cls(delegations, public_key)

    @classmethod
    def from_json(cls, data: str | bytes | Mapping[str, Any]) -> "DelegationChain":
        """Parse a chain from JSON text, or from an already-decoded mapping.

        Raises
        ------
        FormatError
            If the structure is invalid: unparseable JSON, ``delegations``
            missing or not a list, ``targets`` not a list of principal text,
            or a bad expiration.
        KeyFormatError
            If ``pubkey``, ``signature`` or ``publicKey`` is not a hex string
            of at least 64 characters.
        """
        if isinstance(data, (str, bytes)):
            try:
                parsed = json.loads(data)
            except ValueError as exc:
                raise FormatError(f"chain is not valid JSON: {exc}") from exc
        else:
            parsed = data

        if not isinstance(parsed, Mapping):
            raise FormatError("chain must be a JSON object")

        delegations = parsed.get("delegations")
        if not isinstance(delegations, list):
            raise FormatError("'delegations' must be a list")

        parsed_delegations = [_parse_signed_delegation(item) for item in delegations]
        public_key = _parse_hex(parsed.get("publicKey"), "publicKey")

        logger.debug("Parsed delegation chain with %d entries", len(parsed_delegations))
        return cls(parsed_delegations, public_key)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def delegations(self) -> tuple[SignedDelegation, ...]:
        """Signed delegations, root first."""
        return self._delegations

    @property
    def public_key(self) -> bytes:
        """DER-encoded public key of the root identity."""
        return self._public_key

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        """Return the JSON-ready form of this chain."""
        model = DelegationChainModel(
            delegations=[
                SignedDelegationModel(
                    delegation=DelegationModel(
                        expiration=format(signed.delegation.expiration, "x"),
                        pubkey=signed.delegation.pubkey.hex(),
                        targets=(
                            [target.to_text() for target in signed.delegation.targets]
                            if signed.delegation.targets is not None
                            else None
                        ),
                    ),
                    signature=signed.signature.hex(),
                )
                for signed in self._delegations
            ],
            public_key=self._public_key.hex(),
        )
        return model.model_dump(by_alias=True, exclude_none=True)

    def to_json_string(self) -> str:
        return json.dumps(self.to_json())

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._delegations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DelegationChain):
            return NotImplemented
        return (
            self._public_key == other._public_key
            and self._delegations == other._delegations
        )

    def __hash__(self) -> int:
        return hash((self._public_key, self._delegations))

    def __repr__(self) -> str:
        return (
            f"DelegationChain(depth={len(self._delegations)}, "
            f"public_key={self._public_key.hex()[:16]}...)"
        )


# ---------------------------------------------------------------------------
# JSON parsing helpers
# ---------------------------------------------------------------------------


def _parse_signed_delegation(item: object) -> SignedDelegation:
    if not isinstance(item, Mapping):
        raise FormatError("each delegation entry must be an object")
    delegation = item.get("delegation")
    if not isinstance(delegation, Mapping):
        raise FormatError("'delegation' must be an object")

    targets: tuple[Principal, ...] | None = None
    if "targets" in delegation:
        raw_targets = delegation["targets"]
        if not isinstance(raw_targets, list):
            raise FormatError("'targets' must be a list")
        targets = tuple(_parse_target(target) for target in raw_targets)

    return SignedDelegation(
        delegation=Delegation(
            pubkey=_parse_hex(delegation.get("pubkey"), "pubkey"),
            expiration=_parse_expiration(delegation.get("expiration")),
            targets=targets,
        ),
        signature=_parse_hex(item.get("signature"), "signature"),
    )


def _parse_target(value: object) -> Principal:
    if not isinstance(value, str):
        raise FormatError(f"target {value!r} must be a principal string")
    return Principal.from_text(value)


def _parse_expiration(value: object) -> int:
    if not isinstance(value, str):
        raise FormatError("'expiration' must be a hex string")
    if _HEX_DIGITS.fullmatch(value) is None:
        raise FormatError(f"'expiration' {value!r} is not a base-16 integer")
    return int(value, 16)


def _parse_hex(value: object, field: str) -> bytes:
    if not isinstance(value, str) or len(value) < MIN_HEX_LENGTH:
        raise KeyFormatError(
            field, f"expected a hex string of at least {MIN_HEX_LENGTH} characters"
        )
    if _HEX_DIGITS.fullmatch(value) is None or len(value) % 2:
        raise KeyFormatError(field, "not valid hex")
    return bytes.fromhex(value)


# ---------------------------------------------------------------------------
# DelegationIdentity
# ---------------------------------------------------------------------------


class DelegationIdentity(SignIdentity):
    """A signer that presents the root identity while signing with an inner key.

    :meth:`get_public_key` reports the chain's root key, so callers see the
    root's authority, while :meth:`sign` is served by the inner (leaf) signer.
    The identity holds no state beyond these two references.

    Build instances with :meth:`from_delegation`.
    """

    def __init__(
        self,
        inner: SignIdentity,
        chain: DelegationChain,
        request_id: RequestIdFunction = request_id_of,
    ) -> None:
        self._inner = inner
        self._chain = chain
        self._request_id = request_id

    @classmethod
    def from_delegation(
        cls,
        inner: SignIdentity,
        chain: DelegationChain,
        request_id: RequestIdFunction = request_id_of,
    ) -> "DelegationIdentity":
        """Pair *inner* with *chain*. *inner* must hold the chain's last delegated key."""
        return cls(inner, chain, request_id)

    def get_delegation(self) -> DelegationChain:
        return self._chain

    def get_public_key(self) -> DerPublicKey:
        return DerPublicKey(self._chain.public_key)

    async def sign(self, data: bytes) -> bytes:
        return await self._inner.sign(data)

    async def transform_request(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Sign *request*'s body and attach the delegation chain.

        Every field other than ``body`` is copied unchanged. The new body is::

            {
                "content": <original body>,
                "sender_sig": <signature over REQUEST_DOMAIN_SEPARATOR + request_id(body)>,
                "sender_delegation": [<SignedDelegation>, ...],
                "sender_pubkey": <root public key DER>,
            }

        Raises
        ------
        FormatError
            If *request* has no ``body``.
        """
        if "body" not in request:
            raise FormatError("request has no 'body'")
        body = request["body"]
        fields = {key: value for key, value in request.items() if key != "body"}

        message = REQUEST_DOMAIN_SEPARATOR + self._request_id(body)
        signature = await self.sign(message)

        logger.debug(
            "Signed request body with %d delegation(s) for root %s...",
            len(self._chain),
            self._chain.public_key.hex()[:16],
        )
        return {
            **fields,
            "body": {
                "content": body,
                "sender_sig": signature,
                "sender_delegation": list(self._chain.delegations),
                "sender_pubkey": self._chain.public_key,
            },
        }


__all__ = [
    "DEFAULT_EXPIRATION",
    "DELEGATION_DOMAIN_SEPARATOR",
    "Delegation",
    "DelegationChain",
    "DelegationIdentity",
    "MIN_HEX_LENGTH",
    "REQUEST_DOMAIN_SEPARATOR",
    "SignedDelegation",
    "sign_delegation",
    "to_nanoseconds",
]
