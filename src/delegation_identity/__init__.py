"""delegation-identity — delegation chains and delegation-aware request signing.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import delegation_identity
>>> delegation_identity.__version__
'0.1.0'

Quick start
-----------
::

    from delegation_identity import (
        DelegationChain, DelegationIdentity, Ed25519KeyIdentity,
    )

    root = Ed25519KeyIdentity.generate()
    leaf = Ed25519KeyIdentity.generate()
    chain = await DelegationChain.create(root, leaf.get_public_key())

    identity = DelegationIdentity.from_delegation(leaf, chain)
    signed = await identity.transform_request(
        {"request_type": "call", "endpoint": "call", "body": {...}}
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from delegation_identity.errors import (
    DelegationError,
    FormatError,
    KeyFormatError,
    SigningFailure,
)

# ------------------------------------------------------------------
# Primitives
# ------------------------------------------------------------------
from delegation_identity.principal import Principal
from delegation_identity.request_id import RequestIdFunction, request_id_of

# ------------------------------------------------------------------
# Identities
# ------------------------------------------------------------------
from delegation_identity.identity.delegation import (
    DEFAULT_EXPIRATION,
    DELEGATION_DOMAIN_SEPARATOR,
    REQUEST_DOMAIN_SEPARATOR,
    Delegation,
    DelegationChain,
    DelegationIdentity,
    SignedDelegation,
    sign_delegation,
)
from delegation_identity.identity.ed25519 import Ed25519KeyIdentity
from delegation_identity.identity.signer import DerPublicKey, PublicKey, SignIdentity

__all__ = [
    # version
    "__version__",
    # errors
    "DelegationError",
    "FormatError",
    "KeyFormatError",
    "SigningFailure",
    # primitives
    "Principal",
    "RequestIdFunction",
    "request_id_of",
    # identities
    "DEFAULT_EXPIRATION",
    "DELEGATION_DOMAIN_SEPARATOR",
    "REQUEST_DOMAIN_SEPARATOR",
    "Delegation",
    "DelegationChain",
    "DelegationIdentity",
    "DerPublicKey",
    "Ed25519KeyIdentity",
    "PublicKey",
    "SignIdentity",
    "SignedDelegation",
    "sign_delegation",
]
