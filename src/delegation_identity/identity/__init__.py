"""Signing identities: the signer interface, Ed25519 keys, and delegation.

Quick start
-----------
::

    from delegation_identity.identity import (
        DelegationChain,
        DelegationIdentity,
        Ed25519KeyIdentity,
    )

    root = Ed25519KeyIdentity.generate()
    session = Ed25519KeyIdentity.generate()

    chain = await DelegationChain.create(root, session.get_public_key())
    identity = DelegationIdentity.from_delegation(session, chain)
"""
from __future__ import annotations

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
from delegation_identity.identity.ed25519 import Ed25519KeyIdentity, verify_signature
from delegation_identity.identity.signer import DerPublicKey, PublicKey, SignIdentity

__all__ = [
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
    "verify_signature",
]
