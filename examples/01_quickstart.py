#!/usr/bin/env python3
"""Example: Quickstart

Delegates from a root key to a session key and signs a request with the
session key on behalf of the root.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install delegation-identity
"""
from __future__ import annotations

import asyncio

import delegation_identity
from delegation_identity import DelegationChain, DelegationIdentity, Ed25519KeyIdentity


async def main() -> None:
    print(f"delegation-identity version: {delegation_identity.__version__}")

    root = Ed25519KeyIdentity.generate()
    session = Ed25519KeyIdentity.generate()

    chain = await DelegationChain.create(root, session.get_public_key())
    print(f"Chain depth: {len(chain)}")

    identity = DelegationIdentity.from_delegation(session, chain)
    signed = await identity.transform_request(
        {"request_type": "call", "endpoint": "call", "body": {"method_name": "greet"}}
    )
    print(f"Sender:    {signed['body']['sender_pubkey'].hex()}")
    print(f"Signature: {signed['body']['sender_sig'].hex()}")


if __name__ == "__main__":
    asyncio.run(main())
