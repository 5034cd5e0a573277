#!/usr/bin/env python3
"""Example: Three-level delegation chain

Builds root -> middle -> leaf, restricts the first hop to a target
principal, persists the chain as JSON, and reloads it.

Usage:
    python examples/02_delegation_chain.py

Requirements:
    pip install delegation-identity
"""
from __future__ import annotations

import asyncio
import datetime
import json

from delegation_identity import (
    DelegationChain,
    DelegationIdentity,
    Ed25519KeyIdentity,
    Principal,
)


async def main() -> None:
    root = Ed25519KeyIdentity.generate()
    middle = Ed25519KeyIdentity.generate()
    leaf = Ed25519KeyIdentity.generate()
    expiration = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=1)

    # Step 1: root delegates to middle, only towards the management canister
    chain = await DelegationChain.create(
        root,
        middle.get_public_key(),
        expiration,
        targets=[Principal.management_canister()],
    )

    # Step 2: middle delegates to leaf, extending the chain
    chain = await DelegationChain.create(
        middle, leaf.get_public_key(), expiration, previous=chain
    )

    # Step 3: persist and reload
    serialized = json.dumps(chain.to_json(), indent=2)
    print(serialized)
    restored = DelegationChain.from_json(serialized)
    assert restored == chain

    # Step 4: sign as the root identity using the leaf key
    identity = DelegationIdentity.from_delegation(leaf, restored)
    signed = await identity.transform_request(
        {"request_type": "query", "endpoint": "query", "body": {"method_name": "status"}}
    )
    print(f"\nDelegations attached: {len(signed['body']['sender_delegation'])}")


if __name__ == "__main__":
    asyncio.run(main())
