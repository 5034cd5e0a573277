"""Tests for delegation_identity.identity.delegation — DelegationIdentity."""
from __future__ import annotations

import datetime
from typing import Any

import pytest

from delegation_identity.errors import FormatError, SigningFailure
from delegation_identity.identity.delegation import (
    DELEGATION_DOMAIN_SEPARATOR,
    REQUEST_DOMAIN_SEPARATOR,
    DelegationChain,
    DelegationIdentity,
)
from delegation_identity.identity.ed25519 import Ed25519KeyIdentity, verify_signature
from delegation_identity.identity.signer import DerPublicKey, SignIdentity
from delegation_identity.request_id import request_id_of


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

EXPIRATION = datetime.datetime(2100, 1, 1, tzinfo=datetime.timezone.utc)


class RecordingSigner(SignIdentity):
    """Mock signer that records every message and returns a fixed signature."""

    def __init__(self, signature: bytes = b"\x5a" * 64) -> None:
        self.signature = signature
        self.calls: list[bytes] = []

    def get_public_key(self) -> DerPublicKey:
        return DerPublicKey(b"\x30\x2a" + b"\x11" * 42)

    async def sign(self, data: bytes) -> bytes:
        self.calls.append(data)
        return self.signature


class RejectingSigner(RecordingSigner):
    async def sign(self, data: bytes) -> bytes:
        raise SigningFailure("user cancelled")


def make_request(body: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "request_type": "call",
        "endpoint": "call",
        "body": body if body is not None else {"method_name": "greet", "arg": b"\x00"},
    }


async def make_chain(*keys: Ed25519KeyIdentity) -> DelegationChain:
    """Build a chain keys[0] -> keys[1] -> ... -> keys[-1]."""
    chain: DelegationChain | None = None
    for delegator, delegate in zip(keys, keys[1:]):
        chain = await DelegationChain.create(
            delegator, delegate.get_public_key(), EXPIRATION, previous=chain
        )
    assert chain is not None
    return chain


@pytest.fixture()
def root() -> Ed25519KeyIdentity:
    return Ed25519KeyIdentity.generate()


@pytest.fixture()
def leaf() -> Ed25519KeyIdentity:
    return Ed25519KeyIdentity.generate()


# ---------------------------------------------------------------------------
# Public key and signing
# ---------------------------------------------------------------------------


class TestPublicKey:
    @pytest.mark.asyncio
    async def test_reports_root_public_key(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        assert identity.get_public_key().to_der() == chain.public_key
        assert identity.get_public_key().to_der() != leaf.get_public_key().to_der()

    @pytest.mark.asyncio
    async def test_get_delegation_returns_chain(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        assert identity.get_delegation() is chain

    @pytest.mark.asyncio
    async def test_sign_uses_inner_signer(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        signature = await identity.sign(b"payload")
        assert leaf.verify(signature, b"payload") is True
        assert root.verify(signature, b"payload") is False

    @pytest.mark.asyncio
    async def test_is_a_sign_identity(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        assert isinstance(DelegationIdentity.from_delegation(leaf, chain), SignIdentity)


# ---------------------------------------------------------------------------
# transform_request
# ---------------------------------------------------------------------------


class TestTransformRequest:
    @pytest.mark.asyncio
    async def test_body_is_wrapped_with_signature_and_chain(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        signer = RecordingSigner()
        identity = DelegationIdentity.from_delegation(signer, chain)
        body = {"method_name": "greet", "arg": b"\x00"}

        result = await identity.transform_request({"body": body, "other": "Y"})

        assert result == {
            "other": "Y",
            "body": {
                "content": body,
                "sender_pubkey": chain.public_key,
                "sender_delegation": list(chain.delegations),
                "sender_sig": signer.signature,
            },
        }
        assert signer.calls == [REQUEST_DOMAIN_SEPARATOR + request_id_of(body)]

    @pytest.mark.asyncio
    async def test_preserves_other_fields(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        request = make_request()
        request["headers"] = {"Content-Type": "application/cbor"}

        result = await identity.transform_request(request)

        assert result["request_type"] == "call"
        assert result["endpoint"] == "call"
        assert result["headers"] == {"Content-Type": "application/cbor"}

    @pytest.mark.asyncio
    async def test_input_request_is_not_mutated(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        request = make_request()
        original_body = request["body"]

        await identity.transform_request(request)

        assert request["body"] is original_body
        assert set(request) == {"request_type", "endpoint", "body"}

    @pytest.mark.asyncio
    async def test_signature_verifies_with_leaf_key(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        request = make_request()

        result = await identity.transform_request(request)

        message = REQUEST_DOMAIN_SEPARATOR + request_id_of(request["body"])
        assert leaf.verify(result["body"]["sender_sig"], message) is True

    @pytest.mark.asyncio
    async def test_uses_injected_request_id(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        signer = RecordingSigner()
        identity = DelegationIdentity.from_delegation(
            signer, chain, request_id=lambda record: b"fixed-digest"
        )

        await identity.transform_request(make_request())

        assert signer.calls == [REQUEST_DOMAIN_SEPARATOR + b"fixed-digest"]

    @pytest.mark.asyncio
    async def test_missing_body_raises_format_error(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        with pytest.raises(FormatError, match="body"):
            await identity.transform_request({"request_type": "call"})

    @pytest.mark.asyncio
    async def test_signing_failure_propagates(
        self, root: Ed25519KeyIdentity, leaf: Ed25519KeyIdentity
    ) -> None:
        chain = await make_chain(root, leaf)
        identity = DelegationIdentity.from_delegation(RejectingSigner(), chain)
        with pytest.raises(SigningFailure, match="cancelled"):
            await identity.transform_request(make_request())


# ---------------------------------------------------------------------------
# End-to-end: root -> middle -> leaf
# ---------------------------------------------------------------------------


class TestThreeLevelChain:
    @pytest.mark.asyncio
    async def test_sender_delegation_has_both_hops_in_order(self) -> None:
        root = Ed25519KeyIdentity.generate()
        middle = Ed25519KeyIdentity.generate()
        leaf = Ed25519KeyIdentity.generate()
        chain = await make_chain(root, middle, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)

        result = await identity.transform_request(make_request())

        hops = result["body"]["sender_delegation"]
        assert len(hops) == 2
        assert hops[0].delegation.pubkey == middle.get_public_key().to_der()
        assert hops[1].delegation.pubkey == leaf.get_public_key().to_der()
        assert result["body"]["sender_pubkey"] == root.get_public_key().to_der()

    @pytest.mark.asyncio
    async def test_custody_trail_verifies_hop_by_hop(self) -> None:
        root = Ed25519KeyIdentity.generate()
        middle = Ed25519KeyIdentity.generate()
        leaf = Ed25519KeyIdentity.generate()
        chain = await make_chain(root, middle, leaf)
        identity = DelegationIdentity.from_delegation(leaf, chain)
        request = make_request()

        result = await identity.transform_request(request)

        signer_key = result["body"]["sender_pubkey"]
        for signed in result["body"]["sender_delegation"]:
            message = DELEGATION_DOMAIN_SEPARATOR + request_id_of(
                signed.delegation.to_record()
            )
            assert verify_signature(signer_key, signed.signature, message) is True
            signer_key = signed.delegation.pubkey

        request_message = REQUEST_DOMAIN_SEPARATOR + request_id_of(request["body"])
        assert verify_signature(
            signer_key, result["body"]["sender_sig"], request_message
        ) is True

    @pytest.mark.asyncio
    async def test_chain_survives_persistence(self) -> None:
        root = Ed25519KeyIdentity.generate()
        middle = Ed25519KeyIdentity.generate()
        leaf = Ed25519KeyIdentity.generate()
        chain = await make_chain(root, middle, leaf)
        restored = DelegationChain.from_json(chain.to_json_string())
        identity = DelegationIdentity.from_delegation(leaf, restored)

        result = await identity.transform_request(make_request())

        assert result["body"]["sender_delegation"] == list(chain.delegations)
        assert result["body"]["sender_pubkey"] == chain.public_key
