"""Pydantic wire models for delegation chains and request records."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DelegationModel(BaseModel):
    """JSON form of a single delegation. Byte fields are lowercase hex."""

    pubkey: str
    expiration: str
    targets: Optional[list[str]] = None


class SignedDelegationModel(BaseModel):
    """JSON form of a delegation plus the delegating key's signature."""

    delegation: DelegationModel
    signature: str


class DelegationChainModel(BaseModel):
    """JSON form of a whole chain, as persisted and transmitted."""

    model_config = ConfigDict(populate_by_name=True)

    delegations: list[SignedDelegationModel] = Field(default_factory=list)
    public_key: str = Field(alias="publicKey")


class RequestRecord(BaseModel):
    """An outgoing request before it is signed.

    Only ``body`` is rewritten by
    :meth:`~delegation_identity.identity.delegation.DelegationIdentity.transform_request`;
    every other field, including unknown ones, is carried through unchanged.
    """

    model_config = ConfigDict(extra="allow")

    request_type: str
    endpoint: str
    body: dict[str, Any]


__all__ = [
    "DelegationChainModel",
    "DelegationModel",
    "RequestRecord",
    "SignedDelegationModel",
]
