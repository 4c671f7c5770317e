"""Stake certificates a transaction body can carry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Type, Union

from cardano_txbuilder.exception import DeserializeException
from cardano_txbuilder.hash import PoolKeyHash, ScriptHash, VerificationKeyHash
from cardano_txbuilder.serialization import (
    CBORSerializable,
    CodedSerializable,
    limit_primitive_type,
)

__all__ = [
    "Certificate",
    "StakeCredential",
    "StakeRegistration",
    "StakeDeregistration",
    "StakeDelegation",
]

_CREDENTIAL_KINDS = (VerificationKeyHash, ScriptHash)


@dataclass(repr=False)
class StakeCredential(CBORSerializable):
    """Owner of a stake address: ``[0, key hash]`` or ``[1, script hash]``."""

    credential: Union[VerificationKeyHash, ScriptHash]

    def to_shallow_primitive(self) -> list:
        return [_CREDENTIAL_KINDS.index(type(self.credential)), self.credential]

    @classmethod
    @limit_primitive_type(list, tuple)
    def from_primitive(cls: Type[StakeCredential], values: Any) -> StakeCredential:
        if len(values) != 2 or values[0] not in (0, 1):
            raise DeserializeException(f"Malformed stake credential: {values}")
        return cls(_CREDENTIAL_KINDS[values[0]](values[1]))


@dataclass(repr=False)
class StakeRegistration(CodedSerializable):
    CODE: ClassVar[int] = 0

    stake_credential: StakeCredential


@dataclass(repr=False)
class StakeDeregistration(CodedSerializable):
    CODE: ClassVar[int] = 1

    stake_credential: StakeCredential


@dataclass(repr=False)
class StakeDelegation(CodedSerializable):
    """Delegation of the stake of ``stake_credential`` to the pool ``pool_keyhash``."""

    CODE: ClassVar[int] = 2

    stake_credential: StakeCredential

    pool_keyhash: PoolKeyHash


Certificate = Union[StakeRegistration, StakeDeregistration, StakeDelegation]
