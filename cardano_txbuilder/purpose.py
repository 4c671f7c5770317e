"""
Redeemer purposes, the items of a transaction a redeemer can be attached to.

A redeemer on chain points at its target by an index into a canonically ordered collection of the
transaction body: inputs for :class:`Spend`, minting policies for :class:`Mint`. Purposes are kept by
value while a transaction is being assembled and only turned into indices once those orders are final.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Tuple

from cardano_txbuilder.exception import (
    RedeemerPurposeMissingException,
    UnsupportedRedeemerPurposeException,
)
from cardano_txbuilder.hash import ScriptHash
from cardano_txbuilder.plutus import RedeemerTag
from cardano_txbuilder.transaction import TransactionInput

__all__ = [
    "CanonicalOrder",
    "RedeemerPurpose",
    "Spend",
    "Mint",
    "Cert",
    "Reward",
]


@dataclass(frozen=True)
class CanonicalOrder:
    """Sorted collections of a transaction body that redeemer indices refer to.

    Attributes:
        inputs (Tuple[TransactionInput, ...]): Inputs sorted by transaction id, then index.
        mint_policies (Tuple[ScriptHash, ...]): Minting policies sorted by their bytes.
    """

    inputs: Tuple[TransactionInput, ...] = ()

    mint_policies: Tuple[ScriptHash, ...] = ()


class RedeemerPurpose:
    """Base class of all redeemer purposes."""

    tag: ClassVar[RedeemerTag]

    def resolve(self, order: CanonicalOrder) -> int:
        """Find the index of this purpose's target in ``order``.

        Args:
            order (CanonicalOrder): Canonical collections of the transaction being built.

        Returns:
            int: Zero-based index of the target.

        Raises:
            RedeemerPurposeMissingException: When the target is not part of the transaction.
            UnsupportedRedeemerPurposeException: When this kind of purpose cannot be resolved.
        """
        raise NotImplementedError()


@dataclass(frozen=True)
class Spend(RedeemerPurpose):
    """Spending of a script-locked input."""

    tag: ClassVar[RedeemerTag] = RedeemerTag.SPEND

    input: TransactionInput

    def resolve(self, order: CanonicalOrder) -> int:
        try:
            return order.inputs.index(self.input)
        except ValueError:
            raise RedeemerPurposeMissingException(self)


@dataclass(frozen=True)
class Mint(RedeemerPurpose):
    """Minting or burning under a Plutus policy.

    Raw policy bytes are wrapped in a :class:`ScriptHash`.
    """

    tag: ClassVar[RedeemerTag] = RedeemerTag.MINT

    policy_id: ScriptHash

    def __post_init__(self):
        if not isinstance(self.policy_id, ScriptHash):
            object.__setattr__(self, "policy_id", ScriptHash(self.policy_id))

    def resolve(self, order: CanonicalOrder) -> int:
        try:
            return order.mint_policies.index(self.policy_id)
        except ValueError:
            raise RedeemerPurposeMissingException(self)


@dataclass(frozen=True)
class Cert(RedeemerPurpose):
    """Certificate at ``index`` of the certificate list. Not resolvable by the builder."""

    tag: ClassVar[RedeemerTag] = RedeemerTag.CERTIFICATE

    index: int

    def resolve(self, order: CanonicalOrder) -> int:
        raise UnsupportedRedeemerPurposeException(self)


@dataclass(frozen=True)
class Reward(RedeemerPurpose):
    """Withdrawal from a script reward account. Not resolvable by the builder."""

    tag: ClassVar[RedeemerTag] = RedeemerTag.WITHDRAWAL

    reward_account: bytes

    def resolve(self, order: CanonicalOrder) -> int:
        raise UnsupportedRedeemerPurposeException(self)
