"""Fee strategies, which turn an assembled transaction into the fee it has to pay."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Union

from cardano_txbuilder.exception import (
    InvalidArgumentException,
    InvalidTransactionException,
)
from cardano_txbuilder.logging import logger
from cardano_txbuilder.transaction import Transaction

__all__ = [
    "DEFAULT_FEE_CONSTANT",
    "DEFAULT_FEE_COEFFICIENT",
    "FeeStrategy",
    "LinearFee",
    "IterativeLinearFee",
    "patch_fee",
]

DEFAULT_FEE_CONSTANT = 155381
"""Fixed part of the fee in lovelace."""

DEFAULT_FEE_COEFFICIENT = Fraction("87.892")
"""Lovelace charged per byte of the zero-fee transaction."""


def patch_fee(tx: Transaction, fee: int) -> Transaction:
    """Return a copy of ``tx`` whose body carries ``fee``. ``tx`` itself is left unchanged."""
    return replace(tx, transaction_body=replace(tx.transaction_body, fee=fee))


class FeeStrategy:
    """FeeStrategy computes the fee of a transaction assembled with a fee of 0."""

    def calculate(self, tx: Transaction) -> int:
        """Compute the fee of a transaction.

        Args:
            tx (Transaction): Transaction whose body has its fee set to 0.

        Returns:
            int: Fee in lovelace.
        """
        raise NotImplementedError()


@dataclass(frozen=True)
class LinearFee(FeeStrategy):
    """``constant + coefficient * size`` rounded up, with ``size`` the CBOR length of the zero-fee transaction.

    The transaction is encoded once. The fee field grows once the real fee is patched in, so the final
    transaction is a few bytes longer than the one that was measured.
    """

    coefficient: Union[int, Fraction] = DEFAULT_FEE_COEFFICIENT

    constant: int = DEFAULT_FEE_CONSTANT

    def __post_init__(self):
        if self.coefficient < 0 or self.constant < 0:
            raise InvalidArgumentException(
                f"Fee coefficient and constant must not be negative, "
                f"got {self.coefficient} and {self.constant}."
            )

    def fee(self, length: int) -> int:
        """Fee of a transaction of ``length`` bytes."""
        return math.ceil(self.constant + self.coefficient * length)

    def calculate(self, tx: Transaction) -> int:
        return self.fee(len(tx.to_cbor()))


@dataclass(frozen=True)
class IterativeLinearFee(LinearFee):
    """Linear fee that also pays for the bytes of the fee field itself.

    Starting from the single pass estimate, the transaction is re-encoded with the candidate fee until the
    fee computed from that encoding no longer exceeds the candidate.
    """

    max_iterations: int = 8

    def calculate(self, tx: Transaction) -> int:
        fee = super().calculate(tx)
        for i in range(self.max_iterations):
            candidate = self.fee(len(patch_fee(tx, fee).to_cbor()))
            if candidate <= fee:
                logger.debug(f"Fee converged to {fee} after {i + 1} iteration(s).")
                return fee
            fee = candidate
        raise InvalidTransactionException(
            f"Fee did not converge within {self.max_iterations} iterations, last estimate: {fee}."
        )
