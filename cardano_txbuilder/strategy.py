"""
Strategies that decide which outputs a transaction input spends.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from cardano_txbuilder.exception import NoInputsException
from cardano_txbuilder.transaction import TransactionInput, TransactionOutput

__all__ = ["Strategy", "Manual"]


class Strategy:
    """Strategy defines how the inputs and outputs of a transaction are collected and resolved.

    Implementations receive inputs and outputs from :class:`TransactionBuilder` and hand back the canonical
    sequences the transaction body is assembled from.
    """

    def input(
        self, tx_input: TransactionInput, resolved: Optional[TransactionOutput] = None
    ):
        """Register an input.

        Args:
            tx_input (TransactionInput): Input to spend.
            resolved (Optional[TransactionOutput]): Output the input points at, None when it is resolved
                at a later stage.
        """
        raise NotImplementedError()

    def output(self, tx_output: TransactionOutput):
        """Register an output."""
        raise NotImplementedError()

    def resolve(
        self,
    ) -> Tuple[
        List[TransactionInput],
        List[TransactionOutput],
        Dict[TransactionInput, Optional[TransactionOutput]],
    ]:
        """Produce the inputs and outputs of the transaction.

        Returns:
            Tuple[List[TransactionInput], List[TransactionOutput], Dict[TransactionInput,
            Optional[TransactionOutput]]]: A tuple containing:

                inputs (List[TransactionInput]): Inputs sorted by transaction id, then index.

                outputs (List[TransactionOutput]): Outputs in the order they were added.

                resolved (Dict[TransactionInput, Optional[TransactionOutput]]): Known outputs of the inputs.

        Raises:
            NoInputsException: When there is nothing to spend.
        """
        raise NotImplementedError()


class Manual(Strategy):
    """Uses exactly the inputs and outputs given by the caller, without any lookup.

    An input added twice is kept once; the latest resolved output wins.
    """

    def __init__(self):
        self._inputs: Dict[TransactionInput, Optional[TransactionOutput]] = {}
        self._outputs: List[TransactionOutput] = []

    def input(
        self, tx_input: TransactionInput, resolved: Optional[TransactionOutput] = None
    ):
        self._inputs[tx_input] = resolved

    def output(self, tx_output: TransactionOutput):
        self._outputs.append(tx_output)

    def resolve(
        self,
    ) -> Tuple[
        List[TransactionInput],
        List[TransactionOutput],
        Dict[TransactionInput, Optional[TransactionOutput]],
    ]:
        if not self._inputs:
            raise NoInputsException("Transaction has no inputs.")
        inputs = sorted(self._inputs, key=lambda i: i.sort_key)
        return inputs, list(self._outputs), dict(self._inputs)

    def __repr__(self):
        return f"Manual(inputs={self._inputs}, outputs={self._outputs})"
