from __future__ import annotations

from copy import copy as shallow_copy
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.certificate import Certificate
from cardano_txbuilder.exception import (
    BuilderConsumedException,
    InvalidCollateralInputException,
    InvalidCollateralReturnException,
    InvalidTimestampException,
    MalformedDatumException,
    MalformedScriptException,
)
from cardano_txbuilder.fee import FeeStrategy, LinearFee, patch_fee
from cardano_txbuilder.hash import ScriptDataHash, ScriptHash, VerificationKeyHash
from cardano_txbuilder.logging import log_state, logger
from cardano_txbuilder.metadata import AuxiliaryData
from cardano_txbuilder.nativescript import NativeScript
from cardano_txbuilder.network import NetworkParams
from cardano_txbuilder.plutus import (
    CostModels,
    Datum,
    ExecutionUnits,
    PlutusV1Script,
    PlutusV2Script,
    Redeemer,
    restore_datum,
)
from cardano_txbuilder.purpose import CanonicalOrder, RedeemerPurpose
from cardano_txbuilder.strategy import Manual, Strategy
from cardano_txbuilder.transaction import (
    MultiAsset,
    Transaction,
    TransactionBody,
    TransactionInput,
    TransactionOutput,
    Withdrawals,
)
from cardano_txbuilder.utils import script_data_hash
from cardano_txbuilder.witness import TransactionWitnessSet

__all__ = ["TransactionBuilder"]


@dataclass
class TransactionBuilder:
    """A class builder that assembles a transaction from its parts.

    Every method that changes the configuration consumes the builder it is called on and returns its
    successor, so calls are chained::

        tx = (
            TransactionBuilder(NetworkParams.mainnet())
            .input(tx_input, resolved_output)
            .output(tx_output)
            .valid_until(1618430000)
            .build()
        )

    A consumed builder raises :class:`BuilderConsumedException` when used again. Use :meth:`copy` to keep a
    snapshot that can be built or extended independently.
    """

    network_params: NetworkParams = field(default_factory=NetworkParams.mainnet)

    strategy: Strategy = field(default_factory=Manual)
    """Collects inputs and outputs and decides how inputs are resolved."""

    fee_strategy: FeeStrategy = field(default_factory=LinearFee)
    """Computes the fee when no explicit fee is set."""

    cost_models: Optional[CostModels] = field(default=None)
    """Cost models hashed into the script data hash, keyed by language (0 for V1, 1 for V2)."""

    _reference_inputs: Dict[TransactionInput, Optional[TransactionOutput]] = field(
        init=False, default_factory=dict
    )

    _collateral_inputs: Dict[TransactionInput, Optional[TransactionOutput]] = field(
        init=False, default_factory=dict
    )

    _collateral_return: Optional[TransactionOutput] = field(init=False, default=None)

    _mint: Optional[MultiAsset] = field(init=False, default=None)

    _valid_after: Optional[int] = field(init=False, default=None)

    _valid_until: Optional[int] = field(init=False, default=None)

    _withdrawals: Dict[bytes, int] = field(init=False, default_factory=dict)

    _certificates: List[Certificate] = field(init=False, default_factory=list)

    _native_scripts: List[NativeScript] = field(init=False, default_factory=list)

    _plutus_v1_scripts: List[PlutusV1Script] = field(init=False, default_factory=list)

    _plutus_v2_scripts: List[PlutusV2Script] = field(init=False, default_factory=list)

    _plutus_data: List[Datum] = field(init=False, default_factory=list)

    _redeemers: Dict[RedeemerPurpose, Tuple[Any, ExecutionUnits]] = field(
        init=False, default_factory=dict
    )

    _required_signers: List[VerificationKeyHash] = field(
        init=False, default_factory=list
    )

    _fee: Optional[int] = field(init=False, default=None)

    _script_data_hash: Optional[ScriptDataHash] = field(init=False, default=None)

    _auxiliary_data: Optional[AuxiliaryData] = field(init=False, default=None)

    _include_network_id: bool = field(init=False, default=False)

    _consumed: bool = field(init=False, default=False)

    def _consume(self):
        if self._consumed:
            raise BuilderConsumedException(
                "This builder has already been consumed. Continue with the builder returned by the "
                "last call, or keep a snapshot with copy()."
            )
        self._consumed = True

    def _take(self) -> TransactionBuilder:
        self._consume()
        successor = shallow_copy(self)
        successor._consumed = False
        return successor

    def copy(self) -> TransactionBuilder:
        """Return an independent snapshot of this builder. The receiver is not consumed.

        Raises:
            BuilderConsumedException: When this builder has already been consumed.
        """
        if self._consumed:
            raise BuilderConsumedException("Cannot copy a consumed builder.")
        return deepcopy(self)

    def input(
        self, tx_input: TransactionInput, resolved: Optional[TransactionOutput] = None
    ) -> TransactionBuilder:
        """Spend an input.

        Args:
            tx_input (TransactionInput): Input to spend.
            resolved (Optional[TransactionOutput]): Output the input points at. Leave it empty when the
                output is looked up outside of the builder.

        Returns:
            TransactionBuilder: Successor of the current builder.
        """
        builder = self._take()
        builder.strategy.input(tx_input, resolved)
        return builder

    def output(self, tx_output: TransactionOutput) -> TransactionBuilder:
        builder = self._take()
        builder.strategy.output(tx_output)
        return builder

    def reference_input(
        self, tx_input: TransactionInput, resolved: Optional[TransactionOutput] = None
    ) -> TransactionBuilder:
        builder = self._take()
        builder._reference_inputs = {**builder._reference_inputs, tx_input: resolved}
        return builder

    def collateral_input(
        self, tx_input: TransactionInput, resolved: Optional[TransactionOutput] = None
    ) -> TransactionBuilder:
        """Add a collateral input. A resolved collateral output must hold ADA only."""
        builder = self._take()
        builder._collateral_inputs = {**builder._collateral_inputs, tx_input: resolved}
        return builder

    def collateral_return(self, tx_output: TransactionOutput) -> TransactionBuilder:
        builder = self._take()
        builder._collateral_return = tx_output
        return builder

    def mint(self, assets: MultiAsset) -> TransactionBuilder:
        """Set the assets to mint. Negative amounts burn. Replaces any previously set mint."""
        builder = self._take()
        builder._mint = assets
        return builder

    def valid_after(self, timestamp: int) -> TransactionBuilder:
        """Set the POSIX time (seconds) from which the transaction is valid."""
        builder = self._take()
        builder._valid_after = timestamp
        return builder

    def valid_until(self, timestamp: int) -> TransactionBuilder:
        """Set the POSIX time (seconds) until which the transaction is valid."""
        builder = self._take()
        builder._valid_until = timestamp
        return builder

    def withdrawal(self, reward_account: bytes, amount: int) -> TransactionBuilder:
        builder = self._take()
        builder._withdrawals = {**builder._withdrawals, reward_account: amount}
        return builder

    def certificate(self, certificate: Certificate) -> TransactionBuilder:
        builder = self._take()
        builder._certificates = builder._certificates + [certificate]
        return builder

    def native_script(self, script: NativeScript) -> TransactionBuilder:
        builder = self._take()
        builder._native_scripts = builder._native_scripts + [script]
        return builder

    def native_script_cbor(self, payload: Union[str, bytes]) -> TransactionBuilder:
        """Attach a native script given as CBOR bytes or hex.

        Raises:
            MalformedScriptException: When ``payload`` is not a native script.
        """
        try:
            script = NativeScript.from_cbor(payload)
        except Exception as e:
            raise MalformedScriptException(
                f"Could not decode native script: {payload!r}"
            ) from e
        return self.native_script(script)

    def plutus_v1_script(self, script: PlutusV1Script) -> TransactionBuilder:
        builder = self._take()
        builder._plutus_v1_scripts = builder._plutus_v1_scripts + [script]
        return builder

    def plutus_v2_script(self, script: PlutusV2Script) -> TransactionBuilder:
        builder = self._take()
        builder._plutus_v2_scripts = builder._plutus_v2_scripts + [script]
        return builder

    def plutus_data(self, datum: Datum) -> TransactionBuilder:
        builder = self._take()
        builder._plutus_data = builder._plutus_data + [datum]
        return builder

    def plutus_data_cbor(self, payload: Union[str, bytes]) -> TransactionBuilder:
        """Attach a datum given as CBOR bytes or hex.

        Raises:
            MalformedDatumException: When ``payload`` is not well-formed CBOR.
        """
        try:
            if isinstance(payload, str):
                payload = bytes.fromhex(payload)
            datum = restore_datum(cbor2.loads(payload))
        except Exception as e:
            raise MalformedDatumException(f"Could not decode datum: {payload!r}") from e
        return self.plutus_data(datum)

    def redeemer(
        self, purpose: RedeemerPurpose, data: Any, ex_units: ExecutionUnits
    ) -> TransactionBuilder:
        """Attach a redeemer to a purpose. The index is resolved when the transaction is built.

        Args:
            purpose (RedeemerPurpose): The item the redeemer is for, e.g. ``Spend(tx_input)``.
            data (Any): Redeemer datum.
            ex_units (ExecutionUnits): Execution budget of the script run.

        Returns:
            TransactionBuilder: Successor of the current builder.
        """
        builder = self._take()
        builder._redeemers = {**builder._redeemers, purpose: (data, ex_units)}
        return builder

    def require_signer(
        self, signer: Union[VerificationKeyHash, bytes]
    ) -> TransactionBuilder:
        if not isinstance(signer, VerificationKeyHash):
            signer = VerificationKeyHash(signer)
        builder = self._take()
        builder._required_signers = builder._required_signers + [signer]
        return builder

    def fee(self, fee: int) -> TransactionBuilder:
        """Use ``fee`` as is instead of asking the fee strategy."""
        builder = self._take()
        builder._fee = fee
        return builder

    def script_data_hash(self, data_hash: ScriptDataHash) -> TransactionBuilder:
        """Use ``data_hash`` instead of the hash computed from redeemers, datums and cost models."""
        builder = self._take()
        builder._script_data_hash = data_hash
        return builder

    def auxiliary_data(self, auxiliary_data: AuxiliaryData) -> TransactionBuilder:
        builder = self._take()
        builder._auxiliary_data = auxiliary_data
        return builder

    def include_network_id(self) -> TransactionBuilder:
        """Write the network id of :attr:`network_params` into the transaction body."""
        builder = self._take()
        builder._include_network_id = True
        return builder

    def _validate_collateral(self):
        for tx_input, resolved in self._collateral_inputs.items():
            if resolved is not None and resolved.is_multiasset():
                raise InvalidCollateralInputException(
                    f"Collateral input {tx_input} holds assets other than ADA."
                )
        if self._collateral_return is not None and self._collateral_return.is_multiasset():
            raise InvalidCollateralReturnException(
                "Collateral return holds assets other than ADA."
            )

    def _convert_timestamp(self, timestamp: Optional[int]) -> Optional[int]:
        if timestamp is None:
            return None
        slot = self.network_params.timestamp_to_slot(timestamp)
        if slot is None:
            raise InvalidTimestampException(
                f"Timestamp {timestamp} is before the genesis of the network "
                f"({self.network_params.genesis_time})."
            )
        return slot

    def _resolve_redeemers(self, order: CanonicalOrder) -> List[Redeemer]:
        redeemers = []
        for purpose, (data, ex_units) in self._redeemers.items():
            index = purpose.resolve(order)
            logger.debug(f"Redeemer of {purpose} resolved to index {index}.")
            redeemers.append(Redeemer(purpose.tag, index, data, ex_units))
        redeemers.sort(key=lambda r: (r.tag.value, r.index))
        return redeemers

    def _language_views(self) -> CostModels:
        languages = []
        if self._plutus_v1_scripts:
            languages.append(0)
        if self._plutus_v2_scripts:
            languages.append(1)
        cost_models = self.cost_models or CostModels()
        return CostModels({lang: cost_models.get(lang, {}) for lang in languages})

    def _build_script_data_hash(
        self, redeemers: List[Redeemer]
    ) -> Optional[ScriptDataHash]:
        if self._script_data_hash is not None:
            return self._script_data_hash
        if redeemers or self._plutus_data:
            return script_data_hash(
                redeemers, self._plutus_data, self._language_views()
            )
        return None

    def _build_witness_set(self, redeemers: List[Redeemer]) -> TransactionWitnessSet:
        return TransactionWitnessSet(
            native_scripts=self._native_scripts or None,
            plutus_v1_script=self._plutus_v1_scripts or None,
            plutus_data=self._plutus_data or None,
            redeemer=redeemers or None,
            plutus_v2_script=self._plutus_v2_scripts or None,
        )

    @log_state
    def build(self) -> Transaction:
        """Validate the configuration and assemble the transaction. Consumes the builder.

        Inputs, reference inputs and collateral inputs are sorted by transaction id and index, and redeemers
        are given the index of their target in that order (inputs) or in the order of minting policies.

        Returns:
            Transaction: The assembled transaction, with its fee set.

        Raises:
            BuilderConsumedException: When this builder has already been consumed.
            NoInputsException: When no input is set.
            InvalidCollateralInputException: When a resolved collateral input holds native assets.
            InvalidCollateralReturnException: When the collateral return holds native assets.
            InvalidTimestampException: When the validity interval is before the network genesis.
            RedeemerPurposeMissingException: When the target of a redeemer is not part of the transaction.
        """
        self._consume()

        inputs, outputs, _ = self.strategy.resolve()
        self._validate_collateral()
        ttl = self._convert_timestamp(self._valid_until)
        validity_start = self._convert_timestamp(self._valid_after)

        mint = self._mint.build() if self._mint is not None else None
        order = CanonicalOrder(
            inputs=tuple(inputs),
            mint_policies=tuple(policy for policy, _ in mint) if mint else (),
        )
        redeemers = self._resolve_redeemers(order)

        body = TransactionBody(
            inputs=inputs,
            outputs=outputs,
            fee=0 if self._fee is None else self._fee,
            ttl=ttl,
            certificates=self._certificates or None,
            withdraws=Withdrawals(self._withdrawals) if self._withdrawals else None,
            auxiliary_data_hash=(
                self._auxiliary_data.hash() if self._auxiliary_data else None
            ),
            validity_start=validity_start,
            mint=MultiAsset.from_flattened(mint) if mint else None,
            script_data_hash=self._build_script_data_hash(redeemers),
            collateral=_sorted_inputs(self._collateral_inputs),
            required_signers=self._required_signers or None,
            network_id=(
                self.network_params.network if self._include_network_id else None
            ),
            collateral_return=self._collateral_return,
            reference_inputs=_sorted_inputs(self._reference_inputs),
        )
        tx = Transaction(
            body,
            self._build_witness_set(redeemers),
            auxiliary_data=self._auxiliary_data,
        )

        if self._fee is not None:
            return tx

        fee = self.fee_strategy.calculate(tx)
        logger.debug(f"Fee calculated by {self.fee_strategy}: {fee}")
        return patch_fee(tx, fee)


def _sorted_inputs(
    inputs: Dict[TransactionInput, Optional[TransactionOutput]]
) -> Optional[List[TransactionInput]]:
    if not inputs:
        return None
    return sorted(inputs, key=lambda i: i.sort_key)
