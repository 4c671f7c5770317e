"""Transaction body, outputs and the multi-asset values they carry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Type, Union

from nacl.encoding import RawEncoder
from nacl.hash import blake2b

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.certificate import Certificate
from cardano_txbuilder.exception import (
    CorruptedTxBytesException,
    DeserializeException,
    InvalidAssetNameException,
    InvalidDataException,
)
from cardano_txbuilder.hash import (
    TRANSACTION_HASH_SIZE,
    AuxiliaryDataHash,
    ConstrainedBytes,
    DatumHash,
    ScriptDataHash,
    ScriptHash,
    TransactionId,
    VerificationKeyHash,
)
from cardano_txbuilder.metadata import AuxiliaryData
from cardano_txbuilder.nativescript import NativeScript
from cardano_txbuilder.network import Network
from cardano_txbuilder.plutus import (
    Datum,
    PlutusScript,
    PlutusV1Script,
    PlutusV2Script,
    restore_datum,
)
from cardano_txbuilder.serialization import (
    ArrayCBORSerializable,
    CBORSerializable,
    CBORTag,
    DictCBORSerializable,
    MapCBORSerializable,
    cbor_field,
    default_encoder,
    limit_primitive_type,
    list_hook,
)
from cardano_txbuilder.types import typechecked
from cardano_txbuilder.witness import TransactionWitnessSet

__all__ = [
    "TransactionInput",
    "AssetName",
    "Asset",
    "MultiAsset",
    "Value",
    "TransactionOutput",
    "TransactionBody",
    "Transaction",
    "Withdrawals",
]

_INT64_RANGE = range(-(1 << 63), 1 << 63)

_EMBEDDED_CBOR_TAG = 24


@dataclass(repr=False)
class TransactionInput(ArrayCBORSerializable):
    """Reference to an output of an earlier transaction."""

    transaction_id: TransactionId

    index: int

    def __hash__(self):
        return hash(self.sort_key)

    @property
    def sort_key(self) -> Tuple[bytes, int]:
        """Inputs are ordered by transaction id bytes, then by output index."""
        return self.transaction_id.payload, self.index

    def validate(self):
        super().validate()
        if not 0 <= self.index < 1 << 32:
            raise InvalidDataException(
                f"Output index {self.index} is not an unsigned 32-bit integer."
            )


class AssetName(ConstrainedBytes):
    MAX_SIZE = 32

    SIZE_EXCEPTION = InvalidAssetNameException

    def __repr__(self):
        return f"AssetName({self.payload!r})"


FlatMultiAsset = List[Tuple[ScriptHash, List[Tuple[AssetName, int]]]]


@typechecked
class Asset(DictCBORSerializable):
    """Amounts of the assets of one policy, keyed by asset name."""

    KEY_TYPE = AssetName

    VALUE_TYPE = int

    def normalized(self) -> Asset:
        """A copy without the zero amounts, which are never encoded."""
        return Asset({name: amount for name, amount in self.items() if amount != 0})

    def to_shallow_primitive(self) -> dict:
        return super(Asset, self.normalized()).to_shallow_primitive()

    @classmethod
    def from_primitive(cls: Type[Asset], value: Any) -> Asset:
        return super().from_primitive(value).normalized()


@typechecked
class MultiAsset(DictCBORSerializable):
    """Asset amounts grouped by the policy they are minted under.

    Amounts are signed: a negative amount in a mint burns the asset. Zero amounts and
    policies left without assets are never encoded.

    Examples:

        >>> policy = ScriptHash(bytes(28))
        >>> assets = MultiAsset().add(policy, "MyAsset", 1000000)
        >>> assets.build()[0][1]
        [(AssetName(b'MyAsset'), 1000000)]
    """

    KEY_TYPE = ScriptHash

    VALUE_TYPE = Asset

    def add(
        self,
        policy_id: Union[ScriptHash, bytes],
        name: Union[AssetName, bytes, str],
        amount: int,
    ) -> MultiAsset:
        """Return a copy with ``amount`` set for the asset ``name`` of ``policy_id``.

        The receiver is left unchanged and an existing amount is overwritten.

        Args:
            policy_id (Union[ScriptHash, bytes]): Policy the asset is minted under.
            name (Union[AssetName, bytes, str]): Asset name. A str is UTF-8 encoded.
            amount (int): Signed amount of the asset.

        Raises:
            InvalidAssetNameException: When the encoded name is longer than 32 bytes.
        """
        if isinstance(name, str):
            name = name.encode("utf-8")
        if not isinstance(name, AssetName):
            name = AssetName(name)
        if not isinstance(policy_id, ScriptHash):
            policy_id = ScriptHash(policy_id)

        result = MultiAsset({p: Asset(assets) for p, assets in self.items()})
        result.setdefault(policy_id, Asset())[name] = amount
        return result

    def normalized(self) -> MultiAsset:
        """A copy without zero amounts and without the policies they leave empty."""
        result = MultiAsset()
        for policy, assets in self.items():
            kept = assets.normalized()
            if kept:
                result[policy] = kept
        return result

    def build(self) -> FlatMultiAsset:
        """Flatten into ``(policy, [(asset name, amount), ...])`` pairs in canonical order.

        The pairs are those of :meth:`normalized`, so they match the encoding. Policies
        are sorted by their bytes, which is the order mint redeemers are indexed
        against. Asset names follow the canonical CBOR key order.
        """
        kept = self.normalized()
        return [
            (
                policy,
                sorted(kept[policy].items(), key=lambda a: self.canonical_key(a[0])),
            )
            for policy in sorted(kept, key=lambda p: p.payload)
        ]

    @classmethod
    def from_flattened(cls, assets: FlatMultiAsset) -> MultiAsset:
        """Inverse of :meth:`build`."""
        return cls({policy: Asset(dict(names)) for policy, names in assets})

    def count(self, criteria: Callable[[ScriptHash, AssetName, int], bool]) -> int:
        """Number of assets for which ``criteria(policy, name, amount)`` holds."""
        return sum(
            1
            for policy, assets in self.items()
            for name, amount in assets.items()
            if criteria(policy, name, amount)
        )

    def to_shallow_primitive(self) -> dict:
        return super(MultiAsset, self.normalized()).to_shallow_primitive()

    @classmethod
    def from_primitive(cls: Type[MultiAsset], value: Any) -> MultiAsset:
        return super().from_primitive(value).normalized()


@typechecked
@dataclass(repr=False)
class Value(ArrayCBORSerializable):
    """Lovelace plus native assets. Written as a bare integer when it holds no asset."""

    coin: int = 0

    multi_asset: MultiAsset = field(default_factory=MultiAsset)

    def __eq__(self, other):
        if isinstance(other, int):
            other = Value(other)
        return (
            isinstance(other, Value)
            and self.coin == other.coin
            and self.multi_asset == other.multi_asset
        )

    def to_shallow_primitive(self):
        if self.multi_asset.normalized():
            return super().to_shallow_primitive()
        return self.coin


def _embedded(value: Any) -> CBORTag:
    return CBORTag(_EMBEDDED_CBOR_TAG, cbor2.dumps(value, default=default_encoder))


def _unembedded(value: Any) -> Any:
    if not isinstance(value, CBORTag) or value.tag != _EMBEDDED_CBOR_TAG:
        raise DeserializeException(f"Expected embedded CBOR, got {value!r}")
    return cbor2.loads(value.value)


def _script_ref(script: Union[NativeScript, PlutusScript]) -> CBORTag:
    if isinstance(script, NativeScript):
        return _embedded([0, script])
    return _embedded([script.version, bytes(script)])


_PLUTUS_VERSIONS = {1: PlutusV1Script, 2: PlutusV2Script}


def _restore_script(value: Any) -> Union[NativeScript, PlutusScript]:
    language, script = _unembedded(value)
    if language == 0:
        return NativeScript.from_primitive(script)
    if language in _PLUTUS_VERSIONS:
        return _PLUTUS_VERSIONS[language](script)
    raise DeserializeException(f"Unknown script language: {language}")


def _restore_amount(value: Any) -> Value:
    return Value(value) if isinstance(value, int) else Value.from_primitive(value)


@dataclass(repr=False)
class TransactionOutput(CBORSerializable):
    """An output of a transaction.

    The address is kept as raw bytes, and anything implementing ``__bytes__`` (or a hex
    string) is converted. Outputs are written as Babbage maps, unless ``post_alonzo`` is
    False and the output has neither an inline datum nor a reference script, in which
    case the legacy array form is used.
    """

    address: bytes

    amount: Value

    datum_hash: Optional[DatumHash] = None

    datum: Optional[Datum] = None

    script: Optional[Union[NativeScript, PlutusScript]] = None

    post_alonzo: bool = True

    def __post_init__(self):
        if isinstance(self.address, str):
            self.address = bytes.fromhex(self.address)
        elif not isinstance(self.address, bytes):
            self.address = bytes(self.address)
        if isinstance(self.amount, int):
            self.amount = Value(self.amount)

    def validate(self):
        super().validate()
        if self.amount.coin < 0 or self.amount.multi_asset.count(
            lambda p, n, v: v < 0
        ):
            raise InvalidDataException(
                f"Output amounts cannot be negative: {self.amount}"
            )

    def is_multiasset(self) -> bool:
        """Whether the output holds a non-zero amount of any native asset."""
        return self.amount.multi_asset.count(lambda p, n, v: v != 0) > 0

    @property
    def is_legacy(self) -> bool:
        return not self.post_alonzo and self.datum is None and self.script is None

    def to_shallow_primitive(self) -> Union[list, dict]:
        if self.is_legacy:
            legacy: List[Any] = [self.address, self.amount]
            if self.datum_hash is not None:
                legacy.append(self.datum_hash)
            return legacy

        entries = {0: self.address, 1: self.amount}
        if self.datum_hash is not None:
            entries[2] = [0, self.datum_hash]
        elif self.datum is not None:
            entries[2] = [1, _embedded(self.datum)]
        if self.script is not None:
            entries[3] = _script_ref(self.script)
        return entries

    @classmethod
    @limit_primitive_type(list, tuple, dict)
    def from_primitive(
        cls: Type[TransactionOutput], value: Any
    ) -> TransactionOutput:
        if not isinstance(value, dict):
            if len(value) not in (2, 3):
                raise DeserializeException(f"Malformed legacy output: {value}")
            return cls(
                value[0],
                _restore_amount(value[1]),
                datum_hash=DatumHash(value[2]) if len(value) == 3 else None,
                post_alonzo=False,
            )

        unknown = set(value) - {0, 1, 2, 3}
        if unknown:
            raise DeserializeException(f"Unexpected output keys: {sorted(unknown)}")
        output = cls(value[0], _restore_amount(value[1]))
        if 2 in value:
            kind, datum = value[2]
            if kind == 0:
                output.datum_hash = DatumHash(datum)
            else:
                output.datum = restore_datum(_unembedded(datum))
        if 3 in value:
            output.script = _restore_script(value[3])
        return output


class Withdrawals(DictCBORSerializable):
    """Amounts withdrawn, keyed by reward account bytes."""

    KEY_TYPE = bytes

    VALUE_TYPE = int


@dataclass(repr=False)
class TransactionBody(MapCBORSerializable):
    inputs: List[TransactionInput] = cbor_field(key=0, default_factory=list)

    outputs: List[TransactionOutput] = cbor_field(
        key=1, default_factory=list, object_hook=list_hook(TransactionOutput)
    )

    fee: int = cbor_field(key=2, default=0)

    ttl: Optional[int] = cbor_field(key=3, optional=True)

    certificates: Optional[List[Certificate]] = cbor_field(key=4, optional=True)

    withdraws: Optional[Withdrawals] = cbor_field(key=5, optional=True)

    update: Any = cbor_field(key=6, optional=True)

    auxiliary_data_hash: Optional[AuxiliaryDataHash] = cbor_field(key=7, optional=True)

    validity_start: Optional[int] = cbor_field(key=8, optional=True)

    mint: Optional[MultiAsset] = cbor_field(key=9, optional=True)

    script_data_hash: Optional[ScriptDataHash] = cbor_field(key=11, optional=True)

    collateral: Optional[List[TransactionInput]] = cbor_field(key=13, optional=True)

    required_signers: Optional[List[VerificationKeyHash]] = cbor_field(
        key=14, optional=True
    )

    network_id: Optional[Network] = cbor_field(key=15, optional=True)

    collateral_return: Optional[TransactionOutput] = cbor_field(key=16, optional=True)

    total_collateral: Optional[int] = cbor_field(key=17, optional=True)

    reference_inputs: Optional[List[TransactionInput]] = cbor_field(
        key=18, optional=True
    )

    def validate(self):
        super().validate()
        if self.mint and self.mint.count(lambda p, n, v: v not in _INT64_RANGE):
            raise InvalidDataException(
                f"Mint amounts have to fit in a signed 64-bit integer: {self.mint}"
            )

    def hash(self) -> bytes:
        return blake2b(self.to_cbor(), TRANSACTION_HASH_SIZE, encoder=RawEncoder)

    @property
    def id(self) -> TransactionId:
        return TransactionId(self.hash())


@dataclass(repr=False)
class Transaction(ArrayCBORSerializable):
    transaction_body: TransactionBody

    transaction_witness_set: TransactionWitnessSet

    valid: bool = True

    auxiliary_data: Optional[AuxiliaryData] = cbor_field(optional=True)

    @property
    def json_type(self) -> str:
        signed = self.transaction_witness_set.vkey_witnesses is not None
        return f"{'Signed' if signed else 'Unwitnessed'} Tx BabbageEra"

    @property
    def json_description(self) -> str:
        return "Ledger Cddl Format"

    @property
    def id(self) -> TransactionId:
        return self.transaction_body.id

    @classmethod
    def from_cbor(cls: Type[Transaction], payload: Union[str, bytes]) -> Transaction:
        """Decode a transaction from its CBOR bytes or hex.

        Raises:
            CorruptedTxBytesException: When ``payload`` is not a well-formed transaction.
        """
        try:
            return super().from_cbor(payload)
        except Exception as e:
            raise CorruptedTxBytesException(f"Cannot decode transaction: {e}") from e
