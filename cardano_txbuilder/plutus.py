"""Plutus scripts, datums, redeemers and cost models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Type, Union

from nacl.encoding import RawEncoder
from nacl.hash import blake2b

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.exception import DeserializeException
from cardano_txbuilder.hash import (
    DATUM_HASH_SIZE,
    SCRIPT_HASH_SIZE,
    DatumHash,
    ScriptHash,
)
from cardano_txbuilder.nativescript import NativeScript
from cardano_txbuilder.serialization import (
    ArrayCBORSerializable,
    CBORSerializable,
    CBORTag,
    DictCBORSerializable,
    IndefiniteList,
    Primitive,
    RawCBOR,
    default_encoder,
    limit_primitive_type,
)

__all__ = [
    "CostModels",
    "Datum",
    "RedeemerTag",
    "ExecutionUnits",
    "PlutusScript",
    "PlutusV1Script",
    "PlutusV2Script",
    "RawPlutusData",
    "Redeemer",
    "ScriptType",
    "datum_hash",
    "script_hash",
]

_SET_TAG = 102


class CostModels(DictCBORSerializable):
    """Cost models keyed by Plutus language, 0 for V1 and 1 for V2.

    A cost model maps operation names to their cost parameters. The encoding is the
    language views map hashed into the script data hash, so it cannot be decoded.
    """

    KEY_TYPE = int
    VALUE_TYPE = dict

    def to_shallow_primitive(self) -> dict:
        views: Dict[Any, Any] = {}
        for language, params in self.items():
            if language == 0:
                # V1 keeps the encoding of the Alonzo ledger: key and parameters are both
                # CBOR inside byte strings, parameters ordered by name.
                ordered = IndefiniteList([params[name] for name in sorted(params)])
                views[cbor2.dumps(language)] = cbor2.dumps(
                    ordered, default=default_encoder
                )
            else:
                views[language] = list(params.values())
        return dict(sorted(views.items(), key=lambda kv: self.canonical_key(kv[0])))

    @classmethod
    def from_primitive(cls: Type[CostModels], value: Any) -> CostModels:
        raise DeserializeException("Language views do not keep parameter names.")


def _indefinite(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        items = [_indefinite(item) for item in value]
        return IndefiniteList(items) if items else items
    if isinstance(value, dict):
        return {_indefinite(k): _indefinite(v) for k, v in value.items()}
    if isinstance(value, CBORTag) and isinstance(value.value, (list, tuple)):
        fields = [_indefinite(item) for item in value.value]
        if fields and value.tag != _SET_TAG:
            return CBORTag(value.tag, IndefiniteList(fields))
        return CBORTag(value.tag, fields)
    return value


RawDatum = Union[dict, int, bytes, IndefiniteList, RawCBOR, CBORTag]


@dataclass(repr=True)
class RawPlutusData(CBORSerializable):
    """Plutus data in its decoded CBOR form, usually a constructor ``CBORTag``.

    Non-empty lists are written as indefinite-length arrays, as the Haskell node
    writes constructor fields.
    """

    data: RawDatum

    def to_primitive(self) -> Primitive:
        return _indefinite(self.data)

    @classmethod
    @limit_primitive_type(dict, int, bytes, IndefiniteList, RawCBOR, CBORTag)
    def from_primitive(cls: Type[RawPlutusData], value: Any) -> RawPlutusData:
        return cls(value)


Datum = Union[dict, int, bytes, IndefiniteList, RawCBOR, RawPlutusData]
"""Values a datum can hold."""


def datum_hash(datum: Datum) -> DatumHash:
    """blake2b-256 of the CBOR of ``datum``."""
    encoded = cbor2.dumps(datum, default=default_encoder)
    return DatumHash(blake2b(encoded, DATUM_HASH_SIZE, encoder=RawEncoder))


def restore_datum(value: Primitive) -> Any:
    """Wrap a decoded constructor in :class:`RawPlutusData`. Other values are kept as they are."""
    return RawPlutusData(value) if isinstance(value, CBORTag) else value


class RedeemerTag(CBORSerializable, Enum):
    """The kind of item a redeemer is attached to."""

    SPEND = 0
    MINT = 1
    CERTIFICATE = 2
    WITHDRAWAL = 3

    def to_primitive(self) -> int:
        return self.value

    @classmethod
    @limit_primitive_type(int)
    def from_primitive(cls: Type[RedeemerTag], value: int) -> RedeemerTag:
        return cls(value)


@dataclass(repr=False)
class ExecutionUnits(ArrayCBORSerializable):
    mem: int

    steps: int


@dataclass(repr=False)
class Redeemer(ArrayCBORSerializable):
    """``[tag, index, data, ex_units]``, the Babbage form of a redeemer."""

    tag: RedeemerTag

    index: int

    data: Any

    ex_units: ExecutionUnits

    @classmethod
    @limit_primitive_type(list, tuple)
    def from_primitive(cls: Type[Redeemer], values: Any) -> Redeemer:
        if len(values) != 4:
            raise DeserializeException(f"A redeemer has 4 items, got {values}")
        tag, index, data, ex_units = values
        return cls(
            RedeemerTag.from_primitive(tag),
            index,
            restore_datum(data),
            ExecutionUnits.from_primitive(ex_units),
        )


class PlutusScript(CBORSerializable, bytes):
    """Serialized Plutus script. Subclasses fix the language ``version``."""

    version: ClassVar[int]

    def to_shallow_primitive(self) -> bytes:
        return bytes(self)

    @classmethod
    def from_primitive(cls: Type[PlutusScript], value: Any) -> PlutusScript:
        if not isinstance(value, (bytes, bytearray)):
            raise DeserializeException(
                f"{cls.__name__} is restored from bytes, got {type(value).__name__}."
            )
        return cls(value)

    def __repr__(self):
        return f"{type(self).__name__}({self.hex()})"


class PlutusV1Script(PlutusScript):
    version = 1


class PlutusV2Script(PlutusScript):
    version = 2


ScriptType = Union[NativeScript, PlutusScript]


def script_hash(script: ScriptType) -> ScriptHash:
    """Hash of a native or Plutus script.

    A Plutus script is hashed behind a byte holding its language version.

    Raises:
        TypeError: When ``script`` is neither kind of script.
    """
    if isinstance(script, NativeScript):
        return script.hash()
    if isinstance(script, PlutusScript):
        return ScriptHash(
            blake2b(
                bytes([script.version]) + script, SCRIPT_HASH_SIZE, encoder=RawEncoder
            )
        )
    raise TypeError(f"Not a script: {type(script).__name__}")
