"""Native (timelock) scripts: signature and validity interval conditions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Type

from nacl.encoding import RawEncoder
from nacl.hash import blake2b

from cardano_txbuilder.exception import DeserializeException
from cardano_txbuilder.hash import SCRIPT_HASH_SIZE, ScriptHash, VerificationKeyHash
from cardano_txbuilder.serialization import (
    CodedSerializable,
    cbor_field,
    limit_primitive_type,
    list_hook,
)

__all__ = [
    "NativeScript",
    "ScriptPubkey",
    "ScriptAll",
    "ScriptAny",
    "ScriptNofK",
    "InvalidBefore",
    "InvalidHereAfter",
]


@dataclass
class NativeScript(CodedSerializable):
    """Base of the native script constructors.

    Decoding through this class picks the constructor from the leading code.
    """

    @classmethod
    @limit_primitive_type(list, tuple)
    def from_primitive(cls: Type[NativeScript], value: Any) -> NativeScript:
        if not value:
            raise DeserializeException("A native script cannot be empty.")
        script_type = _SCRIPT_TYPES.get(value[0])
        if script_type is None:
            raise DeserializeException(f"Unknown native script code: {value[0]}")
        return super(NativeScript, script_type).from_primitive(value)

    def hash(self) -> ScriptHash:
        """Policy id of the script: blake2b-224 of a zero language byte and the script CBOR."""
        return ScriptHash(
            blake2b(b"\x00" + self.to_cbor(), SCRIPT_HASH_SIZE, encoder=RawEncoder)
        )


def _sub_scripts() -> Any:
    return cbor_field(object_hook=list_hook(NativeScript))


@dataclass
class ScriptPubkey(NativeScript):
    CODE: ClassVar[int] = 0

    key_hash: VerificationKeyHash


@dataclass
class ScriptAll(NativeScript):
    CODE: ClassVar[int] = 1

    native_scripts: List[NativeScript] = _sub_scripts()


@dataclass
class ScriptAny(NativeScript):
    CODE: ClassVar[int] = 2

    native_scripts: List[NativeScript] = _sub_scripts()


@dataclass
class ScriptNofK(NativeScript):
    """Satisfied when at least ``n`` of ``native_scripts`` are."""

    CODE: ClassVar[int] = 3

    n: int

    native_scripts: List[NativeScript] = _sub_scripts()


@dataclass
class InvalidBefore(NativeScript):
    """Satisfied from slot ``before`` on."""

    CODE: ClassVar[int] = 4

    before: int


@dataclass
class InvalidHereAfter(NativeScript):
    """Satisfied before slot ``after``."""

    CODE: ClassVar[int] = 5

    after: int


_SCRIPT_TYPES: Dict[int, Type[NativeScript]] = {
    t.CODE: t
    for t in (
        ScriptPubkey,
        ScriptAll,
        ScriptAny,
        ScriptNofK,
        InvalidBefore,
        InvalidHereAfter,
    )
}
