"""Auxiliary data: transaction metadata and the scripts that may come with it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Type, Union

from nacl.encoding import RawEncoder
from nacl.hash import blake2b

from cardano_txbuilder.exception import DeserializeException, InvalidArgumentException
from cardano_txbuilder.hash import AUXILIARY_DATA_HASH_SIZE, AuxiliaryDataHash
from cardano_txbuilder.nativescript import NativeScript
from cardano_txbuilder.serialization import (
    CBORSerializable,
    CBORTag,
    DictCBORSerializable,
    MapCBORSerializable,
    Primitive,
    cbor_field,
    limit_primitive_type,
    list_hook,
)

__all__ = ["Metadata", "AlonzoMetadata", "AuxiliaryData"]


class Metadata(DictCBORSerializable):
    """Transaction metadata, a map from integer labels to metadatums (CIP-10).

    A metadatum is a map, list, int, bytes or str. Bytes and strings hold at most
    ``MAX_ITEM_SIZE`` bytes.

    Raises:
        InvalidArgumentException: On construction, when a label is not an int or a
            metadatum is not valid.
    """

    KEY_TYPE = int
    VALUE_TYPE = Any

    MAX_ITEM_SIZE = 64

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for label, value in self.items():
            if not isinstance(label, int):
                raise InvalidArgumentException(
                    f"Metadata labels are ints, got {label!r}."
                )
            self._check_metadatum(value)

    @classmethod
    def _check_metadatum(cls, value: Any):
        if isinstance(value, (str, bytes)):
            size = len(value.encode("utf-8") if isinstance(value, str) else value)
            if size > cls.MAX_ITEM_SIZE:
                raise InvalidArgumentException(
                    f"Metadatum of {size} bytes is over the {cls.MAX_ITEM_SIZE} byte limit."
                )
        elif isinstance(value, list):
            for item in value:
                cls._check_metadatum(item)
        elif isinstance(value, dict):
            for item in value.values():
                cls._check_metadatum(item)
        elif not isinstance(value, int):
            raise InvalidArgumentException(
                f"{type(value).__name__} is not a metadatum type."
            )


@dataclass
class AlonzoMetadata(MapCBORSerializable):
    """Metadata together with auxiliary scripts, written under CBOR tag 259."""

    TAG: ClassVar[int] = 259

    metadata: Optional[Metadata] = cbor_field(key=0, optional=True)

    native_scripts: Optional[List[NativeScript]] = cbor_field(
        key=1, optional=True, object_hook=list_hook(NativeScript)
    )

    plutus_v1_scripts: Optional[List[bytes]] = cbor_field(key=2, optional=True)

    plutus_v2_scripts: Optional[List[bytes]] = cbor_field(key=3, optional=True)

    def to_primitive(self) -> Primitive:
        return CBORTag(self.TAG, super().to_primitive())

    @classmethod
    @limit_primitive_type(CBORTag)
    def from_primitive(cls: Type[AlonzoMetadata], value: Any) -> AlonzoMetadata:
        if value.tag != cls.TAG:
            raise DeserializeException(f"Expected tag {cls.TAG}, got {value.tag}.")
        return super().from_primitive(value.value)


@dataclass
class AuxiliaryData(CBORSerializable):
    data: Union[Metadata, AlonzoMetadata]

    def to_primitive(self) -> Primitive:
        return self.data.to_primitive()

    @classmethod
    def from_primitive(cls: Type[AuxiliaryData], value: Any) -> AuxiliaryData:
        for kind in (AlonzoMetadata, Metadata):
            try:
                return cls(kind.from_primitive(value))
            except DeserializeException:
                continue
        raise DeserializeException(f"Not auxiliary data: {value!r}")

    def hash(self) -> AuxiliaryDataHash:
        """blake2b-256 of the encoded auxiliary data, as the body references it."""
        return AuxiliaryDataHash(
            blake2b(self.to_cbor(), AUXILIARY_DATA_HASH_SIZE, encoder=RawEncoder)
        )
