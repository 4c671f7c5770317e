"""Transaction witness set."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, List, Optional

from cardano_txbuilder.nativescript import NativeScript
from cardano_txbuilder.plutus import (
    PlutusV1Script,
    PlutusV2Script,
    Redeemer,
    restore_datum,
)
from cardano_txbuilder.serialization import MapCBORSerializable, cbor_field, list_hook

__all__ = ["TransactionWitnessSet"]


def _restore_datums(values: List[Any]) -> List[Any]:
    return [restore_datum(v) for v in values]


@dataclass(repr=False)
class TransactionWitnessSet(MapCBORSerializable):
    """Scripts, datums and redeemers that witness a transaction.

    Signatures are added by the signing tool, after the builder is done. The builder
    only carries verification key and bootstrap witnesses through a decode.
    """

    vkey_witnesses: Optional[List[Any]] = cbor_field(key=0, optional=True)

    native_scripts: Optional[List[NativeScript]] = cbor_field(
        key=1, optional=True, object_hook=list_hook(NativeScript)
    )

    bootstrap_witness: Optional[List[Any]] = cbor_field(key=2, optional=True)

    plutus_v1_script: Optional[List[PlutusV1Script]] = cbor_field(key=3, optional=True)

    plutus_data: Optional[List[Any]] = cbor_field(
        key=4, optional=True, object_hook=_restore_datums
    )

    redeemer: Optional[List[Redeemer]] = cbor_field(
        key=5, optional=True, object_hook=list_hook(Redeemer)
    )

    plutus_v2_script: Optional[List[PlutusV2Script]] = cbor_field(key=6, optional=True)

    def is_empty(self) -> bool:
        return all(not getattr(self, f.name) for f in fields(self))
