"""Hashes computed over several parts of a transaction."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from nacl.encoding import RawEncoder
from nacl.hash import blake2b

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.hash import SCRIPT_DATA_HASH_SIZE, ScriptDataHash
from cardano_txbuilder.plutus import CostModels, Datum, Redeemer
from cardano_txbuilder.serialization import default_encoder

__all__ = ["script_data_hash"]


def script_data_hash(
    redeemers: Optional[List[Redeemer]] = None,
    datums: Optional[List[Datum]] = None,
    cost_models: Optional[Union[CostModels, Dict]] = None,
) -> ScriptDataHash:
    """Hash binding the redeemers, datums and language views of a transaction.

    The hashed bytes are the encoded redeemer list, then the encoded datum list
    (nothing when there are no datums), then the language views. A transaction
    without redeemers hashes an empty list and an empty map in their place.

    Args:
        redeemers (Optional[List[Redeemer]]): Redeemers of the witness set.
        datums (Optional[List[Datum]]): Datums of the witness set.
        cost_models (Optional[Union[CostModels, Dict]]): Cost models of the Plutus
            languages the transaction runs.

    Returns:
        ScriptDataHash: blake2b-256 of the concatenation.
    """
    if redeemers:
        views = CostModels() if cost_models is None else cost_models
    else:
        redeemers, views = [], {}

    def encode(value) -> bytes:
        return cbor2.dumps(value, default=default_encoder)

    preimage = encode(redeemers) + (encode(datums) if datums else b"") + encode(views)
    return ScriptDataHash(blake2b(preimage, SCRIPT_DATA_HASH_SIZE, encoder=RawEncoder))
