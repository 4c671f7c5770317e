from test.cardano_txbuilder.util import check_two_way_cbor

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.nativescript import InvalidBefore
from cardano_txbuilder.plutus import (
    ExecutionUnits,
    PlutusV2Script,
    RawPlutusData,
    Redeemer,
    RedeemerTag,
)
from cardano_txbuilder.witness import TransactionWitnessSet


def test_empty_witness_set():
    witness = TransactionWitnessSet()
    assert witness.is_empty()
    assert witness.to_cbor_hex() == "a0"


def test_witness_set_keys():
    witness = TransactionWitnessSet(
        native_scripts=[InvalidBefore(1)],
        plutus_v2_script=[PlutusV2Script(b"magic script")],
    )
    assert not witness.is_empty()
    assert list(witness.to_primitive().keys()) == [1, 6]
    check_two_way_cbor(witness)


def test_witness_set_plutus_data_and_redeemers():
    witness = TransactionWitnessSet(
        plutus_data=[RawPlutusData(cbor2.CBORTag(121, [])), 42],
        redeemer=[Redeemer(RedeemerTag.SPEND, 0, 42, ExecutionUnits(1, 2))],
    )
    restored = TransactionWitnessSet.from_cbor(witness.to_cbor())
    assert restored.plutus_data == witness.plutus_data
    assert restored.redeemer == witness.redeemer
