from test.cardano_txbuilder.util import check_two_way_cbor

import pytest

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.exception import DeserializeException
from cardano_txbuilder.hash import ScriptDataHash, ScriptHash
from cardano_txbuilder.nativescript import InvalidHereAfter
from cardano_txbuilder.plutus import (
    CostModels,
    ExecutionUnits,
    PlutusV1Script,
    PlutusV2Script,
    RawPlutusData,
    Redeemer,
    RedeemerTag,
    datum_hash,
    script_hash,
)
from cardano_txbuilder.utils import script_data_hash

UNIT = RawPlutusData(cbor2.CBORTag(121, []))


def test_datum_hash():
    assert str(datum_hash(42)) == (
        "9e1199a988ba72ffd6e9c269cadb3b53b5f360ff99f112d9b2ee30c4d74ad88b"
    )
    assert str(datum_hash(UNIT)) == (
        "923918e403bf43c34b4ef6b48eb2ee04babed17320d8d1b9ff9ad086e86f44ec"
    )


def test_raw_plutus_data_indefinite_fields():
    datum = RawPlutusData(cbor2.CBORTag(121, [1, [2, 3]]))
    assert datum.to_cbor_hex() == "d8799f019f0203ffff"
    restored = RawPlutusData.from_cbor(datum.to_cbor())
    assert restored.to_cbor_hex() == "d8799f019f0203ffff"


def test_raw_plutus_data_wrong_type():
    with pytest.raises(DeserializeException):
        RawPlutusData.from_primitive("text")


def test_redeemer():
    redeemer = Redeemer(RedeemerTag.MINT, 2, 42, ExecutionUnits(1000, 2000))
    assert redeemer.to_cbor_hex() == "840102182a821903e81907d0"
    check_two_way_cbor(redeemer)


def test_redeemer_wrong_length():
    with pytest.raises(DeserializeException):
        Redeemer.from_primitive([0, 0, 42])


def test_redeemer_constructor_datum():
    redeemer = Redeemer(RedeemerTag.SPEND, 0, UNIT, ExecutionUnits(1, 1))
    restored = Redeemer.from_cbor(redeemer.to_cbor())
    assert restored.data == UNIT


def test_plutus_script_hash():
    assert script_hash(PlutusV1Script(b"magic script")) == ScriptHash.from_primitive(
        "da4004e6081af7135e9e3b7dcabb5413ca76eeacad26ea6db049976f"
    )
    assert script_hash(PlutusV2Script(b"magic script")) == ScriptHash.from_primitive(
        "09e533af06d9df13c97cfb9ef17ea984bdc7c0f5e8d3a1935bfcafbf"
    )
    assert script_hash(InvalidHereAfter(1)) == InvalidHereAfter(1).hash()


def test_cost_models_language_views():
    assert CostModels({0: {"b": 2, "a": 1}}).to_cbor_hex() == "a14100449f0102ff"
    assert CostModels({1: {"b": 2, "a": 1}}).to_cbor_hex() == "a101820201"
    assert (
        CostModels({0: {"a": 1}, 1: {"a": 2}}).to_cbor_hex() == "a20181024100439f01ff"
    )
    with pytest.raises(DeserializeException):
        CostModels.from_primitive({1: [1, 2]})


def test_script_data_hash():
    redeemers = [Redeemer(RedeemerTag.SPEND, 1, 42, ExecutionUnits(1000, 2000))]
    assert script_data_hash(
        redeemers, cost_models=CostModels({1: {}})
    ) == ScriptDataHash.from_primitive(
        "32efa3f33e7040c79428c25c0d6d174551c03d36f1dad94ddb0b5ac7d9476d47"
    )


def test_script_data_hash_datum_only():
    assert ScriptDataHash.from_primitive(
        "2f50ea2546f8ce020ca45bfcf2abeb02ff18af2283466f888ae489184b3d2d39"
    ) == script_data_hash(redeemers=[], datums=[UNIT])


def test_script_data_hash_empty():
    assert ScriptDataHash.from_primitive(
        "a88fe2947b8d45d1f8b798e52174202579ecf847b8f17038c7398103df2d27b0"
    ) == script_data_hash(redeemers=[], datums=[])
