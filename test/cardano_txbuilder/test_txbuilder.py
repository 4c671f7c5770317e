from test.cardano_txbuilder.util import check_two_way_cbor

import pytest

from cardano_txbuilder.cbor import cbor2
from cardano_txbuilder.certificate import StakeCredential, StakeRegistration
from cardano_txbuilder.exception import (
    BuilderConsumedException,
    InvalidCollateralInputException,
    InvalidCollateralReturnException,
    InvalidTimestampException,
    MalformedDatumException,
    MalformedScriptException,
    NoInputsException,
    RedeemerPurposeMissingException,
    UnsupportedRedeemerPurposeException,
    ValidationException,
)
from cardano_txbuilder.fee import IterativeLinearFee, LinearFee
from cardano_txbuilder.hash import (
    SCRIPT_HASH_SIZE,
    ScriptDataHash,
    ScriptHash,
    TransactionId,
    VerificationKeyHash,
)
from cardano_txbuilder.metadata import AlonzoMetadata, AuxiliaryData, Metadata
from cardano_txbuilder.nativescript import InvalidHereAfter, ScriptAll
from cardano_txbuilder.network import Network, NetworkParams
from cardano_txbuilder.plutus import (
    ExecutionUnits,
    PlutusV2Script,
    RawPlutusData,
    Redeemer,
    RedeemerTag,
)
from cardano_txbuilder.purpose import Cert, Mint, Reward, Spend
from cardano_txbuilder.transaction import (
    AssetName,
    MultiAsset,
    Transaction,
    TransactionInput,
    TransactionOutput,
    Value,
)
from cardano_txbuilder.txbuilder import TransactionBuilder

TIMESTAMP = 1618430000


@pytest.fixture
def builder(network_params, zero_input, simple_output) -> TransactionBuilder:
    return (
        TransactionBuilder(network_params)
        .input(zero_input, simple_output)
        .output(simple_output)
    )


def tx_input(first_byte: int, index: int) -> TransactionInput:
    return TransactionInput(TransactionId(bytes([first_byte]) + bytes(31)), index)


def test_simple_tx(builder):
    tx = builder.build()
    assert (
        tx.to_cbor_hex()
        == "83a300818258200000000000000000000000000000000000000000000000000000000000000000"
        "000181a20040011a000f4240021a000271d8a0f5"
    )
    assert tx.transaction_body.fee == 160216
    assert tx.id == TransactionId.from_primitive(
        "deb44343fee48d3ea8bf0d826abd6deb69e7756b0e0e2b858f6f8d3b7dbc4a75"
    )


def test_valid_until(builder):
    tx = builder.valid_until(TIMESTAMP).build()
    assert (
        tx.to_cbor_hex()
        == "83a400818258200000000000000000000000000000000000000000000000000000000000000000"
        "000181a20040011a000f4240021a000273e7031a01555a5da0f5"
    )
    assert tx.transaction_body.ttl == 22370909


def test_valid_after(builder):
    tx = builder.valid_after(TIMESTAMP).build()
    assert (
        tx.to_cbor_hex()
        == "83a400818258200000000000000000000000000000000000000000000000000000000000000000"
        "000181a20040011a000f4240021a000273e7081a01555a5da0f5"
    )
    assert tx.transaction_body.validity_start == 22370909


def test_multi_asset_output(network_params, zero_input, asset_output):
    tx = (
        TransactionBuilder(network_params)
        .input(zero_input, asset_output)
        .output(asset_output)
        .build()
    )
    assert (
        tx.to_cbor_hex()
        == "83a300818258200000000000000000000000000000000000000000000000000000000000000000"
        "000181a2004001821a000f4240a1581c00000000000000000000000000000000000000000000000000"
        "000000a1474d7941737365741a000f4240021a000281a3a0f5"
    )


def test_mint(builder, zero_policy):
    tx = builder.mint(MultiAsset().add(zero_policy, "MyAsset 2", 1000000)).build()
    assert (
        tx.to_cbor_hex()
        == "83a400818258200000000000000000000000000000000000000000000000000000000000000000"
        "000181a20040011a000f4240021a0002825209a1581c000000000000000000000000000000000000"
        "00000000000000000000a1494d79417373657420321a000f4240a0f5"
    )


def test_round_trip(builder):
    tx = builder.valid_until(TIMESTAMP).build()
    restored = Transaction.from_cbor(tx.to_cbor())

    assert restored.transaction_body.inputs == tx.transaction_body.inputs
    assert restored.transaction_body.outputs == tx.transaction_body.outputs
    assert restored.transaction_body.fee == 160743
    assert restored.transaction_body.ttl == 22370909
    check_two_way_cbor(tx)


def test_inputs_sorted(network_params, simple_output):
    inputs = [tx_input(2, 0), tx_input(0, 3), tx_input(1, 0), tx_input(0, 1)]
    builder = TransactionBuilder(network_params)
    for i in inputs:
        builder = builder.input(i)
    tx = builder.output(simple_output).build()

    assert tx.transaction_body.inputs == [
        tx_input(0, 1),
        tx_input(0, 3),
        tx_input(1, 0),
        tx_input(2, 0),
    ]


def test_duplicate_input_kept_once(network_params, zero_input, simple_output):
    tx = (
        TransactionBuilder(network_params)
        .input(zero_input)
        .input(zero_input, simple_output)
        .output(simple_output)
        .build()
    )
    assert tx.transaction_body.inputs == [zero_input]


def test_outputs_keep_order(network_params, zero_input):
    first = TransactionOutput(b"\x01", 2000000)
    second = TransactionOutput(b"\x00", 1000000)
    tx = (
        TransactionBuilder(network_params)
        .input(zero_input)
        .output(first)
        .output(second)
        .build()
    )
    assert tx.transaction_body.outputs == [first, second]


def test_spend_redeemer_index(network_params, simple_output):
    target = tx_input(1, 0)
    ex_units = ExecutionUnits(1000, 2000)
    tx = (
        TransactionBuilder(network_params)
        .input(target)
        .input(tx_input(0, 1))
        .output(simple_output)
        .plutus_v2_script(PlutusV2Script(b"dummy script"))
        .redeemer(Spend(target), 42, ex_units)
        .build()
    )

    redeemers = tx.transaction_witness_set.redeemer
    assert redeemers == [Redeemer(RedeemerTag.SPEND, 1, 42, ex_units)]
    assert tx.transaction_body.script_data_hash == ScriptDataHash.from_primitive(
        "32efa3f33e7040c79428c25c0d6d174551c03d36f1dad94ddb0b5ac7d9476d47"
    )
    assert tx.transaction_witness_set.plutus_v2_script == [
        PlutusV2Script(b"dummy script")
    ]


def test_mint_redeemer_index(builder):
    p0 = ScriptHash(b"\x00" * SCRIPT_HASH_SIZE)
    p1 = ScriptHash(b"\x01" * SCRIPT_HASH_SIZE)
    p2 = ScriptHash(b"\x02" * SCRIPT_HASH_SIZE)
    mint = MultiAsset().add(p2, b"a", 1).add(p0, b"b", 1).add(p1, b"c", -1)
    ex_units = ExecutionUnits(1, 1)

    tx = (
        builder.mint(mint)
        .redeemer(Mint(p1), 0, ex_units)
        .redeemer(Mint(p2), 0, ex_units)
        .build()
    )

    assert [(r.tag, r.index) for r in tx.transaction_witness_set.redeemer] == [
        (RedeemerTag.MINT, 1),
        (RedeemerTag.MINT, 2),
    ]
    assert list(tx.transaction_body.mint.keys()) == [p0, p1, p2]


def test_mint_redeemer_skips_zero_amount_policy(builder):
    unused = ScriptHash(b"\x01" * SCRIPT_HASH_SIZE)
    minted = ScriptHash(b"\x02" * SCRIPT_HASH_SIZE)
    mint = MultiAsset().add(unused, b"A", 0).add(minted, b"B", 5)

    tx = builder.mint(mint).redeemer(Mint(minted), 42, ExecutionUnits(1, 1)).build()

    decoded = Transaction.from_cbor(tx.to_cbor())
    mint_policies = sorted(decoded.transaction_body.mint, key=lambda p: p.payload)
    (redeemer,) = decoded.transaction_witness_set.redeemer
    assert mint_policies == [minted]
    assert redeemer.index == 0
    assert mint_policies[redeemer.index] == minted


def test_mint_redeemer_indices_match_decoded_body(builder):
    p0, p1, p2, p3 = (ScriptHash(bytes([i]) * SCRIPT_HASH_SIZE) for i in range(4))
    mint = (
        MultiAsset()
        .add(p3, b"d", 7)
        .add(p1, b"gone", 0)
        .add(p2, b"b", -3)
        .add(p2, b"c", 0)
        .add(p0, b"a", 1)
    )
    ex_units = ExecutionUnits(1, 1)

    tx = (
        builder.mint(mint)
        .redeemer(Mint(p3), 3, ex_units)
        .redeemer(Mint(p0), 0, ex_units)
        .redeemer(Mint(p2), 2, ex_units)
        .build()
    )

    decoded = Transaction.from_cbor(tx.to_cbor())
    body = decoded.transaction_body
    mint_policies = sorted(body.mint, key=lambda p: p.payload)
    assert mint_policies == [p0, p2, p3]
    assert list(body.mint[p2].keys()) == [AssetName(b"b")]
    for redeemer in decoded.transaction_witness_set.redeemer:
        assert redeemer.data == mint_policies[redeemer.index].payload[0]


def test_mint_redeemer_on_zero_amount_policy_is_missing(builder, zero_policy):
    other = ScriptHash(b"\x01" * SCRIPT_HASH_SIZE)
    mint = MultiAsset().add(zero_policy, b"a", 0).add(other, b"b", 1)
    with pytest.raises(RedeemerPurposeMissingException):
        builder.mint(mint).redeemer(Mint(zero_policy), 0, ExecutionUnits(1, 1)).build()


def test_all_zero_mint_left_out(builder, zero_policy):
    tx = builder.mint(MultiAsset().add(zero_policy, b"a", 0)).build()
    assert tx.transaction_body.mint is None
    assert 9 not in tx.transaction_body.to_primitive()


def test_mint_redeemer_with_raw_policy_bytes(builder):
    policy = b"\x01" * SCRIPT_HASH_SIZE
    tx = (
        builder.mint(MultiAsset().add(policy, b"a", 1))
        .redeemer(Mint(policy), 0, ExecutionUnits(1, 1))
        .build()
    )
    assert [(r.tag, r.index) for r in tx.transaction_witness_set.redeemer] == [
        (RedeemerTag.MINT, 0)
    ]


def test_redeemers_sorted_by_tag_and_index(network_params, zero_policy):
    first, second = tx_input(0, 0), tx_input(0, 1)
    ex_units = ExecutionUnits(1, 1)
    tx = (
        TransactionBuilder(network_params)
        .input(first)
        .input(second)
        .output(TransactionOutput(b"", 1))
        .mint(MultiAsset().add(zero_policy, b"a", 1))
        .redeemer(Mint(zero_policy), 0, ex_units)
        .redeemer(Spend(second), 0, ex_units)
        .redeemer(Spend(first), 0, ex_units)
        .build()
    )
    assert [(r.tag, r.index) for r in tx.transaction_witness_set.redeemer] == [
        (RedeemerTag.SPEND, 0),
        (RedeemerTag.SPEND, 1),
        (RedeemerTag.MINT, 0),
    ]


def test_spend_redeemer_missing_input(builder):
    purpose = Spend(tx_input(9, 0))
    with pytest.raises(RedeemerPurposeMissingException) as e:
        builder.redeemer(purpose, 0, ExecutionUnits(1, 1)).build()
    assert e.value.purpose == purpose


def test_mint_redeemer_missing_policy(builder, zero_policy):
    with pytest.raises(RedeemerPurposeMissingException):
        builder.redeemer(Mint(zero_policy), 0, ExecutionUnits(1, 1)).build()


@pytest.mark.parametrize("purpose", [Cert(0), Reward(b"\xe1" + bytes(28))])
def test_unsupported_redeemer_purpose(builder, purpose):
    with pytest.raises(UnsupportedRedeemerPurposeException) as e:
        builder.redeemer(purpose, 0, ExecutionUnits(1, 1)).build()
    assert isinstance(e.value, RedeemerPurposeMissingException)
    assert e.value.purpose == purpose


def test_no_inputs(network_params, simple_output):
    with pytest.raises(NoInputsException):
        TransactionBuilder(network_params).output(simple_output).build()


def test_invalid_collateral_input(builder, asset_output):
    with pytest.raises(InvalidCollateralInputException):
        builder.collateral_input(tx_input(5, 0), asset_output).build()


def test_unresolved_collateral_input(builder):
    tx = builder.collateral_input(tx_input(5, 1)).collateral_input(
        tx_input(5, 0)
    ).build()
    assert tx.transaction_body.collateral == [tx_input(5, 0), tx_input(5, 1)]


def test_invalid_collateral_return(builder, asset_output):
    with pytest.raises(InvalidCollateralReturnException):
        builder.collateral_return(asset_output).build()


def test_collateral_return(builder, simple_output):
    tx = builder.collateral_return(simple_output).build()
    assert tx.transaction_body.collateral_return == simple_output


def test_invalid_timestamp(builder):
    with pytest.raises(InvalidTimestampException):
        builder.valid_until(1000).build()


def test_validation_order(network_params, asset_output):
    builder = (
        TransactionBuilder(network_params)
        .collateral_input(tx_input(5, 0), asset_output)
        .valid_after(0)
    )
    with pytest.raises(NoInputsException):
        builder.copy().build()

    builder = builder.input(tx_input(0, 0))
    with pytest.raises(InvalidCollateralInputException):
        builder.copy().build()


def test_validation_exceptions_share_base(builder):
    with pytest.raises(ValidationException):
        builder.valid_after(0).build()


def test_builder_consumed(network_params, zero_input, simple_output):
    builder = TransactionBuilder(network_params)
    successor = builder.input(zero_input, simple_output)

    with pytest.raises(BuilderConsumedException):
        builder.output(simple_output)

    successor.build()
    with pytest.raises(BuilderConsumedException):
        successor.build()


def test_failed_build_consumes(network_params, simple_output):
    builder = TransactionBuilder(network_params).output(simple_output)
    with pytest.raises(NoInputsException):
        builder.build()
    with pytest.raises(BuilderConsumedException):
        builder.build()


def test_copy_is_independent(builder):
    snapshot = builder.copy()
    tx1 = builder.valid_until(TIMESTAMP).build()
    tx2 = snapshot.build()

    assert tx1.transaction_body.ttl == 22370909
    assert tx2.transaction_body.ttl is None


def test_deterministic(builder):
    assert builder.copy().build().to_cbor() == builder.build().to_cbor()


def test_explicit_fee(builder):
    tx = builder.fee(200000).build()
    assert tx.transaction_body.fee == 200000


def test_iterative_fee(network_params, zero_input, simple_output):
    tx = (
        TransactionBuilder(network_params, fee_strategy=IterativeLinearFee())
        .input(zero_input, simple_output)
        .output(simple_output)
        .build()
    )
    assert tx.transaction_body.fee == 160567
    assert LinearFee().fee(len(tx.to_cbor())) <= tx.transaction_body.fee


def test_network_id(zero_input, simple_output):
    tx = (
        TransactionBuilder(NetworkParams.preview())
        .input(zero_input, simple_output)
        .output(simple_output)
        .include_network_id()
        .build()
    )
    assert tx.transaction_body.network_id == Network.TESTNET
    restored = Transaction.from_cbor(tx.to_cbor())
    assert restored.transaction_body.network_id == Network.TESTNET


def test_required_signers_and_certificates(builder):
    signer = VerificationKeyHash(b"1" * 28)
    certificate = StakeRegistration(StakeCredential(signer))
    tx = builder.require_signer(signer).certificate(certificate).build()

    assert tx.transaction_body.required_signers == [signer]
    assert tx.transaction_body.certificates == [certificate]
    check_two_way_cbor(tx)


def test_withdrawals(builder):
    reward_account = b"\xe1" + bytes(28)
    tx = builder.withdrawal(reward_account, 1000).build()
    assert tx.transaction_body.withdraws[reward_account] == 1000
    assert tx.transaction_body.update is None
    assert tx.transaction_body.total_collateral is None


def test_reference_inputs_sorted(builder):
    tx = builder.reference_input(tx_input(3, 0)).reference_input(tx_input(2, 0)).build()
    assert tx.transaction_body.reference_inputs == [tx_input(2, 0), tx_input(3, 0)]


def test_auxiliary_data(builder):
    aux = AuxiliaryData(AlonzoMetadata(metadata=Metadata({674: {"msg": ["hi"]}})))
    tx = builder.auxiliary_data(aux).build()

    assert tx.auxiliary_data == aux
    assert tx.transaction_body.auxiliary_data_hash == aux.hash()
    check_two_way_cbor(tx)


def test_native_script_cbor(builder):
    script = ScriptAll([InvalidHereAfter(123456789)])
    tx = builder.native_script_cbor(script.to_cbor_hex()).build()
    assert tx.transaction_witness_set.native_scripts == [script]


def test_malformed_native_script(builder):
    with pytest.raises(MalformedScriptException):
        builder.native_script_cbor("8209")


def test_plutus_data_cbor(builder):
    tx = builder.plutus_data_cbor("d87980").build()
    datum = RawPlutusData(cbor2.CBORTag(121, []))

    assert tx.transaction_witness_set.plutus_data == [datum]
    assert tx.transaction_body.script_data_hash == ScriptDataHash.from_primitive(
        "2f50ea2546f8ce020ca45bfcf2abeb02ff18af2283466f888ae489184b3d2d39"
    )


def test_malformed_datum(builder):
    with pytest.raises(MalformedDatumException):
        builder.plutus_data_cbor(bytes.fromhex("9f01"))


def test_explicit_script_data_hash(builder):
    data_hash = ScriptDataHash(bytes(32))
    tx = builder.plutus_data(42).script_data_hash(data_hash).build()
    assert tx.transaction_body.script_data_hash == data_hash


def test_save_load(builder, tmp_path):
    tx = builder.build()
    path = str(tmp_path / "tx.signed")
    tx.save(path)
    loaded = Transaction.load(path)

    assert loaded == tx
    with pytest.raises(IOError):
        tx.save(path)


def test_unresolved_input_value_not_required(network_params, simple_output):
    tx = (
        TransactionBuilder(network_params)
        .input(tx_input(0, 0))
        .output(simple_output)
        .build()
    )
    assert tx.transaction_body.outputs == [simple_output]
    assert tx.transaction_body.outputs[0].amount == Value(1000000)
