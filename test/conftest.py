import pytest

from cardano_txbuilder.hash import SCRIPT_HASH_SIZE, ScriptHash, TransactionId
from cardano_txbuilder.network import NetworkParams
from cardano_txbuilder.transaction import (
    MultiAsset,
    TransactionInput,
    TransactionOutput,
    Value,
)


@pytest.fixture
def network_params() -> NetworkParams:
    return NetworkParams.mainnet()


@pytest.fixture
def zero_input() -> TransactionInput:
    return TransactionInput(TransactionId(bytes(32)), 0)


@pytest.fixture
def simple_output() -> TransactionOutput:
    return TransactionOutput(b"", Value(1000000))


@pytest.fixture
def zero_policy() -> ScriptHash:
    return ScriptHash(bytes(SCRIPT_HASH_SIZE))


@pytest.fixture
def my_asset(zero_policy) -> MultiAsset:
    return MultiAsset().add(zero_policy, "MyAsset", 1000000)


@pytest.fixture
def asset_output(my_asset) -> TransactionOutput:
    return TransactionOutput(b"", Value(1000000, my_asset))
