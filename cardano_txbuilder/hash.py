"""Fixed-size hashes and identifiers of the ledger."""

from typing import ClassVar, Optional, Type, TypeVar, Union

from cardano_txbuilder.exception import (
    InvalidDataException,
    MalformedDatumHashException,
)
from cardano_txbuilder.serialization import CBORSerializable, limit_primitive_type

__all__ = [
    "VERIFICATION_KEY_HASH_SIZE",
    "SCRIPT_HASH_SIZE",
    "SCRIPT_DATA_HASH_SIZE",
    "TRANSACTION_HASH_SIZE",
    "DATUM_HASH_SIZE",
    "AUXILIARY_DATA_HASH_SIZE",
    "POOL_KEY_HASH_SIZE",
    "ConstrainedBytes",
    "VerificationKeyHash",
    "ScriptHash",
    "ScriptDataHash",
    "TransactionId",
    "DatumHash",
    "AuxiliaryDataHash",
    "PoolKeyHash",
]

VERIFICATION_KEY_HASH_SIZE = 28
SCRIPT_HASH_SIZE = 28
POOL_KEY_HASH_SIZE = 28
SCRIPT_DATA_HASH_SIZE = 32
TRANSACTION_HASH_SIZE = 32
DATUM_HASH_SIZE = 32
AUXILIARY_DATA_HASH_SIZE = 32

B = TypeVar("B", bound="ConstrainedBytes")


class ConstrainedBytes(CBORSerializable):
    """Immutable bytes whose length is checked on construction.

    ``SIZE`` pins an exact length. Without it the length is only capped by ``MAX_SIZE``.
    Instances are encoded as a CBOR byte string and compare equal by content, but never
    equal to plain bytes.

    Raises:
        InvalidDataException: When the length of ``payload`` is not allowed. A subclass
            may raise its own ``SIZE_EXCEPTION`` instead.
    """

    SIZE: ClassVar[Optional[int]] = None

    MAX_SIZE: ClassVar[int] = 64

    SIZE_EXCEPTION: ClassVar[Type[Exception]] = InvalidDataException

    def __init__(self, payload: bytes):
        payload = bytes(payload)
        allowed = (
            len(payload) == self.SIZE
            if self.SIZE is not None
            else len(payload) <= self.MAX_SIZE
        )
        if not allowed:
            expected = self.SIZE if self.SIZE is not None else f"at most {self.MAX_SIZE}"
            raise self.SIZE_EXCEPTION(
                f"{type(self).__name__} takes {expected} bytes, got {len(payload)}."
            )
        self._payload = payload

    @property
    def payload(self) -> bytes:
        return self._payload

    def __bytes__(self):
        return self._payload

    def __eq__(self, other):
        return isinstance(other, ConstrainedBytes) and self._payload == other._payload

    def __hash__(self):
        return hash(self._payload)

    def __str__(self):
        return self._payload.hex()

    def __repr__(self):
        return f"{type(self).__name__}(hex='{self}')"

    def to_primitive(self) -> bytes:
        return self._payload

    @classmethod
    @limit_primitive_type(bytes, str)
    def from_primitive(cls: Type[B], value: Union[bytes, str]) -> B:
        """Accept the raw bytes or their hex string."""
        return cls(bytes.fromhex(value) if isinstance(value, str) else value)


class VerificationKeyHash(ConstrainedBytes):
    SIZE = VERIFICATION_KEY_HASH_SIZE


class ScriptHash(ConstrainedBytes):
    """Hash of a native or Plutus script. Minting policies are identified by it."""

    SIZE = SCRIPT_HASH_SIZE


class ScriptDataHash(ConstrainedBytes):
    SIZE = SCRIPT_DATA_HASH_SIZE


class TransactionId(ConstrainedBytes):
    """Hash of a transaction body."""

    SIZE = TRANSACTION_HASH_SIZE


class DatumHash(ConstrainedBytes):
    SIZE = DATUM_HASH_SIZE

    SIZE_EXCEPTION = MalformedDatumHashException


class AuxiliaryDataHash(ConstrainedBytes):
    SIZE = AUXILIARY_DATA_HASH_SIZE


class PoolKeyHash(ConstrainedBytes):
    """Hash of a stake pool's cold verification key."""

    SIZE = POOL_KEY_HASH_SIZE
