"""Cardano network types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type

from cardano_txbuilder.exception import (
    InvalidArgumentException,
    InvalidNetworkIdException,
)
from cardano_txbuilder.serialization import CBORSerializable, limit_primitive_type

__all__ = ["Network", "NetworkParams"]


class Network(CBORSerializable, Enum):
    """
    Network ID
    """

    TESTNET = 0
    MAINNET = 1

    def to_primitive(self) -> int:
        return self.value

    @classmethod
    @limit_primitive_type(int)
    def from_primitive(cls: Type[Network], value: int) -> Network:
        return cls.from_id(value)

    @classmethod
    def from_id(cls: Type[Network], network_id: int) -> Network:
        try:
            return cls(network_id)
        except ValueError as e:
            raise InvalidNetworkIdException(
                f"Unknown network id: {network_id}, "
                f"expected one of {[n.value for n in cls]}."
            ) from e


@dataclass(frozen=True)
class NetworkParams:
    """Parameters of a network needed to assemble a transaction.

    Attributes:
        network_id (int): Id written into a transaction body, 0 for test networks and 1 for mainnet.
        genesis_time (int): POSIX time (seconds) at which slot 0 starts.
        slot_length (int): Length of a slot in seconds.
    """

    network_id: int

    genesis_time: int

    slot_length: int = 1

    def __post_init__(self):
        Network.from_id(self.network_id)
        if self.slot_length <= 0:
            raise InvalidArgumentException(
                f"Slot length has to be positive, got {self.slot_length}."
            )

    @classmethod
    def mainnet(cls) -> NetworkParams:
        return cls(network_id=Network.MAINNET.value, genesis_time=1596059091)

    @classmethod
    def preview(cls) -> NetworkParams:
        return cls(network_id=Network.TESTNET.value, genesis_time=1666656000)

    @property
    def network(self) -> Network:
        return Network.from_id(self.network_id)

    def timestamp_to_slot(self, timestamp: int) -> Optional[int]:
        """Convert a POSIX timestamp (seconds) to the slot it falls in.

        Returns:
            Optional[int]: The slot number, or None when ``timestamp`` is before genesis.
        """
        if timestamp < self.genesis_time:
            return None
        return (timestamp - self.genesis_time) // self.slot_length
