"""Data units exchanged between the application, transport and network layers."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import IntEnum

PAYLOAD_SIZE = 20


class Entity(IntEnum):
    """One of the two endpoints of the simulated link."""

    A = 0
    B = 1

    def peer(self) -> Entity:
        """Return the entity at the other end of the link."""
        return Entity((self + 1) % 2)


def _check_size(data: bytes, what: str) -> None:
    if len(data) != PAYLOAD_SIZE:
        raise ValueError(f"{what} must be exactly {PAYLOAD_SIZE} bytes, got {len(data)}")


@dataclass(frozen=True)
class Message:
    """Data handed from the application layer to the transport layer."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        _check_size(self.data, "message data")


@dataclass
class Packet:
    """Data unit handed from the transport layer to the network layer."""

    seqnum: int = 0
    acknum: int = 0
    checksum: int = 0
    payload: bytes = bytes(PAYLOAD_SIZE)

    def __post_init__(self) -> None:
        self.payload = bytes(self.payload)
        _check_size(self.payload, "packet payload")

    def copy(self) -> Packet:
        """Return an independent copy of this packet."""
        return dataclasses.replace(self)