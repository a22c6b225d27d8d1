"""Selective Repeat transport protocol: sender at A, receiver at B."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .emulator import ProtocolEntity
from .packet import PAYLOAD_SIZE, Entity, Message, Packet

if TYPE_CHECKING:
    from .emulator import Emulator

RTT = 16.0
WINDOW_SIZE = 6
SEQ_SPACE = 2 * WINDOW_SIZE
NOT_IN_USE = -1


def _signed(byte: int) -> int:
    return byte - 256 if byte > 127 else byte


def compute_checksum(packet: Packet) -> int:
    """Return the checksum of the packet's sequence number, ack number and payload."""
    return packet.seqnum + packet.acknum + sum(_signed(b) for b in packet.payload)


def is_corrupted(packet: Packet) -> bool:
    """Return True when the packet's checksum does not match its contents."""
    return packet.checksum != compute_checksum(packet)


def _in_window(seqnum: int, first: int) -> bool:
    last = (first + WINDOW_SIZE - 1) % SEQ_SPACE
    if first <= last:
        return first <= seqnum <= last
    return seqnum >= first or seqnum <= last


def _offset(seqnum: int, first: int) -> int:
    return (seqnum - first) % SEQ_SPACE


def _has_data(packet: Packet) -> bool:
    return packet.payload[0] != 0


def _cstring(payload: bytes) -> bytes:
    return payload.split(b"\0", 1)[0]


def _slot(buffer: list[Packet], index: int) -> Packet:
    """Return a copy of the buffered packet, or a blank one past the end."""
    return buffer[index].copy() if index < len(buffer) else Packet()


class _Endpoint(ProtocolEntity):
    def __init__(self, network: Emulator) -> None:
        self.network = network

    def _log(self, level: int, text: str) -> None:
        if self.network.trace > level:
            print(text, file=self.network.output)


class Sender(_Endpoint):
    """Sending side of the protocol, running at entity A."""

    def __init__(self, network: Emulator) -> None:
        super().__init__(network)
        self.buffer = [Packet() for _ in range(WINDOW_SIZE)]
        self.window_first = 0
        self.window_count = 0
        self.next_seqnum = 0

    def output(self, message: Message) -> None:
        """Send the message if the window has room, otherwise count it as dropped."""
        first = self.window_first
        if not _in_window(self.next_seqnum, first):
            self._log(0, "----A: New message arrives, send window is full")
            self.network.stats.window_full += 1
            return

        self._log(
            1, "----A: New message arrives, send window is not full, send new messge to layer3!"
        )
        packet = Packet(seqnum=self.next_seqnum, acknum=NOT_IN_USE, payload=message.data)
        packet.checksum = compute_checksum(packet)

        self.buffer[_offset(self.next_seqnum, first)] = packet.copy()
        self.window_count += 1

        self._log(0, f"Sending packet {packet.seqnum} to layer 3")
        self.network.to_layer3(Entity.A, packet)

        if self.next_seqnum == first:
            self.network.start_timer(Entity.A, RTT)
        self.next_seqnum = (self.next_seqnum + 1) % SEQ_SPACE

    def input(self, packet: Packet) -> None:
        """Process an acknowledgement arriving from B."""
        if is_corrupted(packet):
            self._log(0, "----A: corrupted ACK is received, do nothing!")
            return

        self._log(0, f"----A: uncorrupted ACK {packet.acknum} is received")
        stats = self.network.stats
        stats.total_acks_received += 1

        first = self.window_first
        if not _in_window(packet.acknum, first):
            return
        index = _offset(packet.acknum, first)

        if self.buffer[index].acknum == NOT_IN_USE:
            self._log(0, f"----A: ACK {packet.acknum} is not a duplicate")
            self.window_count -= 1
            stats.new_acks += 1
            self.buffer[index].acknum = packet.acknum
        else:
            self._log(0, "----A: duplicate ACK received, do nothing!")

        if packet.acknum != first:
            self.buffer[index].acknum = packet.acknum
            return

        acked = 0
        for buffered in self.buffer:
            if buffered.acknum == NOT_IN_USE or not _has_data(buffered):
                break
            acked += 1

        self.window_first = (self.window_first + acked) % SEQ_SPACE

        for i in range(WINDOW_SIZE):
            ahead = _slot(self.buffer, i + acked)
            if (
                ahead.acknum == NOT_IN_USE
                or (self.buffer[i].seqnum + acked) % SEQ_SPACE == self.next_seqnum
            ):
                self.buffer[i] = ahead

        self.network.stop_timer(Entity.A)
        if self.window_count > 0:
            self.network.start_timer(Entity.A, RTT)

    def timer_interrupt(self) -> None:
        """Resend the oldest unacknowledged packet and restart the timer."""
        oldest = self.buffer[0]
        self._log(0, "----A: time out,resend packets!")
        self._log(0, f"---A: resending packet {oldest.seqnum}")
        self.network.to_layer3(Entity.A, oldest.copy())
        self.network.stats.packets_resent += 1
        self.network.start_timer(Entity.A, RTT)


class Receiver(_Endpoint):
    """Receiving side of the protocol, running at entity B."""

    def __init__(self, network: Emulator) -> None:
        super().__init__(network)
        self.buffer = [Packet() for _ in range(WINDOW_SIZE)]
        self.expected_seqnum = 0
        self.next_seqnum = -1

    def output(self, message: Message) -> None:
        """B sends no data of its own; the message is ignored."""

    def input(self, packet: Packet) -> None:
        """Deliver an uncorrupted packet, acknowledge it and buffer it if it is new."""
        if is_corrupted(packet):
            return

        self._log(0, f"----B: packet {packet.seqnum} is correctly received, send ACK!")
        self.network.stats.packets_received += 1
        self.network.to_layer5(Entity.B, packet.payload)

        ack = Packet(seqnum=NOT_IN_USE, acknum=packet.seqnum, payload=b"0" * PAYLOAD_SIZE)
        ack.checksum = compute_checksum(ack)
        self.network.to_layer3(Entity.B, ack)

        first = self.next_seqnum
        if not _in_window(packet.seqnum, first):
            return
        index = _offset(packet.seqnum, first)
        self.next_seqnum = max(self.next_seqnum, index)

        if _cstring(self.buffer[index].payload) == _cstring(packet.payload):
            return

        stored = packet.copy()
        stored.acknum = stored.seqnum
        self.buffer[index] = stored

        if stored.seqnum != first:
            return

        received = 0
        for buffered in self.buffer:
            if buffered.acknum < 0 or not _has_data(buffered):
                break
            received += 1

        self.expected_seqnum = (self.expected_seqnum + received) % SEQ_SPACE

        for i in range(WINDOW_SIZE):
            if i + received <= self.next_seqnum + 1:
                self.buffer[i] = _slot(self.buffer, i + received)

    def timer_interrupt(self) -> None:
        """B runs no timer; nothing to do."""