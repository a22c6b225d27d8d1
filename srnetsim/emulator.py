"""Discrete-event emulation of an unreliable network between two entities."""

from __future__ import annotations

import random as _random
import sys
from bisect import bisect_left
from dataclasses import dataclass
from enum import IntEnum
from operator import attrgetter
from typing import TextIO

from .packet import PAYLOAD_SIZE, Entity, Message, Packet

BOTH_DIRECTIONS = 2
DEFAULT_SEED = 9999


class EventType(IntEnum):
    """Kinds of events handled by the emulator."""

    TIMER_INTERRUPT = 0
    FROM_LAYER5 = 1
    FROM_LAYER3 = 2


@dataclass
class Event:
    """A scheduled event at one entity."""

    time: float
    type: EventType
    entity: Entity
    packet: Packet | None = None


@dataclass
class Statistics:
    """Counters kept by the emulator and the protocol entities."""

    window_full: int = 0
    total_acks_received: int = 0
    packets_resent: int = 0
    new_acks: int = 0
    packets_received: int = 0
    messages_delivered: int = 0
    to_layer3: int = 0
    lost: int = 0
    corrupted: int = 0


class ProtocolEntity:
    """Transport-layer endpoint driven by the emulator.

    By default every event is dropped; ``ignored`` counts how many were.
    """

    ignored: int = 0

    def output(self, message: Message) -> None:
        """Handle a message from the application layer."""
        self.ignored += 1

    def input(self, packet: Packet) -> None:
        """Handle a packet arriving from the network layer."""
        self.ignored += 1

    def timer_interrupt(self) -> None:
        """Handle expiry of this entity's timer."""
        self.ignored += 1


_EVENT_NAMES = {
    EventType.TIMER_INTERRUPT: "timerinterrupt  ",
    EventType.FROM_LAYER5: "fromlayer5 ",
    EventType.FROM_LAYER3: "fromlayer3 ",
}


class Emulator:
    """Emulates layer 3 and below: delay, loss, corruption, timers and message arrivals."""

    def __init__(
        self,
        max_messages: int,
        loss_prob: float = 0.0,
        corrupt_prob: float = 0.0,
        corrupt_direction: int = BOTH_DIRECTIONS,
        mean_interval: float = 10.0,
        trace: int = 3,
        seed: int | None = DEFAULT_SEED,
        output: TextIO | None = None,
    ) -> None:
        if max_messages < 0:
            raise ValueError("max_messages must not be negative")
        for name, prob in (("loss_prob", loss_prob), ("corrupt_prob", corrupt_prob)):
            if not 0.0 <= prob <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1]")
        if corrupt_direction not in (Entity.A, Entity.B, BOTH_DIRECTIONS):
            raise ValueError("corrupt_direction must be 0 (A->B), 1 (A<-B) or 2 (both)")
        if mean_interval < 0:
            raise ValueError("mean_interval must not be negative")

        self.max_messages = max_messages
        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.corrupt_direction = corrupt_direction
        self.mean_interval = mean_interval
        self.trace = trace
        self.output = output if output is not None else sys.stdout
        self.stats = Statistics()
        self.time = 0.0
        self.messages_generated = 0
        self.delivered: list[tuple[Entity, bytes]] = []
        self._rng = _random.Random(seed)
        self._events: list[Event] = []
        self._entities: dict[Entity, ProtocolEntity] | None = None
        self._generate_next_arrival()

    def _print(self, *args: object, **kwargs: object) -> None:
        print(*args, file=self.output, **kwargs)

    def random(self) -> float:
        """Return a uniformly distributed number in [0, 1)."""
        x = self._rng.random()
        if self.trace > 3:
            self._print(f"RANDOM NUMBER GENERATION CALLED: {x:f}")
        return x

    def attach(self, sender: ProtocolEntity, receiver: ProtocolEntity) -> None:
        """Register the protocol entities running at A and at B."""
        self._entities = {Entity.A: sender, Entity.B: receiver}

    def _insert(self, event: Event) -> None:
        if self.trace > 2:
            self._print(f"            INSERTEVENT: time is {self.time:f}")
            self._print(f"            INSERTEVENT: future time will be {event.time:f}")
        index = bisect_left(self._events, event.time, key=attrgetter("time"))
        self._events.insert(index, event)

    def _generate_next_arrival(self) -> None:
        if self.trace > 2:
            self._print("          GENERATE NEXT ARRIVAL: creating new arrival")
        delay = self.mean_interval * self.random() * 2
        self._insert(Event(self.time + delay, EventType.FROM_LAYER5, Entity.A))

    def _find_timer(self, entity: Entity) -> int | None:
        return next(
            (
                i
                for i, event in enumerate(self._events)
                if event.type is EventType.TIMER_INTERRUPT and event.entity == entity
            ),
            None,
        )

    def start_timer(self, entity: Entity, increment: float) -> None:
        """Schedule a timer interrupt for the entity after the given delay."""
        if self.trace > 1:
            self._print(f"          START TIMER: starting timer at {self.time:f}")
        if self._find_timer(entity) is not None:
            self._print("Warning: attempt to start a timer that is already started")
            return
        self._insert(Event(self.time + increment, EventType.TIMER_INTERRUPT, Entity(entity)))

    def stop_timer(self, entity: Entity) -> None:
        """Cancel the entity's running timer."""
        if self.trace > 1:
            self._print(f"          STOP TIMER: stopping timer at {self.time:f}")
        index = self._find_timer(entity)
        if index is None:
            self._print("Warning: unable to cancel your timer. It wasn't running.")
            return
        del self._events[index]

    def _affected(self, entity: Entity) -> bool:
        return not (entity == Entity.B and self.corrupt_direction == Entity.A) and not (
            entity == Entity.A and self.corrupt_direction == Entity.B
        )

    def to_layer3(self, entity: Entity, packet: Packet) -> None:
        """Send a packet from the entity into the network towards its peer."""
        entity = Entity(entity)
        self.stats.to_layer3 += 1

        if self.random() < self.loss_prob and self._affected(entity):
            self.stats.lost += 1
            if self.trace > 0:
                self._print("          TOLAYER3: packet being lost")
            return

        sent = packet.copy()
        if self.trace > 2:
            self._print(
                f"          TOLAYER3: seq: {sent.seqnum}, ack {sent.acknum}, "
                f"check: {sent.checksum} {sent.payload.decode('latin-1')}"
            )

        destination = entity.peer()
        last_time = self.time
        for event in self._events:
            if event.type is EventType.FROM_LAYER3 and event.entity == destination:
                last_time = event.time
        arrival = Event(
            last_time + 1 + 9 * self.random(), EventType.FROM_LAYER3, destination, sent
        )

        if self.random() < self.corrupt_prob and self._affected(entity):
            self.stats.corrupted += 1
            x = self.random()
            if x < 0.75:
                sent.payload = b"Z" + sent.payload[1:]
            elif x < 0.875:
                sent.seqnum = 999999
            else:
                sent.acknum = 999999
            if self.trace > 0:
                self._print("          TOLAYER3: packet being corrupted")

        if self.trace > 2:
            self._print("          TOLAYER3: scheduling arrival on other side")
        self._insert(arrival)

    def to_layer5(self, entity: Entity, data: bytes) -> None:
        """Deliver data from the entity's transport layer to its application."""
        entity = Entity(entity)
        data = bytes(data)
        if self.trace > 2:
            self._print(
                f"          TOLAYER5: data received by application at "
                f"{entity.name}: {data.decode('latin-1')}"
            )
        self.delivered.append((entity, data))
        self.stats.messages_delivered += 1

    def pending_events(self) -> tuple[Event, ...]:
        """Return the scheduled events in the order they will be handled."""
        return tuple(self._events)

    def _handle_arrival(self, event: Event, target: ProtocolEntity) -> None:
        if self.messages_generated >= self.max_messages:
            if self.trace > 2:
                self._print("          FROM_LAYER5: no more messages to send: ")
            return
        self._generate_next_arrival()
        letter = ord("a") + self.messages_generated % 26
        message = Message(bytes([letter]) * PAYLOAD_SIZE)
        if self.trace > 2:
            self._print(
                f"          MAINLOOP: data given to student: {message.data.decode('latin-1')}"
            )
        self.messages_generated += 1
        target.output(message)

    def run(self) -> Statistics:
        """Process events until none remain and return the statistics."""
        if self._entities is None:
            raise RuntimeError("protocol entities must be attached before running")
        while self._events:
            event = self._events.pop(0)
            if self.trace >= 2:
                self._print(
                    f"\nEVENT time: {event.time:f},  type: {int(event.type)}, "
                    f"{_EVENT_NAMES[event.type]} entity: {int(event.entity)}"
                )
            self.time = event.time
            target = self._entities[event.entity]
            if event.type is EventType.FROM_LAYER5:
                self._handle_arrival(event, target)
            elif event.type is EventType.FROM_LAYER3:
                target.input(event.packet)
            else:
                target.timer_interrupt()
        return self.stats

    def report(self) -> str:
        """Return the end-of-simulation summary."""
        s = self.stats
        return "\n".join(
            [
                f" Simulator terminated at time {self.time:f}",
                f" after attempting to send {self.messages_generated} msgs from layer5",
                f"number of messages dropped due to full window:  {s.window_full} ",
                "number of valid (not corrupt or duplicate) acknowledgements received "
                f"at A:  {s.new_acks} ",
                "(note: a single acknowledgement may have acknowledged more than one "
                "packet - if cumulative acknowledgements are used)",
                f"number of packet resends by A:  {s.packets_resent} ",
                f"number of correct packets received at B:  {s.packets_received} ",
                f"number of messages delivered to application:  {s.messages_delivered} ",
            ]
        )