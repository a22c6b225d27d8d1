import io

import pytest

from srnetsim.emulator import (
    BOTH_DIRECTIONS,
    Emulator,
    EventType,
    ProtocolEntity,
    Statistics,
)
from srnetsim.packet import PAYLOAD_SIZE, Entity, Message, Packet


class EagerSender(ProtocolEntity):
    def __init__(self, net):
        self.net = net
        self.next_seq = 0

    def output(self, message):
        packet = Packet(seqnum=self.next_seq, acknum=-1, payload=message.data)
        self.next_seq += 1
        self.net.to_layer3(Entity.A, packet)


class Sink(ProtocolEntity):
    def __init__(self, net):
        self.net = net
        self.packets = []
        self.times = []

    def input(self, packet):
        self.packets.append(packet)
        self.times.append(self.net.time)
        self.net.to_layer5(Entity.B, packet.payload)


class TimerSender(ProtocolEntity):
    def __init__(self, net, increment):
        self.net = net
        self.increment = increment
        self.started_at = None
        self.fired_at = []

    def output(self, message):
        if self.started_at is None:
            self.started_at = self.net.time
            self.net.start_timer(Entity.A, self.increment)

    def timer_interrupt(self):
        self.fired_at.append(self.net.time)


def make(max_messages=30, **kwargs):
    kwargs.setdefault("trace", 0)
    kwargs.setdefault("output", io.StringIO())
    return Emulator(max_messages, **kwargs)


def run_eager(**kwargs):
    net = make(**kwargs)
    sender, sink = EagerSender(net), Sink(net)
    net.attach(sender, sink)
    stats = net.run()
    return net, sink, stats


def test_all_messages_delivered_in_order_without_errors():
    net, sink, stats = run_eager()
    assert stats.messages_delivered == 30
    assert net.messages_generated == 30
    assert [p.seqnum for p in sink.packets] == list(range(30))


def test_message_contents_cycle_through_alphabet():
    net, sink, _ = run_eager()
    data = [d for _, d in net.delivered]
    assert data[0] == b"a" * PAYLOAD_SIZE
    assert data[1] == b"b" * PAYLOAD_SIZE
    assert data[26] == data[0]
    assert all(entity is Entity.B for entity, _ in net.delivered)


def test_arrivals_never_reorder():
    _, sink, _ = run_eager()
    assert sink.times == sorted(sink.times)


def test_event_queue_empty_after_run():
    net, _, _ = run_eager()
    assert net.pending_events() == ()


def test_total_loss_drops_every_packet():
    _, sink, stats = run_eager(loss_prob=1.0)
    assert sink.packets == []
    assert stats.lost == stats.to_layer3 == 30


def test_loss_limited_to_other_direction_spares_a():
    _, sink, stats = run_eager(loss_prob=1.0, corrupt_direction=Entity.B)
    assert stats.lost == 0
    assert len(sink.packets) == 30


def test_total_corruption_alters_every_packet():
    _, sink, stats = run_eager(corrupt_prob=1.0, corrupt_direction=BOTH_DIRECTIONS)
    assert stats.corrupted == 30
    for packet in sink.packets:
        altered = (
            packet.payload[:1] == b"Z",
            packet.seqnum == 999999,
            packet.acknum == 999999,
        )
        assert sum(altered) == 1


def test_same_seed_is_deterministic():
    _, first, _ = run_eager(loss_prob=0.3, corrupt_prob=0.3, seed=5)
    _, second, _ = run_eager(loss_prob=0.3, corrupt_prob=0.3, seed=5)
    assert first.times == second.times
    assert first.packets == second.packets


def test_to_layer3_copies_packet():
    net = make()
    packet = Packet(seqnum=1, payload=b"k" * PAYLOAD_SIZE)
    net.to_layer3(Entity.A, packet)
    packet.seqnum = 99
    queued = [e for e in net.pending_events() if e.type is EventType.FROM_LAYER3]
    assert len(queued) == 1
    assert queued[0].packet.seqnum == 1
    assert queued[0].entity is Entity.B


def test_pending_events_are_time_ordered():
    net = make()
    for seq in range(5):
        net.to_layer3(Entity.A, Packet(seqnum=seq))
    net.start_timer(Entity.A, 3.0)
    net.start_timer(Entity.B, 7.5)
    times = [e.time for e in net.pending_events()]
    assert times == sorted(times)


def test_new_event_goes_before_equal_time_event():
    net = make()
    (arrival,) = net.pending_events()
    net.start_timer(Entity.A, arrival.time)
    first = net.pending_events()[0]
    assert first.type is EventType.TIMER_INTERRUPT


def test_first_arrival_within_twice_mean_interval():
    net = make(mean_interval=4.0)
    (arrival,) = net.pending_events()
    assert arrival.type is EventType.FROM_LAYER5
    assert arrival.entity is Entity.A
    assert 0.0 <= arrival.time <= 8.0


def test_start_timer_twice_warns_and_keeps_one():
    out = io.StringIO()
    net = make(output=out)
    net.start_timer(Entity.A, 5.0)
    net.start_timer(Entity.A, 5.0)
    timers = [e for e in net.pending_events() if e.type is EventType.TIMER_INTERRUPT]
    assert len(timers) == 1
    assert "already started" in out.getvalue()


def test_stop_timer_removes_timer():
    out = io.StringIO()
    net = make(output=out)
    net.start_timer(Entity.A, 5.0)
    net.stop_timer(Entity.A)
    assert all(e.type is not EventType.TIMER_INTERRUPT for e in net.pending_events())
    assert "unable to cancel" not in out.getvalue()


def test_stop_timer_without_timer_warns():
    out = io.StringIO()
    net = make(output=out)
    net.stop_timer(Entity.B)
    assert "unable to cancel your timer" in out.getvalue()


def test_timer_fires_after_increment():
    net = make(max_messages=3)
    sender = TimerSender(net, 16.0)
    net.attach(sender, ProtocolEntity())
    net.run()
    assert len(sender.fired_at) == 1
    assert sender.fired_at[0] - sender.started_at == pytest.approx(16.0)


def test_default_entities_ignore_everything():
    net = make(max_messages=5)
    net.attach(ProtocolEntity(), ProtocolEntity())
    stats = net.run()
    assert net.messages_generated == 5
    assert stats == Statistics()


def test_random_in_unit_interval():
    net = make()
    values = [net.random() for _ in range(200)]
    assert all(0.0 <= v < 1.0 for v in values)


def test_to_layer5_counts_and_records():
    net = make()
    net.to_layer5(Entity.B, b"m" * PAYLOAD_SIZE)
    assert net.stats.messages_delivered == 1
    assert net.delivered == [(Entity.B, b"m" * PAYLOAD_SIZE)]


def test_run_without_attach_raises():
    with pytest.raises(RuntimeError):
        make().run()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"loss_prob": 1.5},
        {"corrupt_prob": -0.1},
        {"corrupt_direction": 3},
        {"mean_interval": -1.0},
    ],
)
def test_invalid_parameters_raise(kwargs):
    with pytest.raises(ValueError):
        make(**kwargs)


def test_negative_message_count_raises():
    with pytest.raises(ValueError):
        Emulator(-1, output=io.StringIO())


def test_report_summarises_run():
    net, _, _ = run_eager()
    report = net.report()
    assert "after attempting to send 30 msgs from layer5" in report
    assert "number of messages delivered to application:  30" in report


def test_trace_prints_events():
    out = io.StringIO()
    net = make(max_messages=2, trace=2, output=out)
    net.attach(EagerSender(net), Sink(net))
    net.run()
    assert "EVENT time:" in out.getvalue()
    assert "fromlayer5" in out.getvalue()


def test_message_given_to_sender_is_message():
    received = []

    class Recorder(ProtocolEntity):
        def output(self, message):
            received.append(message)

    net = make(max_messages=2)
    net.attach(Recorder(), ProtocolEntity())
    net.run()
    assert received == [Message(b"a" * PAYLOAD_SIZE), Message(b"b" * PAYLOAD_SIZE)]