# srnetsim

This package emulates an unreliable network channel with discrete events. It
also provides a Selective Repeat transport protocol that runs over that
channel.

## The emulator

The emulator models the layers below transport.

- It produces application messages at entity A at random intervals. The
  intervals are uniform on `[0, 2 × mean_interval]`.
- Each message is 20 bytes of one repeated letter. The letters run from `a` to
  `z` and then start again at `a`.
- It carries packets between entity A, the sender, and entity B, the
  receiver.
- It can lose a packet, or corrupt one by overwriting the first payload byte,
  the sequence number or the acknowledgement number.
- Packets that do arrive are never reordered. Each one arrives 1 to 10 time
  units after the last packet already in flight to the same side.
- It provides one timer for each entity.

## The protocol

The protocol in `srnetsim.sr` has two parts:

- `Sender` runs at A. It keeps a window of 6 packets and uses sequence numbers
  modulo 12. On a timeout it resends the oldest packet in its buffer.
- `Receiver` runs at B. It checks the checksum of each packet. For every
  uncorrupted packet it delivers the payload to the application, sends an
  acknowledgement, and buffers the packet if it is new.

Both parts use `compute_checksum` and `is_corrupted`. The checksum is the sum
of the sequence number, the acknowledgement number and the payload bytes.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
srnetsim
```

The command prints a banner. It then asks for each value that was not given
as an option:

| Option | Value |
| --- | --- |
| `--messages` | the number of messages to simulate |
| `--loss` | the probability that a packet is lost |
| `--corrupt` | the probability that a packet is corrupted |
| `--direction` | the direction that loss and corruption apply to: `0` for A→B, `1` for A←B, `2` for both |
| `--interval` | the average time between messages from the sender's application |
| `--trace` | the trace level: higher values print more detail |
| `--seed` | the seed for the random number generator (default 9999) |

The direction is asked for only when loss or corruption is non-zero.
Otherwise it defaults to `2`.

A missing answer or a value that is not valid ends the command with an error.

At trace level `0` the simulation prints no event detail. Timer warnings,
the banner and the summary are still printed.

When the run ends, the command prints a summary with these counts:

- messages dropped because the window was full
- valid acknowledgements received at A
- retransmissions by A
- packets received correctly at B
- messages delivered to the application

## Library use

```python
from srnetsim.emulator import Emulator
from srnetsim.sr import Sender, Receiver

net = Emulator(
    max_messages=50,
    loss_prob=0.1,
    corrupt_prob=0.1,
    corrupt_direction=2,
    mean_interval=20.0,
    trace=0,
    seed=9999,
)
net.attach(Sender(net), Receiver(net))
stats = net.run()
print(net.report())
```

`Emulator` rejects the following with `ValueError`:

- a negative message count
- probabilities outside `[0, 1]`
- an unknown direction
- a negative interval

`run()` raises `RuntimeError` if no entities were attached. Otherwise it
processes events until none remain and returns the `Statistics`. After a run,
these attributes hold the results:

- `net.stats`: the counters
- `net.delivered`: every `(entity, data)` pair passed to the application
- `net.time`: the simulated time
- `net.messages_generated`: the number of messages produced

`pending_events()` returns the events that are still scheduled, in order.

Trace output goes to the `output` stream, which is standard output by default.
A fixed seed always gives the same run. `seed=None` seeds the generator from
the system.

`srnetsim.packet` defines the basic types:

- `Entity`: identifies A or B. `peer()` returns the other side.
- `Message`: holds exactly 20 bytes of application data.
- `Packet`: holds a sequence number, an acknowledgement number, a checksum
  and a 20-byte payload. `copy()` returns an independent copy.

### Other protocols

To run a different protocol, subclass `srnetsim.emulator.ProtocolEntity`.
Implement `output`, `input` and `timer_interrupt`; by default these only count
the events they drop. Inside those methods, use these emulator calls:

- `start_timer` and `stop_timer` to control the entity's timer
- `to_layer3` to send a packet into the network
- `to_layer5` to deliver data to the application

## What it does not do

Data flows in one direction only. Every message is generated at A. The
`Receiver` ignores any message handed to it and uses no timer.