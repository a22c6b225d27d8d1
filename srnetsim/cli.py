"""Command-line entry point for running the Selective Repeat simulation."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
from typing import TypeVar

from .emulator import BOTH_DIRECTIONS, DEFAULT_SEED, Emulator
from .sr import Receiver, Sender

T = TypeVar("T")

BANNER = "-----  Stop and Wait Network Simulator Version 1.1 -------- \n"


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser; options left out are asked for interactively."""
    parser = argparse.ArgumentParser(
        prog="srnetsim",
        description="Simulate Selective Repeat transfer over an unreliable network.",
    )
    parser.add_argument("--messages", type=int, help="number of messages to simulate")
    parser.add_argument("--loss", type=float, help="packet loss probability")
    parser.add_argument("--corrupt", type=float, help="packet corruption probability")
    parser.add_argument(
        "--direction",
        type=int,
        choices=(0, 1, 2),
        help="direction of loss/corruption: 0 A->B, 1 A<-B, 2 both",
    )
    parser.add_argument(
        "--interval", type=float, help="average time between messages from the sender"
    )
    parser.add_argument("--trace", type=int, help="trace level")
    parser.add_argument(
        "--seed", type=int, default=DEFAULT_SEED, help="random number generator seed"
    )
    return parser


def _ask(parser: argparse.ArgumentParser, prompt: str, convert: Callable[[str], T]) -> T:
    try:
        text = input(prompt).strip()
    except EOFError:
        parser.error(f"no answer given to: {prompt.strip()}")
    try:
        return convert(text)
    except ValueError:
        parser.error(f"invalid value {text!r}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the simulation and print its summary."""
    parser = build_parser()
    args = parser.parse_args(argv)
    print(BANNER)

    messages = args.messages
    if messages is None:
        messages = _ask(parser, "Enter the number of messages to simulate: ", int)
    loss = args.loss
    if loss is None:
        loss = _ask(parser, "Enter  packet loss probability [enter 0.0 for no loss]:", float)
    corrupt = args.corrupt
    if corrupt is None:
        corrupt = _ask(
            parser, "Enter packet corruption probability [0.0 for no corruption]:", float
        )
    direction = args.direction
    if direction is None:
        direction = BOTH_DIRECTIONS
        if loss != 0.0 or corrupt != 0.0:
            direction = _ask(
                parser,
                "If you want loss or corruption to only occur in one direction, choose the "
                "direction: 0 A->B, 1 A<-B, 2 A<->B (both directions) :",
                int,
            )
    interval = args.interval
    if interval is None:
        interval = _ask(
            parser, "Enter average time between messages from sender's layer5 [ > 0.0]:", float
        )
    trace = args.trace
    if trace is None:
        trace = _ask(parser, "Enter TRACE:", int)

    try:
        emulator = Emulator(
            messages,
            loss_prob=loss,
            corrupt_prob=corrupt,
            corrupt_direction=direction,
            mean_interval=interval,
            trace=trace,
            seed=args.seed,
        )
    except ValueError as exc:
        parser.error(str(exc))

    emulator.attach(Sender(emulator), Receiver(emulator))
    emulator.run()
    print(emulator.report())
    return 0