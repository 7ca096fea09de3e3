"""Logical channel to output-port bit mapping."""

from __future__ import annotations

from mosfetctl.core.constants import CHANNEL_COUNT, MAX_CHANNEL, MIN_CHANNEL
from mosfetctl.core.errors import ArgumentError
from mosfetctl.core.model import OutputState

# Hardware bit index for channels 1..8.
CHANNEL_BITS: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6, 7)


def validate_channel(channel: int) -> int:
    if not MIN_CHANNEL <= channel <= MAX_CHANNEL:
        raise ArgumentError(f"Mosfet channel {channel} out of range [{MIN_CHANNEL}..{MAX_CHANNEL}]")
    return channel


def channel_mask(channel: int) -> int:
    return 1 << CHANNEL_BITS[validate_channel(channel) - 1]


def encode_channel_state(port: int, channel: int, state: OutputState) -> int:
    """Return *port* with only *channel*'s bit changed; a cleared bit drives the output ON."""
    mask = channel_mask(channel)
    if state == OutputState.ON:
        return port & ~mask & 0xFF
    return (port | mask) & 0xFF


def decode_channel_state(port: int, channel: int) -> OutputState:
    return OutputState.OFF if port & channel_mask(channel) else OutputState.ON


def logical_to_wire(value: int) -> int:
    """Map a logical mask (bit k-1 set = channel k ON) to the output-port byte."""
    if not 0 <= value <= 0xFF:
        raise ArgumentError(f"Mosfet value {value} out of range [0..255]")
    wire = 0
    for index in range(CHANNEL_COUNT):
        if value & (1 << index):
            wire |= 1 << CHANNEL_BITS[index]
    return wire ^ 0xFF


def wire_to_logical(port: int) -> int:
    port ^= 0xFF
    value = 0
    for index in range(CHANNEL_COUNT):
        if port & (1 << CHANNEL_BITS[index]):
            value |= 1 << index
    return value
