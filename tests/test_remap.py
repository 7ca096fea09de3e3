from __future__ import annotations

import pytest

from mosfetctl.core.errors import ArgumentError
from mosfetctl.core.model import OutputState
from mosfetctl.core.remap import (
    CHANNEL_BITS,
    channel_mask,
    decode_channel_state,
    encode_channel_state,
    logical_to_wire,
    wire_to_logical,
)


def test_channel_bits_are_a_bijection() -> None:
    assert sorted(CHANNEL_BITS) == list(range(8))
    assert {channel_mask(c) for c in range(1, 9)} == {1 << b for b in range(8)}


@pytest.mark.parametrize("channel", range(1, 9))
@pytest.mark.parametrize("state", [OutputState.ON, OutputState.OFF])
def test_state_round_trip(channel: int, state: OutputState) -> None:
    for port in (0x00, 0xFF, 0xA5):
        assert decode_channel_state(encode_channel_state(port, channel, state), channel) == state


def test_cleared_bit_means_on() -> None:
    assert encode_channel_state(0xFF, 5, OutputState.ON) == 0xEF
    assert encode_channel_state(0x00, 5, OutputState.OFF) == 0x10
    assert decode_channel_state(0xEF, 5) == OutputState.ON


def test_single_channel_write_leaves_other_bits() -> None:
    port = 0b1010_0101
    updated = encode_channel_state(port, 2, OutputState.OFF)
    assert updated ^ port == 0b0000_0010


def test_bulk_conversion_inverts() -> None:
    assert logical_to_wire(0) == 0xFF
    assert logical_to_wire(0xFF) == 0x00
    assert logical_to_wire(0b0000_0011) == 0xFC
    assert wire_to_logical(0xFC) == 0b0000_0011
    assert all(wire_to_logical(logical_to_wire(v)) == v for v in range(256))


@pytest.mark.parametrize("channel", [0, 9, -1])
def test_invalid_channel_rejected(channel: int) -> None:
    with pytest.raises(ArgumentError):
        channel_mask(channel)


@pytest.mark.parametrize("value", [-1, 256])
def test_invalid_bulk_value_rejected(value: int) -> None:
    with pytest.raises(ArgumentError):
        logical_to_wire(value)
