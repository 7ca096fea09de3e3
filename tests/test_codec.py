from __future__ import annotations

import logging

import pytest

from mosfetctl.core.codec import (
    SERIAL_SETTINGS_LAYOUT,
    BitField,
    RegisterLayout,
    decode_duty,
    decode_frequency,
    decode_serial_config,
    encode_duty,
    encode_frequency,
    encode_serial_config,
    pwm_register,
    validate_serial_config,
)
from mosfetctl.core.errors import ArgumentError
from mosfetctl.core.model import SerialLinkConfig


def test_duty_round_trip_at_tenth_resolution() -> None:
    for raw in range(0, 1001, 7):
        duty = raw / 10
        assert abs(decode_duty(encode_duty(duty)) - duty) < 0.05


def test_duty_is_little_endian_tenths() -> None:
    assert encode_duty(45) == bytes([0xC2, 0x01])
    assert decode_duty(bytes([0xC2, 0x01])) == 45.0
    assert encode_duty(12.34) == (123).to_bytes(2, "little")


@pytest.mark.parametrize(("value", "expected"), [(-5, 0.0), (-0.01, 0.0), (100.5, 100.0), (250, 100.0)])
def test_duty_is_clamped(value: float, expected: float) -> None:
    assert decode_duty(encode_duty(value)) == expected


def test_duty_rejects_nan() -> None:
    with pytest.raises(ArgumentError):
        encode_duty(float("nan"))


@pytest.mark.parametrize("hz", [16, 200, 1000])
def test_frequency_accepted_and_exact(hz: int) -> None:
    assert decode_frequency(encode_frequency(hz)) == hz


@pytest.mark.parametrize("hz", [15, 1001, 2000, 0])
def test_frequency_rejected_not_clamped(hz: int) -> None:
    with pytest.raises(ArgumentError):
        encode_frequency(hz)


def test_pwm_register_offsets() -> None:
    assert pwm_register(1) == 0x07
    assert pwm_register(2) == 0x09
    assert pwm_register(8) == 0x15
    with pytest.raises(ArgumentError):
        pwm_register(9)


def test_serial_settings_packing() -> None:
    config = SerialLinkConfig(mode=1, baud=9600, stop_bits=1, parity=0, slave_address=1)
    # baud 0x002580, mode 1 in bits 24-27, stop bits 1 in bits 30-31, address in byte 4
    assert encode_serial_config(config) == bytes([0x80, 0x25, 0x00, 0x41, 0x01])
    assert decode_serial_config(encode_serial_config(config)) == config


def test_serial_settings_all_fields_decoded() -> None:
    config = SerialLinkConfig(mode=1, baud=921600, stop_bits=2, parity=2, slave_address=255)
    data = encode_serial_config(config)
    assert len(data) == 5
    assert SERIAL_SETTINGS_LAYOUT.unpack(data) == {
        "baud": 921600,
        "mode": 1,
        "parity": 2,
        "stop_bits": 2,
        "slave_address": 255,
    }


@pytest.mark.parametrize(
    "config",
    [
        SerialLinkConfig(mode=1, baud=1199, stop_bits=1, parity=0, slave_address=1),
        SerialLinkConfig(mode=1, baud=921601, stop_bits=1, parity=0, slave_address=1),
        SerialLinkConfig(mode=2, baud=9600, stop_bits=1, parity=0, slave_address=1),
        SerialLinkConfig(mode=1, baud=9600, stop_bits=3, parity=0, slave_address=1),
        SerialLinkConfig(mode=1, baud=9600, stop_bits=1, parity=3, slave_address=1),
        SerialLinkConfig(mode=1, baud=9600, stop_bits=1, parity=0, slave_address=256),
    ],
)
def test_serial_settings_validation(config: SerialLinkConfig) -> None:
    with pytest.raises(ArgumentError):
        validate_serial_config(config)


def test_slave_address_zero_is_lenient_by_default(caplog: pytest.LogCaptureFixture) -> None:
    config = SerialLinkConfig(mode=1, baud=9600, stop_bits=1, parity=0, slave_address=0)
    with caplog.at_level(logging.WARNING):
        assert validate_serial_config(config) == config
    assert "slave address 0" in caplog.text


def test_slave_address_zero_rejected_when_strict() -> None:
    config = SerialLinkConfig(mode=1, baud=9600, stop_bits=1, parity=0, slave_address=0)
    with pytest.raises(ArgumentError):
        validate_serial_config(config, strict_slave_address=True)


def test_layout_rejects_oversized_and_unknown_fields() -> None:
    layout = RegisterLayout("demo", 1, (BitField("low", 0, 4), BitField("high", 4, 4)))
    assert layout.pack(low=0x3, high=0xA) == bytes([0xA3])
    assert layout.unpack(bytes([0xA3])) == {"low": 0x3, "high": 0xA}
    with pytest.raises(ArgumentError):
        layout.pack(low=16, high=0)
    with pytest.raises(ArgumentError):
        layout.pack(low=1, high=1, extra=1)
    with pytest.raises(ArgumentError):
        layout.unpack(bytes([0, 0]))
