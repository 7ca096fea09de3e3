"""Register byte layouts and hardware-independent encode/decode functions.

Every multi-byte register on the board is little-endian. Layouts are
described as tagged bit fields so the codec functions never index into raw
byte arrays directly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from mosfetctl.core.constants import (
    DUTY_SCALE,
    MAX_BAUD,
    MAX_DUTY,
    MAX_FREQUENCY_HZ,
    MAX_SLAVE_ADDRESS,
    MIN_BAUD,
    MIN_DUTY,
    MIN_FREQUENCY_HZ,
    MIN_SLAVE_ADDRESS,
    PWM_BASE_REG,
    PWM_FREQUENCY_SIZE,
    PWM_SIZE,
    SERIAL_MODES,
    SERIAL_PARITIES,
    SERIAL_SETTINGS_SIZE,
    SERIAL_STOP_BITS,
)
from mosfetctl.core.errors import ArgumentError
from mosfetctl.core.model import SerialLinkConfig
from mosfetctl.core.remap import validate_channel

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BitField:
    name: str
    offset: int
    width: int

    @property
    def max_value(self) -> int:
        return (1 << self.width) - 1


@dataclass(frozen=True)
class RegisterLayout:
    name: str
    size: int
    fields: tuple[BitField, ...]

    def pack(self, **values: int) -> bytes:
        unknown = set(values) - {f.name for f in self.fields}
        if unknown:
            raise ArgumentError(f"{self.name} has no field(s) {', '.join(sorted(unknown))}")
        word = 0
        for field in self.fields:
            if field.name not in values:
                raise ArgumentError(f"{self.name}.{field.name} is required")
            value = int(values[field.name])
            if not 0 <= value <= field.max_value:
                raise ArgumentError(
                    f"{self.name}.{field.name}={value} does not fit in {field.width} bits"
                )
            word |= value << field.offset
        return word.to_bytes(self.size, "little")

    def unpack(self, data: bytes) -> dict[str, int]:
        if len(data) != self.size:
            raise ArgumentError(f"{self.name} expects {self.size} bytes, got {len(data)}")
        word = int.from_bytes(data, "little")
        return {field.name: (word >> field.offset) & field.max_value for field in self.fields}


PWM_DUTY_LAYOUT = RegisterLayout("pwm_duty", PWM_SIZE, (BitField("raw", 0, 16),))
PWM_FREQUENCY_LAYOUT = RegisterLayout("pwm_frequency", PWM_FREQUENCY_SIZE, (BitField("hz", 0, 16),))
SERIAL_SETTINGS_LAYOUT = RegisterLayout(
    "serial_settings",
    SERIAL_SETTINGS_SIZE,
    (
        BitField("baud", 0, 24),
        BitField("mode", 24, 4),
        BitField("parity", 28, 2),
        BitField("stop_bits", 30, 2),
        BitField("slave_address", 32, 8),
    ),
)


def pwm_register(channel: int) -> int:
    return PWM_BASE_REG + (validate_channel(channel) - 1) * PWM_SIZE


def duty_to_raw(value: float) -> int:
    """Clamp *value* to [0, 100] and scale it to the 16-bit register unit (0.1 %)."""
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise ArgumentError(f"Invalid PWM duty {value!r}") from exc
    if math.isnan(value):
        raise ArgumentError("PWM duty must be a number")
    value = min(max(value, MIN_DUTY), MAX_DUTY)
    return int(round(value * DUTY_SCALE))


def encode_duty(value: float) -> bytes:
    return PWM_DUTY_LAYOUT.pack(raw=duty_to_raw(value))


def decode_duty(data: bytes) -> float:
    return PWM_DUTY_LAYOUT.unpack(data)["raw"] / DUTY_SCALE


def validate_frequency(hz: int) -> int:
    if not MIN_FREQUENCY_HZ <= hz <= MAX_FREQUENCY_HZ:
        raise ArgumentError(
            f"Frequency {hz} Hz out of range [{MIN_FREQUENCY_HZ}..{MAX_FREQUENCY_HZ}]"
        )
    return hz


def encode_frequency(hz: int) -> bytes:
    return PWM_FREQUENCY_LAYOUT.pack(hz=validate_frequency(hz))


def decode_frequency(data: bytes) -> int:
    return PWM_FREQUENCY_LAYOUT.unpack(data)["hz"]


def validate_serial_config(config: SerialLinkConfig, *, strict_slave_address: bool = False) -> SerialLinkConfig:
    """Check every serial-link field.

    A slave address of 0 is only a warning unless *strict_slave_address* is set;
    an address above 255 can never be stored and is always rejected.
    """
    if not MIN_BAUD <= config.baud <= MAX_BAUD:
        raise ArgumentError(f"Invalid RS485 baudrate {config.baud} [{MIN_BAUD}..{MAX_BAUD}]")
    if config.mode not in SERIAL_MODES:
        raise ArgumentError(f"Invalid RS485 mode {config.mode}: 0 = disable, 1 = Modbus RTU (slave)")
    if config.stop_bits not in SERIAL_STOP_BITS:
        raise ArgumentError(f"Invalid RS485 stop bits {config.stop_bits} [1, 2]")
    if config.parity not in SERIAL_PARITIES:
        raise ArgumentError(f"Invalid RS485 parity {config.parity}: 0 = none, 1 = even, 2 = odd")
    if config.slave_address > MAX_SLAVE_ADDRESS or config.slave_address < 0:
        raise ArgumentError(
            f"Invalid Modbus slave address {config.slave_address} "
            f"[{MIN_SLAVE_ADDRESS}..{MAX_SLAVE_ADDRESS}]"
        )
    if config.slave_address < MIN_SLAVE_ADDRESS:
        message = (
            f"Invalid Modbus slave address {config.slave_address} "
            f"[{MIN_SLAVE_ADDRESS}..{MAX_SLAVE_ADDRESS}]"
        )
        if strict_slave_address:
            raise ArgumentError(message)
        LOGGER.warning("%s; writing it anyway", message)
    return config


def encode_serial_config(config: SerialLinkConfig) -> bytes:
    return SERIAL_SETTINGS_LAYOUT.pack(
        baud=config.baud,
        mode=config.mode,
        parity=config.parity,
        stop_bits=config.stop_bits,
        slave_address=config.slave_address,
    )


def decode_serial_config(data: bytes) -> SerialLinkConfig:
    fields = SERIAL_SETTINGS_LAYOUT.unpack(data)
    return SerialLinkConfig(
        mode=fields["mode"],
        baud=fields["baud"],
        stop_bits=fields["stop_bits"],
        parity=fields["parity"],
        slave_address=fields["slave_address"],
    )
