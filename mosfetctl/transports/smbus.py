"""I2C register transport implementation using smbus2."""

from __future__ import annotations

import logging

import smbus2

from mosfetctl.core.errors import BusIoError

LOGGER = logging.getLogger(__name__)


class SMBus2Bus:
    def __init__(self, bus_number: int = 1) -> None:
        self.bus_number = bus_number

    def read(self, address: int, register: int, length: int) -> bytes:
        try:
            with smbus2.SMBus(self.bus_number) as bus:
                data = bytes(bus.read_i2c_block_data(address, register, length))
        except OSError as exc:
            raise BusIoError(
                f"I2C read failed at 0x{address:02x} register 0x{register:02x} "
                f"on /dev/i2c-{self.bus_number}: {exc}"
            ) from exc
        if len(data) != length:
            raise BusIoError(
                f"I2C short read at 0x{address:02x} register 0x{register:02x}: "
                f"expected {length} bytes, got {len(data)}"
            )
        LOGGER.debug("RX 0x%02x[0x%02x] %s", address, register, data.hex())
        return data

    def write(self, address: int, register: int, data: bytes) -> None:
        LOGGER.debug("TX 0x%02x[0x%02x] %s", address, register, data.hex())
        try:
            with smbus2.SMBus(self.bus_number) as bus:
                bus.write_i2c_block_data(address, register, list(data))
        except OSError as exc:
            raise BusIoError(
                f"I2C write failed at 0x{address:02x} register 0x{register:02x} "
                f"on /dev/i2c-{self.bus_number}: {exc}"
            ) from exc
