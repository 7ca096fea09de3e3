"""Bus interfaces."""

from __future__ import annotations

from typing import Protocol


class Bus(Protocol):
    def read(self, address: int, register: int, length: int) -> bytes:
        """Read *length* bytes starting at *register* of the device at *address*."""

    def write(self, address: int, register: int, data: bytes) -> None:
        """Write *data* starting at *register* of the device at *address*."""
