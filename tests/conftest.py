from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from mosfetctl.core.constants import CONFIG_REG, OUTPUT_PORT_REG
from mosfetctl.core.errors import BusIoError
from mosfetctl.core.locator import DEFAULT_CANDIDATES
from mosfetctl.core.model import LockSpec, Profile
from mosfetctl.core.mutex import InMemoryBusMutex
from mosfetctl.core.service import MosfetService


class SimulatedBus:
    """Addressed register memory; unknown addresses never ACK."""

    def __init__(self) -> None:
        self.boards: dict[int, bytearray] = {}
        self.reads: list[tuple[int, int, int]] = []
        self.writes: list[tuple[int, int, bytes]] = []
        self.unlatched_writes = 0
        self.fail_reads = False
        self.fail_writes = False

    def add_board(self, address: int, *, config: int = 0x00, output: int = 0xFF) -> bytearray:
        memory = bytearray(256)
        memory[CONFIG_REG] = config
        memory[OUTPUT_PORT_REG] = output
        self.boards[address] = memory
        return memory

    def read(self, address: int, register: int, length: int) -> bytes:
        self.reads.append((address, register, length))
        memory = self.boards.get(address)
        if memory is None:
            raise BusIoError(f"No ACK from 0x{address:02x}")
        if self.fail_reads:
            raise BusIoError(f"Read error at 0x{address:02x}")
        return bytes(memory[register:register + length])

    def write(self, address: int, register: int, data: bytes) -> None:
        memory = self.boards.get(address)
        if memory is None:
            raise BusIoError(f"No ACK from 0x{address:02x}")
        if self.fail_writes:
            raise BusIoError(f"Write error at 0x{address:02x}")
        self.writes.append((address, register, bytes(data)))
        if self.unlatched_writes:
            self.unlatched_writes -= 1
            return
        memory[register:register + len(data)] = data


@pytest.fixture(autouse=True)
def _isolated_user_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


@pytest.fixture
def profile() -> Profile:
    return Profile(
        bus_number=1,
        line_inversion=0x07,
        candidates=DEFAULT_CANDIDATES,
        verify_attempts=10,
        lock=LockSpec(name=f"/mosfetctl-test-{uuid.uuid4().hex}", initial_count=3, timeout_s=1.0),
        strict_slave_address=False,
        self_test_step_s=0.0,
    )


@pytest.fixture
def bus() -> SimulatedBus:
    return SimulatedBus()


@pytest.fixture
def mutex(profile: Profile) -> InMemoryBusMutex:
    return InMemoryBusMutex(
        profile.lock.name,
        max_count=profile.lock.initial_count,
        timeout_s=profile.lock.timeout_s,
    )


@pytest.fixture
def service(bus: SimulatedBus, mutex: InMemoryBusMutex, profile: Profile) -> MosfetService:
    return MosfetService(bus=bus, mutex=mutex, profile=profile)
