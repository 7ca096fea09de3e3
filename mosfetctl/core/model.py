"""Core data models used across codec, locator, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class OutputState(IntEnum):
    OFF = 0
    ON = 1


@dataclass(frozen=True)
class SerialLinkConfig:
    mode: int
    baud: int
    stop_bits: int
    parity: int
    slave_address: int


@dataclass(frozen=True)
class AddressCandidate:
    """One base-address strategy tried when resolving a stack level."""

    name: str
    base: int

    def address(self, level: int, line_inversion: int) -> int:
        return (level + self.base) ^ line_inversion


@dataclass(frozen=True)
class LockSpec:
    name: str
    initial_count: int = 3
    timeout_s: float = 3.0


@dataclass(frozen=True)
class Profile:
    bus_number: int
    line_inversion: int
    candidates: tuple[AddressCandidate, ...]
    verify_attempts: int
    lock: LockSpec
    strict_slave_address: bool = False
    self_test_step_s: float = 0.15


@dataclass(frozen=True)
class ResolvedBoard:
    level: int
    address: int
    candidate: str
    initialized: bool = False


@dataclass(frozen=True)
class DiscoveryResult:
    levels: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.levels)


@dataclass(frozen=True)
class SelfTestReport:
    board: ResolvedBoard
    passed: bool
    cycles: int
