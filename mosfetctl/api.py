"""Stable public API for building tooling on top of mosfetctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from mosfetctl.core.errors import (
    ArgumentCountError,
    ArgumentError,
    BusError,
    BusIoError,
    BusLockError,
    ConfigLoadError,
    ConfigValidationError,
    DiscoveryError,
    MosfetctlError,
    VerifyError,
)
from mosfetctl.core.model import (
    AddressCandidate,
    DiscoveryResult,
    LockSpec,
    OutputState,
    Profile,
    ResolvedBoard,
    SelfTestReport,
    SerialLinkConfig,
)
from mosfetctl.core.mutex import BusMutex, InMemoryBusMutex, PosixBusMutex
from mosfetctl.core.service import MosfetService, Verdict
from mosfetctl.transports.base import Bus
from mosfetctl.transports.smbus import SMBus2Bus

__all__ = [
    "MosfetctlError",
    "ArgumentError",
    "ArgumentCountError",
    "BusError",
    "BusIoError",
    "BusLockError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DiscoveryError",
    "VerifyError",
    "AddressCandidate",
    "DiscoveryResult",
    "LockSpec",
    "OutputState",
    "Profile",
    "ResolvedBoard",
    "SelfTestReport",
    "SerialLinkConfig",
    "Bus",
    "BusMutex",
    "InMemoryBusMutex",
    "PosixBusMutex",
    "SMBus2Bus",
    "Client",
]


class Client:
    """Public client for driving 8-MOSFET boards from Python.

    A `Client` wraps board resolution, the cross-process bus lock and the
    verified register writes behind a stable API for scripts and services.
    Every call takes the bus lock for its own duration only.
    """

    def __init__(
        self,
        *,
        bus: Bus | None = None,
        mutex: BusMutex | None = None,
        profile: Profile | None = None,
    ) -> None:
        self._service = MosfetService(bus=bus, mutex=mutex, profile=profile)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def profile(self) -> Profile:
        return self._service.profile

    def discover(self) -> DiscoveryResult:
        return self._service.discover()

    def resolve(self, level: int) -> ResolvedBoard:
        return self._service.resolve(level)

    def set_channel(self, level: int, channel: int, on: bool) -> None:
        self._service.set_channel(level, channel, OutputState.ON if on else OutputState.OFF)

    def get_channel(self, level: int, channel: int) -> bool:
        return self._service.get_channel(level, channel) is OutputState.ON

    def set_all(self, level: int, value: int) -> None:
        self._service.set_all(level, value)

    def get_all(self, level: int) -> int:
        return self._service.get_all(level)

    def set_pwm(self, level: int, channel: int, duty: float) -> float:
        return self._service.set_pwm(level, channel, duty)

    def get_pwm(self, level: int, channel: int) -> float:
        return self._service.get_pwm(level, channel)

    def set_frequency(self, level: int, hz: int) -> None:
        self._service.set_frequency(level, hz)

    def get_frequency(self, level: int) -> int:
        return self._service.get_frequency(level)

    def set_serial_config(self, level: int, config: SerialLinkConfig) -> None:
        self._service.set_serial_config(level, config)

    def get_serial_config(self, level: int) -> SerialLinkConfig:
        return self._service.get_serial_config(level)

    def self_test(
        self,
        level: int,
        verdict: Verdict,
        *,
        max_cycles: int | None = None,
    ) -> SelfTestReport:
        return self._service.self_test(level, verdict, max_cycles=max_cycles)
